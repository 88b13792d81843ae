import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_PROVIDER"] = "jwt"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["AI_BACKEND"] = "mock"
os.environ["PROCESSING_MODE"] = "inline"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["MAX_UPLOAD_BYTES"] = str(2 * 1024 * 1024)
os.environ["MAX_CHUNK_BYTES"] = str(1024 * 1024)

import pytest
from fastapi.testclient import TestClient

from voicenotes.api import deps
from voicenotes.db.base import Base
from voicenotes.db.session import SessionLocal, engine
from voicenotes.main import app
from voicenotes.services.auth_service import create_access_token
from voicenotes.services.processing_service import ProcessingPipeline
from voicenotes.services.storage_service import LocalObjectStore
from voicenotes.services.summary_service import MockSummarizer
from voicenotes.services.transcript_service import MockTranscriber


class CountingTranscriber(MockTranscriber):
    def __init__(self):
        self.calls = 0

    async def _transcribe(self, audio, mime_type):
        self.calls += 1
        return await super()._transcribe(audio, mime_type)


class FailingTranscriber(MockTranscriber):
    async def _transcribe(self, audio, mime_type):
        raise RuntimeError("model unavailable")


class CountingSummarizer(MockSummarizer):
    def __init__(self):
        self.calls = 0

    async def _summarize(self, transcript):
        self.calls += 1
        return await super()._summarize(transcript)


class FakeArqPool:
    def __init__(self, fail=False):
        self.jobs = []
        self.fail = fail

    async def enqueue_job(self, function, *args, _job_id=None, **kwargs):
        if self.fail:
            raise ConnectionError("redis down")
        self.jobs.append((function, _job_id, kwargs))
        return object()


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(str(tmp_path / "objects"))


@pytest.fixture
def transcriber():
    return CountingTranscriber()


@pytest.fixture
def summarizer():
    return CountingSummarizer()


@pytest.fixture
def pipeline(store, transcriber, summarizer):
    return ProcessingPipeline(store=store, transcriber=transcriber, summarizer=summarizer)


@pytest.fixture
def client(store, pipeline):
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_pipeline] = lambda: pipeline
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.arq_pool = None


def auth_header(uid="user-1"):
    return {"Authorization": f"Bearer {create_access_token(uid)}"}


@pytest.fixture
def auth():
    return auth_header
