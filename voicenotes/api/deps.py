from typing import Generator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from voicenotes.config import settings
from voicenotes.db.session import SessionLocal
from voicenotes.services.auth_service import (
    AuthenticatedUser,
    TokenVerifier,
    create_token_verifier,
    parse_bearer_token,
)
from voicenotes.services.processing_service import ProcessingPipeline
from voicenotes.services.storage_service import ObjectStore, get_object_store
from voicenotes.services.summary_service import create_summarizer
from voicenotes.services.task_job_service import (
    InlineDispatcher,
    ProcessingDispatcher,
    QueuedDispatcher,
)
from voicenotes.services.transcript_service import create_transcriber

_token_verifier: Optional[TokenVerifier] = None
_pipeline: Optional[ProcessingPipeline] = None


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_token_verifier() -> TokenVerifier:
    global _token_verifier
    if _token_verifier is None:
        _token_verifier = create_token_verifier()
    return _token_verifier


def get_current_user(
    authorization: Optional[str] = Header(None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    token = parse_bearer_token(authorization)
    return verifier.verify(token)


def get_store() -> ObjectStore:
    return get_object_store()


def build_pipeline(store: ObjectStore = None) -> ProcessingPipeline:
    return ProcessingPipeline(
        store=store or get_object_store(),
        transcriber=create_transcriber(),
        summarizer=create_summarizer(),
    )


def get_pipeline() -> ProcessingPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline


def get_dispatcher(
    request: Request,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> ProcessingDispatcher:
    if settings.PROCESSING_MODE.lower() == "inline":
        return InlineDispatcher(pipeline)
    return QueuedDispatcher(getattr(request.app.state, "arq_pool", None))
