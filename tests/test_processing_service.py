import asyncio
from datetime import timedelta

import pytest

from voicenotes.common.exceptions import ConflictOrAlreadyProcessed
from voicenotes.db.session import SessionLocal
from voicenotes.models import Recording, TranscriptionCache
from voicenotes.models.base_import import utcnow
from voicenotes.services import processing_service
from voicenotes.services.audio_service import audio_service
from voicenotes.services.processing_service import (
    ProcessingJob,
    ProcessingPipeline,
    reconcile_stuck_recordings,
)

from conftest import FailingTranscriber


def _upload(db, store, user_id="u1", data=b"audio-bytes", filename="a.mp3"):
    result = audio_service.store_and_register(db, store, user_id, filename, "audio/mpeg", data)
    return audio_service.build_processing_job(result, user_id)


def test_process_moves_recording_to_processed(db, store, pipeline, transcriber, summarizer):
    job = _upload(db, store)

    outcome = asyncio.run(pipeline.process(db, job))

    assert outcome.success
    assert outcome.transcript == "Mocked transcription text"
    assert outcome.recommendations == "Mocked medical recommendations"
    recording = db.get(Recording, job.recording_id)
    db.refresh(recording)
    assert recording.status == "processed"
    assert recording.processed_at is not None
    assert recording.processing_started_at is not None
    assert transcriber.calls == 1
    assert summarizer.calls == 1


def test_second_invocation_is_rejected(db, store, pipeline, transcriber):
    job = _upload(db, store)
    asyncio.run(pipeline.process(db, job))

    with pytest.raises(ConflictOrAlreadyProcessed):
        asyncio.run(pipeline.process(db, job))
    assert transcriber.calls == 1


def test_mismatched_owner_or_path_is_rejected(db, store, pipeline):
    job = _upload(db, store)
    wrong_owner = ProcessingJob(job.file_path, job.recording_id, "someone-else", job.file_hash)
    wrong_path = ProcessingJob("audio/u1/other.mp3", job.recording_id, job.user_id, job.file_hash)

    with pytest.raises(ConflictOrAlreadyProcessed):
        asyncio.run(pipeline.process(db, wrong_owner))
    with pytest.raises(ConflictOrAlreadyProcessed):
        asyncio.run(pipeline.process(db, wrong_path))
    assert db.get(Recording, job.recording_id).status == "uploaded"


def test_failure_is_persisted_and_terminal(db, store, summarizer):
    pipeline = ProcessingPipeline(store=store, transcriber=FailingTranscriber(), summarizer=summarizer)
    job = _upload(db, store)

    outcome = asyncio.run(pipeline.process(db, job))

    assert not outcome.success
    assert outcome.status == "failed"
    assert "model unavailable" in outcome.message
    recording = db.get(Recording, job.recording_id)
    db.refresh(recording)
    assert recording.status == "failed"
    assert recording.error == "model unavailable"
    assert recording.failed_at is not None
    assert summarizer.calls == 0

    with pytest.raises(ConflictOrAlreadyProcessed):
        asyncio.run(pipeline.process(db, job))


def test_identical_content_reuses_cached_transcript(db, store, pipeline, transcriber, summarizer):
    first = _upload(db, store, user_id="u1")
    second = _upload(db, store, user_id="u2")

    asyncio.run(pipeline.process(db, first))
    outcome = asyncio.run(pipeline.process(db, second))

    assert outcome.success
    assert transcriber.calls == 1
    assert summarizer.calls == 2
    assert db.query(TranscriptionCache).count() == 1


def test_reconcile_fails_recordings_stuck_in_processing(db):
    db.add(
        Recording(
            id="audio_u1_1-old.mp3",
            user_id="u1",
            file_path="audio/u1/1-old.mp3",
            filename="1-old.mp3",
            mime_type="audio/mpeg",
            size=1,
            file_hash="h",
            status="processing",
            processing_started_at=utcnow() - timedelta(minutes=30),
        )
    )
    db.add(
        Recording(
            id="audio_u1_2-new.mp3",
            user_id="u1",
            file_path="audio/u1/2-new.mp3",
            filename="2-new.mp3",
            mime_type="audio/mpeg",
            size=2,
            file_hash="h2",
            status="processing",
            processing_started_at=utcnow(),
        )
    )
    db.commit()

    assert reconcile_stuck_recordings(db, max_age_minutes=15) == 1
    db.expire_all()
    assert db.get(Recording, "audio_u1_1-old.mp3").status == "failed"
    assert db.get(Recording, "audio_u1_1-old.mp3").error == "Processing timed out"
    assert db.get(Recording, "audio_u1_2-new.mp3").status == "processing"


def test_claim_lost_to_concurrent_invocation(db, store, pipeline, transcriber, monkeypatch):
    job = _upload(db, store)
    original_transition = processing_service._transition

    def claimed_elsewhere_first(session, recording_id, from_status, values):
        other = SessionLocal()
        try:
            other.query(Recording).filter(Recording.id == recording_id).update({"status": "processing"})
            other.commit()
        finally:
            other.close()
        return original_transition(session, recording_id, from_status, values)

    monkeypatch.setattr(processing_service, "_transition", claimed_elsewhere_first)

    with pytest.raises(ConflictOrAlreadyProcessed):
        asyncio.run(pipeline.process(db, job))
    assert transcriber.calls == 0
    db.expire_all()
    recording = db.get(Recording, job.recording_id)
    assert recording.status == "processing"
    assert recording.transcript is None
