"""
Recording processing state machine.

    uploaded -> processing -> processed | failed

Both ``processed`` and ``failed`` are terminal. Every transition is a status
guarded UPDATE, so a second invocation for the same recording (a concurrent
call or a queue redelivery) finds the row off ``uploaded`` and is rejected
with ConflictOrAlreadyProcessed instead of running again.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from voicenotes.common.common_message import CommonMessage
from voicenotes.common.constants import RecordingStatus
from voicenotes.common.exceptions import ConflictOrAlreadyProcessed
from voicenotes.config import settings
from voicenotes.models import Recording, TranscriptionCache
from voicenotes.models.base_import import utcnow
from voicenotes.services.storage_service import ObjectStore
from voicenotes.services.summary_service import Summarizer
from voicenotes.services.transcript_service import Transcriber

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingJob:
    file_path: str
    recording_id: str
    user_id: str
    file_hash: str

    def to_kwargs(self) -> dict:
        return {
            "file_path": self.file_path,
            "recording_id": self.recording_id,
            "user_id": self.user_id,
            "file_hash": self.file_hash,
        }


@dataclass(frozen=True)
class ProcessingOutcome:
    recording_id: str
    status: str
    transcript: Optional[str] = None
    recommendations: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == RecordingStatus.PROCESSED.value

    @property
    def message(self) -> str:
        if self.success:
            return CommonMessage.PROCESSING_COMPLETED
        return CommonMessage.PROCESSING_FAILED.format(error=self.error)


def _transition(db: Session, recording_id: str, from_status: str, values: dict) -> bool:
    """Compare-and-set the status of one recording. Returns False if it had moved on."""
    values = dict(values, updated_at=utcnow())
    updated = (
        db.query(Recording)
        .filter(Recording.id == recording_id, Recording.status == from_status)
        .update(values, synchronize_session=False)
    )
    db.commit()
    return updated == 1


def get_cached_transcript(db: Session, file_hash: str) -> Optional[str]:
    entry = db.get(TranscriptionCache, file_hash)
    return entry.transcript if entry else None


def store_cached_transcript(db: Session, file_hash: str, transcript: str) -> None:
    db.merge(TranscriptionCache(file_hash=file_hash, transcript=transcript, created_at=utcnow()))
    db.commit()


class ProcessingPipeline:
    def __init__(self, store: ObjectStore, transcriber: Transcriber, summarizer: Summarizer):
        self.store = store
        self.transcriber = transcriber
        self.summarizer = summarizer

    def _claim(self, db: Session, job: ProcessingJob) -> Recording:
        recording = db.get(Recording, job.recording_id)
        if (
            recording is None
            or recording.file_path != job.file_path
            or recording.user_id != job.user_id
            or recording.status != RecordingStatus.UPLOADED.value
        ):
            logger.info("Rejecting processing request for %s", job.recording_id)
            raise ConflictOrAlreadyProcessed()

        claimed = _transition(
            db,
            job.recording_id,
            RecordingStatus.UPLOADED.value,
            {
                "status": RecordingStatus.PROCESSING.value,
                "processing_started_at": utcnow(),
            },
        )
        if not claimed:
            logger.info("Recording %s was claimed by another invocation", job.recording_id)
            raise ConflictOrAlreadyProcessed()
        db.refresh(recording)
        return recording

    async def _get_transcript(self, db: Session, recording: Recording, file_hash: str) -> str:
        transcript = get_cached_transcript(db, file_hash)
        if transcript:
            logger.info("Transcription cache hit for hash %s", file_hash)
            return transcript

        audio = self.store.get(recording.file_path)
        transcript = await self.transcriber.transcribe(audio, recording.mime_type)
        store_cached_transcript(db, file_hash, transcript)
        return transcript

    async def process(self, db: Session, job: ProcessingJob) -> ProcessingOutcome:
        """
        Run one recording through transcription and summarization.

        Raises ConflictOrAlreadyProcessed if the recording does not match the
        job or is not in ``uploaded``. Failures after the claim are persisted
        on the recording and returned as a ``failed`` outcome, never retried.
        """
        logger.info("Triggered Processing Pipeline ~ process: %s", job.recording_id)
        recording = self._claim(db, job)

        file_hash = recording.file_hash
        if job.file_hash != file_hash:
            logger.warning(
                "Job hash %s differs from stored hash %s for %s, using stored hash",
                job.file_hash,
                file_hash,
                job.recording_id,
            )

        try:
            transcript = await self._get_transcript(db, recording, file_hash)
            recommendations = await self.summarizer.summarize(transcript)

            _transition(
                db,
                job.recording_id,
                RecordingStatus.PROCESSING.value,
                {
                    "status": RecordingStatus.PROCESSED.value,
                    "transcript": transcript,
                    "recommendations": recommendations,
                    "processed_at": utcnow(),
                },
            )
            logger.info("Completed processing for recording: %s", job.recording_id)
            return ProcessingOutcome(
                recording_id=job.recording_id,
                status=RecordingStatus.PROCESSED.value,
                transcript=transcript,
                recommendations=recommendations,
            )
        except Exception as exc:
            error_message = str(exc) or exc.__class__.__name__
            logger.error("Processing error for %s: %s", job.recording_id, error_message)
            db.rollback()
            _transition(
                db,
                job.recording_id,
                RecordingStatus.PROCESSING.value,
                {
                    "status": RecordingStatus.FAILED.value,
                    "error": error_message,
                    "failed_at": utcnow(),
                },
            )
            return ProcessingOutcome(
                recording_id=job.recording_id,
                status=RecordingStatus.FAILED.value,
                error=error_message,
            )


def reconcile_stuck_recordings(db: Session, max_age_minutes: int = None) -> int:
    """Fail recordings left in ``processing`` longer than the allowed age."""
    if max_age_minutes is None:
        max_age_minutes = settings.STUCK_PROCESSING_MINUTES
    threshold = utcnow() - timedelta(minutes=max_age_minutes)

    stuck_ids = [
        row.id
        for row in db.query(Recording.id).filter(
            Recording.status == RecordingStatus.PROCESSING.value,
            Recording.processing_started_at < threshold,
        )
    ]

    reconciled = 0
    for recording_id in stuck_ids:
        if _transition(
            db,
            recording_id,
            RecordingStatus.PROCESSING.value,
            {
                "status": RecordingStatus.FAILED.value,
                "error": CommonMessage.PROCESSING_TIMED_OUT,
                "failed_at": utcnow(),
            },
        ):
            reconciled += 1

    logger.info("Reconciled %d stuck recordings", reconciled)
    return reconciled
