import logging
from dataclasses import dataclass
from typing import List

from sqlalchemy.orm import Session

from voicenotes.common.constants import Common, RecordingStatus
from voicenotes.common.exceptions import NotFoundOrUnauthorized
from voicenotes.models import Recording
from voicenotes.services.deduplication_service import DeduplicationService, deduplication_service
from voicenotes.services.storage_service import CleanupReport, ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeleteResult:
    count: int
    cleanup: CleanupReport


class RecordingService:
    """Owner-scoped queries and deletes over recordings."""

    def __init__(self, dedup: DeduplicationService = deduplication_service):
        self.dedup = dedup

    def list_recordings(self, db: Session, user_id: str, limit: int = Common.RECORDINGS_LIST_LIMIT) -> List[Recording]:
        return (
            db.query(Recording)
            .filter(Recording.user_id == user_id)
            .order_by(Recording.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_recording(self, db: Session, user_id: str, recording_id: str) -> Recording:
        recording = db.get(Recording, recording_id)
        # Missing and foreign recordings are indistinguishable to the caller
        if recording is None or recording.user_id != user_id:
            raise NotFoundOrUnauthorized()
        return recording

    def _delete(self, db: Session, store: ObjectStore, recordings: List[Recording]) -> DeleteResult:
        paths = [recording.file_path for recording in recordings]
        ids = [recording.id for recording in recordings]
        try:
            for recording in recordings:
                db.delete(recording)
            self.dedup.forget_recordings(db, ids)
            db.commit()
        except Exception:
            db.rollback()
            raise

        cleanup = store.delete_many(paths)
        return DeleteResult(count=len(recordings), cleanup=cleanup)

    def discard_unprocessed(self, db: Session, store: ObjectStore, recording_id: str) -> DeleteResult:
        """Remove a recording that never left ``uploaded``, with its ledger entry and object."""
        recordings = (
            db.query(Recording)
            .filter(Recording.id == recording_id, Recording.status == RecordingStatus.UPLOADED.value)
            .all()
        )
        result = self._delete(db, store, recordings)
        logger.warning("Discarded unprocessed recording %s", recording_id)
        return result

    def delete_recording(self, db: Session, store: ObjectStore, user_id: str, recording_id: str) -> DeleteResult:
        recording = self.get_recording(db, user_id, recording_id)
        result = self._delete(db, store, [recording])
        logger.info("User %s deleted recording %s", user_id, recording_id)
        return result

    def delete_all_recordings(self, db: Session, store: ObjectStore, user_id: str) -> DeleteResult:
        recordings = db.query(Recording).filter(Recording.user_id == user_id).all()
        result = self._delete(db, store, recordings)
        logger.info("User %s deleted %d recordings", user_id, result.count)
        return result


recording_service = RecordingService()
