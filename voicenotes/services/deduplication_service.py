"""
Short-lived ledger that collapses near-simultaneous repeat uploads.

The signature is built from the owner, the payload size and the current time
window, never from the content hash. It only catches the same user submitting
a same-sized payload twice within one window. Identical content uploaded in
different windows, or arriving with a different size, is not collapsed here;
the transcription cache handles true content duplicates.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from voicenotes.common.utils import now_ms
from voicenotes.config import settings
from voicenotes.models import Deduplication

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeduplicationResult:
    is_duplicate: bool
    signature: str
    recording_id: Optional[str] = None


class DeduplicationService:
    def __init__(self, ttl_seconds: int = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.DEDUP_TTL_SECONDS

    @property
    def ttl_ms(self) -> int:
        return self.ttl_seconds * 1000

    def build_signature(self, user_id: str, payload_size: int, at_ms: int = None) -> str:
        if at_ms is None:
            at_ms = now_ms()
        window = at_ms // self.ttl_ms
        return f"{user_id}_{payload_size}_{window}"

    def is_expired(self, record: Deduplication, at_ms: int = None) -> bool:
        if at_ms is None:
            at_ms = now_ms()
        return record.timestamp < at_ms - self.ttl_ms

    def check(self, db: Session, user_id: str, payload_size: int, at_ms: int = None) -> DeduplicationResult:
        """Look up the signature for this submission without writing anything."""
        if at_ms is None:
            at_ms = now_ms()
        signature = self.build_signature(user_id, payload_size, at_ms)
        record = db.get(Deduplication, signature)
        if record is not None and not self.is_expired(record, at_ms):
            logger.info("Duplicate upload detected for user %s (signature %s)", user_id, signature)
            return DeduplicationResult(
                is_duplicate=True,
                signature=signature,
                recording_id=record.recording_id,
            )
        return DeduplicationResult(is_duplicate=False, signature=signature)

    def register(
        self,
        db: Session,
        signature: str,
        recording_id: str,
        user_id: str,
        at_ms: int = None,
    ) -> Deduplication:
        """
        Stage a ledger entry in the caller's transaction.

        The signature is the primary key, so a concurrent registration of the
        same signature fails the caller's commit with an IntegrityError.
        """
        if at_ms is None:
            at_ms = now_ms()
        stale = db.get(Deduplication, signature)
        if stale is not None and self.is_expired(stale, at_ms):
            db.delete(stale)
            db.flush()
        record = Deduplication(
            signature=signature,
            recording_id=recording_id,
            user_id=user_id,
            timestamp=at_ms,
        )
        db.add(record)
        return record

    def sweep_expired(self, db: Session, at_ms: int = None) -> int:
        """Delete every ledger entry older than the TTL and return how many went."""
        if at_ms is None:
            at_ms = now_ms()
        threshold = at_ms - self.ttl_ms
        deleted = (
            db.query(Deduplication)
            .filter(Deduplication.timestamp < threshold)
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info("Deleted %d expired deduplication records", deleted)
        return deleted

    def forget_recordings(self, db: Session, recording_ids) -> int:
        """Drop ledger entries pointing at deleted recordings. Caller commits."""
        recording_ids = list(recording_ids)
        if not recording_ids:
            return 0
        return (
            db.query(Deduplication)
            .filter(Deduplication.recording_id.in_(recording_ids))
            .delete(synchronize_session=False)
        )


deduplication_service = DeduplicationService()
