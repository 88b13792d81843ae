import logging

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voicenotes.common.common_message import CommonMessage
from voicenotes.common.constants import Common, RecordingStatus
from voicenotes.common.exceptions import (
    InternalError,
    PayloadTooLarge,
    UnsupportedMediaType,
    ValidationError,
)
from voicenotes.common.utils import build_audio_path, now_ms, recording_id_from_path
from voicenotes.config import settings
from voicenotes.models import Recording
from voicenotes.schemas.upload import IngestResult, UploadedAudio
from voicenotes.services.deduplication_service import DeduplicationService, deduplication_service
from voicenotes.services.hashing_service import compute_stored_hash
from voicenotes.services.processing_service import ProcessingJob
from voicenotes.services.storage_service import ObjectStore

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

READ_BLOCK_SIZE = 1024 * 1024


def _megabytes(limit: int) -> int:
    return limit // (1024 * 1024)


class AudioService:
    def __init__(self, dedup: DeduplicationService = deduplication_service):
        self.dedup = dedup
        self.allowed_formats = Common.ALLOWED_MIME_TYPES
        self.max_file_size = settings.MAX_UPLOAD_BYTES
        self.max_chunk_size = settings.MAX_CHUNK_BYTES

    def validate_mime_type(self, mime_type: str) -> None:
        logger.info("Triggered Audio Validation Service ~ validate_mime_type: %s", mime_type)
        if mime_type not in self.allowed_formats:
            raise UnsupportedMediaType()

    async def read_upload(self, file: UploadFile, max_bytes: int, too_large_message: str) -> UploadedAudio:
        """
        Read an uploaded part block by block, aborting as soon as the running
        total passes ``max_bytes``.
        """
        if file is None:
            raise ValidationError(CommonMessage.NO_FILE_UPLOADED)

        blocks = []
        total = 0
        while True:
            block = await file.read(READ_BLOCK_SIZE)
            if not block:
                break
            total += len(block)
            if total > max_bytes:
                logger.warning("Upload aborted after %d bytes (limit %d)", total, max_bytes)
                raise PayloadTooLarge(too_large_message.format(limit=_megabytes(max_bytes)))
            blocks.append(block)

        if total == 0:
            raise ValidationError(CommonMessage.NO_FILE_UPLOADED)
        return UploadedAudio(
            filename=file.filename or "audio",
            mime_type=file.content_type or "",
            data=b"".join(blocks),
        )

    @staticmethod
    def _discard_copy(store: ObjectStore, file_path: str, kept_recording_id: str) -> None:
        # Same owner, millisecond and filename map onto the kept recording's own object
        if recording_id_from_path(file_path) != kept_recording_id:
            store.delete_many([file_path])

    def _duplicate_of(self, db: Session, user_id: str, size: int):
        result = self.dedup.check(db, user_id, size)
        return result if result.is_duplicate else None

    def store_and_register(
        self,
        db: Session,
        store: ObjectStore,
        user_id: str,
        filename: str,
        mime_type: str,
        data: bytes,
    ) -> IngestResult:
        """
        Persist audio bytes and create the Recording at ``uploaded``.

        The Recording row is only written after the object write and the hash
        of the stored copy both succeed. A same-owner, same-size submission in
        the current dedup window short-circuits to the existing recording and
        the freshly written object is removed again.
        """
        logger.info("Triggered Audio Save Service ~ store_and_register")
        self.validate_mime_type(mime_type)

        file_path = build_audio_path(user_id, filename)
        store.put(file_path, data, content_type=mime_type)

        size = store.size(file_path)
        file_hash = compute_stored_hash(store, file_path)

        at_ms = now_ms()
        duplicate = self.dedup.check(db, user_id, size, at_ms)
        recording_id = recording_id_from_path(file_path)
        if duplicate.is_duplicate:
            self._discard_copy(store, file_path, duplicate.recording_id)
            return IngestResult(
                recording_id=duplicate.recording_id,
                file_path=file_path,
                is_duplicate=True,
            )

        recording = Recording(
            id=recording_id,
            user_id=user_id,
            file_path=file_path,
            filename=file_path.rsplit("/", 1)[-1],
            mime_type=mime_type,
            size=size,
            file_hash=file_hash,
            status=RecordingStatus.UPLOADED.value,
        )

        try:
            db.add(recording)
            self.dedup.register(db, duplicate.signature, recording_id, user_id, at_ms)
            db.commit()
        except IntegrityError:
            # Another request registered the same signature first
            db.rollback()
            concurrent = self._duplicate_of(db, user_id, size)
            if concurrent is None:
                raise InternalError("Failed to create recording")
            self._discard_copy(store, file_path, concurrent.recording_id)
            return IngestResult(
                recording_id=concurrent.recording_id,
                file_path=file_path,
                is_duplicate=True,
            )
        except Exception:
            db.rollback()
            raise

        logger.info("Created recording %s for user %s (%d bytes)", recording_id, user_id, size)
        return IngestResult(recording_id=recording_id, file_path=file_path, file_hash=file_hash)

    @staticmethod
    def build_processing_job(result: IngestResult, user_id: str) -> ProcessingJob:
        return ProcessingJob(
            file_path=result.file_path,
            recording_id=result.recording_id,
            user_id=user_id,
            file_hash=result.file_hash,
        )


audio_service = AudioService()
