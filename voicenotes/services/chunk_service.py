"""
Chunked upload assembly.

Each chunk is stored as its own object and recorded as one ``chunk_parts``
row keyed by ``(session_id, chunk_index)``. Appends for different indices
touch different rows, so concurrent chunk uploads for one session never
overwrite each other. Finalize concatenates the parts in ascending index
order and hands the result to the regular ingestion path.
"""
import logging
from dataclasses import dataclass
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voicenotes.common.common_message import CommonMessage
from voicenotes.common.exceptions import (
    IncompleteSession,
    SessionNotFound,
    Unauthorized,
    ValidationError,
)
from voicenotes.common.utils import build_chunk_path
from voicenotes.models import ChunkPart, ChunkSession
from voicenotes.models.base_import import utcnow
from voicenotes.schemas.upload import IngestResult
from voicenotes.services.audio_service import AudioService, audio_service
from voicenotes.services.storage_service import CleanupReport, ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizeResult:
    ingest: IngestResult
    cleanup: CleanupReport


class ChunkService:
    def __init__(self, ingestion: AudioService = audio_service):
        self.ingestion = ingestion

    def _ensure_session(
        self,
        db: Session,
        session_id: str,
        user_id: str,
        filename: str,
        mime_type: str,
        total_chunks: int,
    ) -> ChunkSession:
        session = db.get(ChunkSession, session_id)
        if session is None:
            try:
                session = ChunkSession(
                    id=session_id,
                    user_id=user_id,
                    filename=filename,
                    mime_type=mime_type,
                    total_chunks=total_chunks,
                )
                db.add(session)
                db.commit()
                return session
            except IntegrityError:
                # Created by a concurrent first chunk
                db.rollback()
                session = db.get(ChunkSession, session_id)

        if session.user_id != user_id:
            raise Unauthorized(CommonMessage.INVALID_SESSION_DATA, code=400)
        return session

    def _merge_part(self, db: Session, session_id: str, chunk_index: int, path: str, size: int) -> ChunkPart:
        def upsert() -> ChunkPart:
            part = (
                db.query(ChunkPart)
                .filter(ChunkPart.session_id == session_id, ChunkPart.chunk_index == chunk_index)
                .first()
            )
            if part is None:
                part = ChunkPart(session_id=session_id, chunk_index=chunk_index, path=path, size=size)
                db.add(part)
            else:
                part.path = path
                part.size = size
            db.query(ChunkSession).filter(ChunkSession.id == session_id).update(
                {"updated_at": utcnow()}, synchronize_session=False
            )
            db.commit()
            return part

        try:
            return upsert()
        except IntegrityError:
            db.rollback()
            return upsert()

    def append_chunk(
        self,
        db: Session,
        store: ObjectStore,
        session_id: str,
        chunk_index: int,
        data: bytes,
        total_chunks: int,
        filename: str,
        mime_type: str,
        user_id: str,
    ) -> ChunkPart:
        logger.info("Triggered Chunk Service ~ append_chunk %s #%s", session_id, chunk_index)
        self.ingestion.validate_mime_type(mime_type)
        if chunk_index < 1 or total_chunks < 1:
            raise ValidationError(CommonMessage.MISSING_CHUNK_METADATA)

        session = self._ensure_session(db, session_id, user_id, filename, mime_type, total_chunks)

        chunk_path = build_chunk_path(session.user_id, session_id, chunk_index)
        store.put(chunk_path, data, content_type=mime_type)
        return self._merge_part(db, session_id, chunk_index, chunk_path, len(data))

    def _ordered_parts(self, session: ChunkSession, total_chunks: int) -> List[ChunkPart]:
        by_index = {part.chunk_index: part for part in session.chunks}
        ordered = []
        for index in range(1, total_chunks + 1):
            part = by_index.get(index)
            if part is None:
                raise IncompleteSession(CommonMessage.MISSING_CHUNK.format(index=index))
            ordered.append(part)
        return ordered

    def finalize(
        self,
        db: Session,
        store: ObjectStore,
        user_id: str,
        session_id: str,
        total_chunks: int,
    ) -> FinalizeResult:
        """
        Concatenate every chunk of a session into one final object and create
        its Recording. Chunk objects and the session row are removed
        afterwards on a best-effort basis.
        """
        logger.info("Triggered Chunk Service ~ finalize %s", session_id)
        session = db.get(ChunkSession, session_id)
        if session is None:
            raise SessionNotFound()
        if session.user_id != user_id:
            raise Unauthorized(CommonMessage.INVALID_SESSION_DATA, code=400)
        if session.total_chunks != total_chunks:
            raise ValidationError(CommonMessage.INVALID_SESSION_DATA)
        if len(session.chunks) != total_chunks:
            raise IncompleteSession()

        parts = self._ordered_parts(session, total_chunks)
        data = b"".join(store.get(part.path) for part in parts)

        ingest = self.ingestion.store_and_register(
            db,
            store,
            user_id=user_id,
            filename=session.filename,
            mime_type=session.mime_type,
            data=data,
        )

        cleanup = store.delete_many([part.path for part in session.chunks])
        try:
            db.delete(session)
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.warning("Failed to delete chunk session %s: %s", session_id, exc)
        return FinalizeResult(ingest=ingest, cleanup=cleanup)


chunk_service = ChunkService()
