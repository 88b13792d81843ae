import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from voicenotes.api.deps import get_current_user, get_db, get_dispatcher, get_store
from voicenotes.common.common_message import CommonMessage
from voicenotes.common.exceptions import AppError, MissingField, QueueError
from voicenotes.common.response_common import ResponseCommon
from voicenotes.schemas.upload import ChunkUploadForm, FinalizeRequest, IngestResult
from voicenotes.services.audio_service import audio_service
from voicenotes.services.auth_service import AuthenticatedUser
from voicenotes.services.chunk_service import chunk_service
from voicenotes.services.recording_service import recording_service
from voicenotes.services.storage_service import ObjectStore
from voicenotes.services.task_job_service import ProcessingDispatcher

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("upload_endpoints")

router = APIRouter()


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except ValueError:
        return None


async def _dispatch_and_respond(
    db: Session,
    store: ObjectStore,
    dispatcher: ProcessingDispatcher,
    result: IngestResult,
    user: AuthenticatedUser,
) -> ResponseCommon:
    if result.is_duplicate:
        return ResponseCommon.success_response(
            message=CommonMessage.DUPLICATE_REQUEST,
            recording_id=result.recording_id,
            is_duplicate=True,
        )

    job = audio_service.build_processing_job(result, user.uid)
    try:
        dispatched = await dispatcher.dispatch(db, job)
    except QueueError:
        # Nothing would ever pick the recording up, so it must not outlive the request
        recording_service.discard_unprocessed(db, store, result.recording_id)
        raise
    if dispatched.queued:
        return ResponseCommon.success_response(
            message=CommonMessage.FILE_UPLOADED_SUCCESS,
            recording_id=result.recording_id,
            file_path=result.file_path,
        )

    outcome = dispatched.outcome
    return ResponseCommon(
        success=outcome.success,
        message=outcome.message,
        recording_id=result.recording_id,
        file_path=result.file_path,
        transcript=outcome.transcript,
        recommendations=outcome.recommendations,
    )


@router.post("/uploadAudio")
async def upload_audio(
    audio: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    dispatcher: ProcessingDispatcher = Depends(get_dispatcher),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Upload a complete audio file in the ``audio`` multipart field.

    Supported formats: audio/mpeg, audio/mp3, audio/wav
    Maximum file size: 100MB
    """
    logger.info("Triggered endpoint: uploadAudio")

    try:
        if audio is not None:
            audio_service.validate_mime_type(audio.content_type)
        uploaded = await audio_service.read_upload(
            audio, audio_service.max_file_size, CommonMessage.FILE_TOO_LARGE
        )
        result = audio_service.store_and_register(
            db,
            store,
            user_id=current_user.uid,
            filename=uploaded.filename,
            mime_type=uploaded.mime_type,
            data=uploaded.data,
        )
        response = await _dispatch_and_respond(db, store, dispatcher, result, current_user)
        return response.to_response()
    except AppError:
        raise
    except Exception as exc:
        logger.error("Exception during audio upload processing: %s", exc, exc_info=True)
        return ResponseCommon.error_response(
            message=f"Upload failed: {exc}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).to_response()


@router.post("/uploadAudioChunk")
async def upload_audio_chunk(
    audio: Optional[UploadFile] = File(None),
    sessionId: Optional[str] = Form(None),
    chunkNumber: Optional[str] = Form(None),
    totalChunks: Optional[str] = Form(None),
    filename: Optional[str] = Form(None),
    mimeType: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Upload one chunk of a chunked upload. Chunks may arrive in any order.

    Maximum chunk size: 25MB
    """
    logger.info("Triggered endpoint: uploadAudioChunk")

    try:
        form = ChunkUploadForm(
            session_id=sessionId,
            chunk_number=_parse_int(chunkNumber),
            total_chunks=_parse_int(totalChunks),
            filename=filename,
            mime_type=mimeType,
        )
    except PydanticValidationError:
        raise MissingField(CommonMessage.MISSING_CHUNK_METADATA)

    try:
        uploaded = await audio_service.read_upload(
            audio, audio_service.max_chunk_size, CommonMessage.CHUNK_TOO_LARGE
        )
        if not form.is_complete():
            raise MissingField(CommonMessage.MISSING_CHUNK_METADATA)

        mime_type = uploaded.mime_type
        if mime_type not in audio_service.allowed_formats and form.mime_type:
            mime_type = form.mime_type

        part = chunk_service.append_chunk(
            db,
            store,
            session_id=form.session_id,
            chunk_index=form.chunk_number,
            data=uploaded.data,
            total_chunks=form.total_chunks,
            filename=form.filename,
            mime_type=mime_type,
            user_id=current_user.uid,
        )
        return ResponseCommon.success_response(
            message=CommonMessage.CHUNK_UPLOADED_SUCCESS.format(index=part.chunk_index),
            code=status.HTTP_202_ACCEPTED,
            session_id=form.session_id,
            chunk_number=form.chunk_number,
        ).to_response()
    except AppError:
        raise
    except Exception as exc:
        logger.error("Exception during chunk upload: %s", exc, exc_info=True)
        return ResponseCommon.error_response(
            message=f"Chunk upload failed: {exc}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).to_response()


@router.post("/finalizeChunkedUpload")
async def finalize_chunked_upload(
    body: FinalizeRequest,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    dispatcher: ProcessingDispatcher = Depends(get_dispatcher),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Assemble all chunks of a session into one recording."""
    logger.info("Triggered endpoint: finalizeChunkedUpload")

    if not body.session_id or not body.total_chunks:
        raise MissingField(CommonMessage.MISSING_FINALIZE_FIELDS)

    try:
        finalized = chunk_service.finalize(
            db,
            store,
            user_id=current_user.uid,
            session_id=body.session_id,
            total_chunks=body.total_chunks,
        )
        response = await _dispatch_and_respond(db, store, dispatcher, finalized.ingest, current_user)
        return response.to_response()
    except AppError:
        raise
    except Exception as exc:
        logger.error("Exception during finalize: %s", exc, exc_info=True)
        return ResponseCommon.error_response(
            message=f"Finalize failed: {exc}",
            code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).to_response()
