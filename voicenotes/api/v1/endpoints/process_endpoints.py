import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from voicenotes.api.deps import get_current_user, get_db, get_pipeline
from voicenotes.common.common_message import CommonMessage
from voicenotes.common.exceptions import ConflictOrAlreadyProcessed, MissingField
from voicenotes.common.response_common import ResponseCommon
from voicenotes.schemas.upload import ProcessRequest
from voicenotes.services.auth_service import AuthenticatedUser
from voicenotes.services.processing_service import ProcessingJob, ProcessingPipeline

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("process_endpoints")

router = APIRouter()


@router.post("/processAudio")
async def process_audio(
    body: ProcessRequest,
    db: Session = Depends(get_db),
    pipeline: ProcessingPipeline = Depends(get_pipeline),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Run transcription and summarization for one uploaded recording.

    A recording is processed at most once; calling this again after it left
    ``uploaded`` returns 400 "Invalid or already processed recording".
    """
    logger.info("Triggered endpoint: processAudio")

    missing = body.missing_fields()
    if missing:
        logger.info("processAudio: Missing fields: %s", missing)
        raise MissingField(CommonMessage.MISSING_FIELDS.format(fields=", ".join(missing)))

    if body.user_id != current_user.uid:
        raise ConflictOrAlreadyProcessed()

    outcome = await pipeline.process(
        db,
        ProcessingJob(
            file_path=body.file_path,
            recording_id=body.recording_id,
            user_id=body.user_id,
            file_hash=body.file_hash,
        ),
    )
    if not outcome.success:
        return ResponseCommon.error_response(
            message=outcome.message,
            code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            recording_id=outcome.recording_id,
        ).to_response()

    return ResponseCommon.success_response(
        message=outcome.message,
        recording_id=outcome.recording_id,
        transcript=outcome.transcript,
        recommendations=outcome.recommendations,
    ).to_response()
