import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from voicenotes.api.deps import get_current_user, get_db, get_store
from voicenotes.common.common_message import CommonMessage
from voicenotes.common.response_common import ResponseCommon
from voicenotes.schemas.recording import RecordingOut
from voicenotes.services.auth_service import AuthenticatedUser
from voicenotes.services.recording_service import recording_service
from voicenotes.services.storage_service import ObjectStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("recording_endpoints")

router = APIRouter()


@router.get("/test", response_class=PlainTextResponse)
def liveness():
    return CommonMessage.API_RUNNING


@router.get("/recordings")
def list_recordings(
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """List the caller's 100 most recent recordings, newest first."""
    recordings = recording_service.list_recordings(db, current_user.uid)
    items = [RecordingOut.from_model(recording) for recording in recordings]
    return ResponseCommon.success_response(recordings=items, count=len(items)).to_response()


@router.get("/recordings/{recording_id}")
def get_recording(
    recording_id: str,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    recording = recording_service.get_recording(db, current_user.uid, recording_id)
    return ResponseCommon.success_response(recording=RecordingOut.from_model(recording)).to_response()


@router.delete("/recordings/{recording_id}")
def delete_recording(
    recording_id: str,
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Delete one recording and, best-effort, its stored audio."""
    recording_service.delete_recording(db, store, current_user.uid, recording_id)
    return ResponseCommon.success_response(
        message=CommonMessage.RECORDING_DELETED,
        recording_id=recording_id,
    ).to_response()


@router.delete("/deleteAllRecordings")
def delete_all_recordings(
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    result = recording_service.delete_all_recordings(db, store, current_user.uid)
    return ResponseCommon.success_response(
        message=CommonMessage.ALL_RECORDINGS_DELETED,
        count=result.count,
    ).to_response()
