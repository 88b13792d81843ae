from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecordingOut(CamelModel):
    recording_id: str
    file_path: str
    filename: str
    mime_type: str
    size: int
    file_hash: str
    status: str
    user_id: str
    created_at: Optional[datetime] = None
    transcript: Optional[str] = None
    recommendations: Optional[str] = None
    error: Optional[str] = None
    processing_started_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, recording) -> "RecordingOut":
        return cls(
            recording_id=recording.id,
            file_path=recording.file_path,
            filename=recording.filename,
            mime_type=recording.mime_type,
            size=recording.size,
            file_hash=recording.file_hash,
            status=recording.status,
            user_id=recording.user_id,
            created_at=recording.created_at,
            transcript=recording.transcript,
            recommendations=recording.recommendations,
            error=recording.error,
            processing_started_at=recording.processing_started_at,
            processed_at=recording.processed_at,
            failed_at=recording.failed_at,
        )


class ApiResponse(CamelModel):
    """
    Response envelope shared by every endpoint.
    Unset optional fields are left out of the JSON body.
    """

    success: bool = True
    message: Optional[str] = None
    recording_id: Optional[str] = None
    file_path: Optional[str] = None
    session_id: Optional[str] = None
    chunk_number: Optional[int] = None
    is_duplicate: Optional[bool] = None
    transcript: Optional[str] = None
    recommendations: Optional[str] = None
    recording: Optional[RecordingOut] = None
    recordings: Optional[List[RecordingOut]] = None
    count: Optional[int] = None
