from dataclasses import dataclass
from typing import List, Optional

from pydantic import Field

from voicenotes.schemas.recording import CamelModel


class ChunkUploadForm(CamelModel):
    """Metadata fields sent next to the binary part of /uploadAudioChunk."""

    session_id: Optional[str] = None
    chunk_number: Optional[int] = Field(default=None, ge=1)
    total_chunks: Optional[int] = Field(default=None, ge=1)
    filename: Optional[str] = None
    mime_type: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.session_id and self.chunk_number and self.total_chunks and self.filename)


class FinalizeRequest(CamelModel):
    session_id: Optional[str] = None
    total_chunks: Optional[int] = Field(default=None, ge=1)


class ProcessRequest(CamelModel):
    file_path: Optional[str] = None
    recording_id: Optional[str] = None
    user_id: Optional[str] = None
    file_hash: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [
            alias
            for alias, value in (
                ("filePath", self.file_path),
                ("recordingId", self.recording_id),
                ("userId", self.user_id),
                ("fileHash", self.file_hash),
            )
            if not value
        ]


@dataclass(frozen=True)
class UploadedAudio:
    """A fully received upload part, already size-checked."""

    filename: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class IngestResult:
    recording_id: str
    file_path: str
    file_hash: Optional[str] = None
    is_duplicate: bool = False
