from .recording_model import Recording
from .deduplication_model import Deduplication
from .chunk_session_model import ChunkSession, ChunkPart
from .transcription_cache_model import TranscriptionCache

__all__ = [
    "Recording",
    "Deduplication",
    "ChunkSession",
    "ChunkPart",
    "TranscriptionCache",
]
