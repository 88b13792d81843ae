from enum import Enum


class RecordingStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class Common:
    ALLOWED_MIME_TYPES = {"audio/mpeg", "audio/wav", "audio/mp3"}
    RECORDINGS_LIST_LIMIT = 100
    AUDIO_PREFIX = "audio"
    CHUNKS_PREFIX = "chunks"
    HASH_READ_SIZE = 64 * 1024


class AIPrompts:
    """AI-related prompts for various operations."""

    TRANSCRIPTION_PROMPT = (
        "Transcribe the spoken content of this audio recording verbatim. "
        "Return only the transcript text without timestamps, speaker labels or commentary."
    )

    RECOMMENDATIONS_SYSTEM_PROMPT = (
        "You are a medical assistant. Provide a concise report with symptoms, "
        "diagnosis, tests, treatment, and follow-up."
    )
