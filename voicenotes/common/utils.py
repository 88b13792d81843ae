import time

from voicenotes.common.constants import AIPrompts, Common


def now_ms() -> int:
    return int(time.time() * 1000)


def recording_id_from_path(file_path: str) -> str:
    return file_path.replace("/", "_")


def safe_name(value: str) -> str:
    return str(value).replace("/", "_").replace("\\", "_")


def build_audio_path(user_id: str, filename: str, timestamp_ms: int = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"{Common.AUDIO_PREFIX}/{safe_name(user_id)}/{timestamp_ms}-{safe_name(filename)}"


def build_chunk_path(user_id: str, session_id: str, chunk_index: int) -> str:
    return f"{Common.CHUNKS_PREFIX}/{safe_name(user_id)}/{safe_name(session_id)}/{chunk_index}"


def build_recommendations_system_prompt() -> str:
    return AIPrompts.RECOMMENDATIONS_SYSTEM_PROMPT


def build_transcription_prompt() -> str:
    return AIPrompts.TRANSCRIPTION_PROMPT
