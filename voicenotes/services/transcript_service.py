"""
Speech-to-text capability.

The pipeline only sees the ``Transcriber`` interface; which variant backs it
is decided once from ``AI_BACKEND`` when the process starts.
"""
import asyncio
import logging
from abc import ABC, abstractmethod

from google import genai
from google.genai import types

from voicenotes.common.exceptions import CapabilityError
from voicenotes.common.utils import build_transcription_prompt
from voicenotes.config import settings

logger = logging.getLogger(__name__)


class Transcriber(ABC):
    timeout_seconds: float = settings.TRANSCRIPTION_TIMEOUT_SECONDS

    @abstractmethod
    async def _transcribe(self, audio: bytes, mime_type: str) -> str:
        ...

    async def transcribe(self, audio: bytes, mime_type: str = "audio/mpeg") -> str:
        """Transcribe audio bytes, surfacing hangs as a CapabilityError."""
        try:
            transcript = await asyncio.wait_for(
                self._transcribe(audio, mime_type), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise CapabilityError(
                f"Transcription timed out after {self.timeout_seconds}s"
            ) from exc
        if not transcript:
            raise CapabilityError("Transcription returned no text")
        return transcript


class MockTranscriber(Transcriber):
    text = "Mocked transcription text"

    async def _transcribe(self, audio: bytes, mime_type: str) -> str:
        logger.info("Mocking transcription for %d bytes", len(audio))
        return self.text


class GeminiTranscriber(Transcriber):
    def __init__(self, client: genai.Client = None, model: str = None):
        self.client = client or genai.Client(
            vertexai=True,
            project=settings.GOOGLE_CLOUD_PROJECT,
            location=settings.GOOGLE_CLOUD_LOCATION,
        )
        self.model = model or settings.GEMINI_MODEL

    async def _transcribe(self, audio: bytes, mime_type: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=audio, mime_type=mime_type),
                    build_transcription_prompt(),
                ],
                config=types.GenerateContentConfig(temperature=0.0),
            )
        except Exception as exc:
            logger.error("Gemini transcription failed: %s", exc, exc_info=True)
            raise CapabilityError(f"Transcription failed: {exc}") from exc
        logger.info("🚀 ~ GeminiTranscriber ~ transcribed %d bytes", len(audio))
        return (response.text or "").strip()


def create_transcriber() -> Transcriber:
    backend = settings.AI_BACKEND.lower()
    if backend == "mock":
        return MockTranscriber()
    if backend == "gemini":
        return GeminiTranscriber()
    raise ValueError(f"Unknown AI_BACKEND: {settings.AI_BACKEND}")
