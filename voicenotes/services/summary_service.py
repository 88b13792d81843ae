import asyncio
import logging
from abc import ABC, abstractmethod

from google import genai
from google.genai import types

from voicenotes.common.exceptions import CapabilityError
from voicenotes.common.utils import build_recommendations_system_prompt
from voicenotes.config import settings

logger = logging.getLogger(__name__)


class Summarizer(ABC):
    timeout_seconds: float = settings.SUMMARY_TIMEOUT_SECONDS

    @abstractmethod
    async def _summarize(self, transcript: str) -> str:
        ...

    async def summarize(self, transcript: str) -> str:
        try:
            summary = await asyncio.wait_for(self._summarize(transcript), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise CapabilityError(f"Summarization timed out after {self.timeout_seconds}s") from exc
        if not summary:
            raise CapabilityError("Summarization returned no text")
        return summary


class MockSummarizer(Summarizer):
    text = "Mocked medical recommendations"

    async def _summarize(self, transcript: str) -> str:
        logger.info("Mocking recommendations for transcript of %d chars", len(transcript))
        return self.text


class GeminiSummarizer(Summarizer):
    def __init__(self, client: genai.Client = None, model: str = None):
        self.client = client or genai.Client(
            vertexai=True,
            project=settings.GOOGLE_CLOUD_PROJECT,
            location=settings.GOOGLE_CLOUD_LOCATION,
        )
        self.model = model or settings.GEMINI_MODEL

    async def _summarize(self, transcript: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=transcript,
                config=types.GenerateContentConfig(
                    system_instruction=build_recommendations_system_prompt(),
                    temperature=0.7,
                ),
            )
        except Exception as exc:
            logger.error("Failed to generate recommendations: %s", exc, exc_info=True)
            raise CapabilityError(f"Summarization failed: {exc}") from exc
        return (response.text or "").strip()


def create_summarizer() -> Summarizer:
    backend = settings.AI_BACKEND.lower()
    if backend == "mock":
        return MockSummarizer()
    if backend == "gemini":
        return GeminiSummarizer()
    raise ValueError(f"Unknown AI_BACKEND: {settings.AI_BACKEND}")
