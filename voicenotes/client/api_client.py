"""Python client for the voice notes API with chunked, parallel uploads."""
import logging
import math
import os
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional

import requests

from voicenotes.client.cache import RecordingsCache

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
CHUNK_SIZE = 5 * 1024 * 1024  # 5MB
MAX_WORKERS = 4  # Parallel upload threads


class ApiClientError(Exception):
    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class RecordingsApiClient:
    def __init__(
        self,
        token_provider: Callable[[], str],
        api_url: str = API_BASE_URL,
        session=None,
        cache: RecordingsCache = None,
        chunk_size: int = CHUNK_SIZE,
        max_workers: int = MAX_WORKERS,
    ):
        self.token_provider = token_provider
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.cache = cache or RecordingsCache()
        self.chunk_size = chunk_size
        self.max_workers = max_workers

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token_provider()}"}

    def _handle(self, response) -> dict:
        try:
            result = response.json()
        except ValueError:
            raise ApiClientError(f"Unexpected response ({response.status_code})", response.status_code)
        if not result.get("success"):
            raise ApiClientError(result.get("message") or "Request failed", response.status_code)
        return result

    def upload_audio(self, data: bytes, filename: str, mime_type: str = "audio/mpeg") -> dict:
        response = self.session.post(
            f"{self.api_url}/uploadAudio",
            files={"audio": (filename, data, mime_type)},
            headers=self._headers(),
        )
        result = self._handle(response)
        self.cache.invalidate_all()
        return result

    def upload_chunk(
        self,
        session_id: str,
        chunk_number: int,
        total_chunks: int,
        data: bytes,
        filename: str,
        mime_type: str,
    ) -> dict:
        response = self.session.post(
            f"{self.api_url}/uploadAudioChunk",
            data={
                "sessionId": session_id,
                "chunkNumber": str(chunk_number),
                "totalChunks": str(total_chunks),
                "filename": filename,
                "mimeType": mime_type,
            },
            files={"audio": (f"{filename}.part{chunk_number}", data, mime_type)},
            headers=self._headers(),
        )
        return self._handle(response)

    def split_chunks(self, data: bytes) -> List[bytes]:
        total = max(1, math.ceil(len(data) / self.chunk_size))
        return [data[i * self.chunk_size:(i + 1) * self.chunk_size] for i in range(total)]

    def upload_chunked(
        self,
        data: bytes,
        filename: str,
        mime_type: str = "audio/mpeg",
        session_id: Optional[str] = None,
    ) -> dict:
        """Upload ``data`` in parallel chunks and finalize the session."""
        session_id = session_id or uuid.uuid4().hex
        chunks = self.split_chunks(data)
        total_chunks = len(chunks)
        logger.info("Uploading %s in %d chunks (session %s)", filename, total_chunks, session_id)

        failures = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(
                    self.upload_chunk, session_id, number, total_chunks, chunk, filename, mime_type
                ): number
                for number, chunk in enumerate(chunks, start=1)
            }
            for future in as_completed(futures):
                number = futures[future]
                try:
                    future.result()
                except Exception as exc:
                    logger.warning("Chunk %d failed: %s", number, exc)
                    failures.append(number)

        if failures:
            raise ApiClientError(f"Chunks failed: {sorted(failures)}; resume with session {session_id}")

        response = self.session.post(
            f"{self.api_url}/finalizeChunkedUpload",
            json={"sessionId": session_id, "totalChunks": total_chunks},
            headers=self._headers(),
        )
        result = self._handle(response)
        self.cache.invalidate_all()
        return result

    def upload_file(self, file_path: str, mime_type: str = "audio/mpeg") -> dict:
        path = Path(file_path)
        data = path.read_bytes()
        if len(data) <= self.chunk_size:
            return self.upload_audio(data, path.name, mime_type)
        return self.upload_chunked(data, path.name, mime_type)

    def list_recordings(self, use_cache: bool = True) -> List[dict]:
        if use_cache:
            cached = self.cache.get_listing()
            if cached is not None:
                return cached
        response = self.session.get(f"{self.api_url}/recordings", headers=self._headers())
        recordings = self._handle(response).get("recordings", [])
        self.cache.put_listing(recordings)
        return recordings

    def get_recording(self, recording_id: str, use_cache: bool = True) -> dict:
        if use_cache:
            cached = self.cache.get(recording_id)
            if cached is not None:
                return cached
        response = self.session.get(f"{self.api_url}/recordings/{recording_id}", headers=self._headers())
        recording = self._handle(response)["recording"]
        self.cache.put(recording)
        return recording

    def delete_recording(self, recording_id: str) -> dict:
        response = self.session.delete(f"{self.api_url}/recordings/{recording_id}", headers=self._headers())
        result = self._handle(response)
        self.cache.invalidate(recording_id)
        return result

    def delete_all_recordings(self) -> dict:
        response = self.session.delete(f"{self.api_url}/deleteAllRecordings", headers=self._headers())
        result = self._handle(response)
        self.cache.invalidate_all()
        return result
