"""
Object store used for audio files and upload chunks.

Paths are opaque, slash separated keys such as ``audio/<uid>/<ts>-name.mp3``.
Two backends exist: a local directory (development and tests) and a Google
Cloud Storage bucket (production).
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List

from google.api_core import retry as gcp_retry
from google.cloud import storage as gcs

from voicenotes.common.constants import Common
from voicenotes.common.exceptions import StorageError
from voicenotes.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """Outcome of a best-effort bulk delete."""

    attempted: int = 0
    failures: int = 0
    failed_paths: List[str] = field(default_factory=list)

    @property
    def deleted(self) -> int:
        return self.attempted - self.failures


class ObjectStore(ABC):
    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str = None) -> None:
        ...

    @abstractmethod
    def get(self, path: str) -> bytes:
        ...

    @abstractmethod
    def stream(self, path: str, read_size: int = Common.HASH_READ_SIZE) -> Iterator[bytes]:
        ...

    @abstractmethod
    def size(self, path: str) -> int:
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    def delete_many(self, paths: Iterable[str]) -> CleanupReport:
        """Delete every path, logging instead of raising on failure."""
        report = CleanupReport()
        for path in paths:
            report.attempted += 1
            try:
                self.delete(path)
            except Exception as exc:
                report.failures += 1
                report.failed_paths.append(path)
                logger.warning("Best-effort delete failed for %s: %s", path, exc)
        if report.failures:
            logger.warning(
                "Cleanup finished with %d/%d failures", report.failures, report.attempted
            )
        return report


class LocalObjectStore(ObjectStore):
    def __init__(self, root_dir: str):
        self.root = Path(root_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise StorageError(f"Invalid object path: {path}")
        return target

    def put(self, path: str, data: bytes, content_type: str = None) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as buffer:
                buffer.write(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    def get(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def stream(self, path: str, read_size: int = Common.HASH_READ_SIZE) -> Iterator[bytes]:
        target = self._resolve(path)
        try:
            with open(target, "rb") as handle:
                while True:
                    block = handle.read(read_size)
                    if not block:
                        break
                    yield block
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def size(self, path: str) -> int:
        try:
            return self._resolve(path).stat().st_size
        except OSError as exc:
            raise StorageError(f"Failed to stat {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink()
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc


class GCSObjectStore(ObjectStore):
    upload_timeout = 600

    def __init__(self, bucket_name: str, client=None):
        if not bucket_name:
            raise StorageError("GCS_BUCKET_NAME not set")
        if client is None:
            client = gcs.Client()
        self.bucket = client.bucket(bucket_name)
        logger.info("Google Cloud Storage client initialized for bucket: %s", bucket_name)

    def _retry(self):
        return gcp_retry.Retry(predicate=gcp_retry.if_transient_error, deadline=self.upload_timeout)

    def put(self, path: str, data: bytes, content_type: str = None) -> None:
        try:
            blob = self.bucket.blob(path)
            blob.chunk_size = 8 * 1024 * 1024
            blob.upload_from_string(
                data,
                content_type=content_type,
                timeout=self.upload_timeout,
                retry=self._retry(),
            )
        except Exception as exc:
            raise StorageError(f"GCS upload failed for {path}: {exc}") from exc

    def get(self, path: str) -> bytes:
        try:
            return self.bucket.blob(path).download_as_bytes()
        except Exception as exc:
            raise StorageError(f"GCS download failed for {path}: {exc}") from exc

    def stream(self, path: str, read_size: int = Common.HASH_READ_SIZE) -> Iterator[bytes]:
        try:
            with self.bucket.blob(path).open("rb") as handle:
                while True:
                    block = handle.read(read_size)
                    if not block:
                        break
                    yield block
        except Exception as exc:
            raise StorageError(f"GCS read failed for {path}: {exc}") from exc

    def size(self, path: str) -> int:
        try:
            blob = self.bucket.get_blob(path)
        except Exception as exc:
            raise StorageError(f"GCS metadata fetch failed for {path}: {exc}") from exc
        if blob is None:
            raise StorageError(f"Object not found: {path}")
        return int(blob.size)

    def exists(self, path: str) -> bool:
        try:
            return self.bucket.blob(path).exists()
        except Exception as exc:
            raise StorageError(f"GCS exists check failed for {path}: {exc}") from exc

    def delete(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete()
        except Exception as exc:
            raise StorageError(f"GCS delete failed for {path}: {exc}") from exc


_object_store: ObjectStore = None


def create_object_store() -> ObjectStore:
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "gcs":
        return GCSObjectStore(settings.GCS_BUCKET_NAME)
    if backend == "local":
        return LocalObjectStore(settings.LOCAL_STORAGE_DIR)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


def get_object_store() -> ObjectStore:
    global _object_store
    if _object_store is None:
        _object_store = create_object_store()
    return _object_store
