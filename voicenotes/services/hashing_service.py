import hashlib
import logging
from typing import Iterable

from voicenotes.common.exceptions import HashingFailed
from voicenotes.services.storage_service import ObjectStore

logger = logging.getLogger(__name__)

# Content fingerprint for caching and dedup only, not an integrity guarantee
HASH_ALGORITHM = "md5"


def compute_hash(blocks: Iterable[bytes]) -> str:
    """Digest an iterable of byte blocks. Any error while reading aborts with HashingFailed."""
    hash_obj = hashlib.new(HASH_ALGORITHM)
    try:
        for block in blocks:
            hash_obj.update(block)
    except Exception as exc:
        logger.error("Hash stream error: %s", exc)
        raise HashingFailed(f"Failed to compute file hash: {exc}") from exc
    return hash_obj.hexdigest()


def compute_bytes_hash(data: bytes) -> str:
    return compute_hash([data])


def compute_stored_hash(store: ObjectStore, path: str) -> str:
    """Hash the persisted copy so the digest matches exactly what was stored."""
    return compute_hash(store.stream(path))
