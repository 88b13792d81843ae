import hashlib

import pytest

from voicenotes.common.exceptions import HashingFailed
from voicenotes.services.hashing_service import compute_bytes_hash, compute_hash, compute_stored_hash


def test_hash_is_deterministic_md5():
    data = b"voice note payload" * 1000
    assert compute_bytes_hash(data) == hashlib.md5(data).hexdigest()
    assert compute_bytes_hash(data) == compute_bytes_hash(data)


def test_block_boundaries_do_not_change_digest():
    data = bytes(range(256)) * 512
    blocks = [data[i:i + 1000] for i in range(0, len(data), 1000)]
    assert compute_hash(blocks) == compute_bytes_hash(data)


def test_stored_hash_matches_in_memory_hash(store):
    data = b"\x00\x01" * 70000
    store.put("audio/u/1-a.mp3", data)
    assert compute_stored_hash(store, "audio/u/1-a.mp3") == compute_bytes_hash(data)


def test_read_error_raises_hashing_failed():
    def broken():
        yield b"abc"
        raise IOError("connection reset")

    with pytest.raises(HashingFailed):
        compute_hash(broken())


def test_missing_object_fails(store):
    with pytest.raises(HashingFailed):
        compute_stored_hash(store, "audio/u/missing.mp3")
