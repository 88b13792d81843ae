import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from voicenotes.common.exceptions import IncompleteSession, SessionNotFound, Unauthorized, ValidationError
from voicenotes.db.base import Base
from voicenotes.db.session import build_engine
from voicenotes.models import ChunkPart, ChunkSession, Recording
from voicenotes.services.chunk_service import chunk_service

CHUNKS = {1: b"first-", 2: b"second-", 3: b"third"}


def _append(db, store, index, session_id="s1", user_id="u1", total=3, data=None):
    return chunk_service.append_chunk(
        db,
        store,
        session_id=session_id,
        chunk_index=index,
        data=CHUNKS[index] if data is None else data,
        total_chunks=total,
        filename="visit.mp3",
        mime_type="audio/mpeg",
        user_id=user_id,
    )


@pytest.mark.parametrize("order", [[1, 2, 3], [3, 1, 2], [2, 3, 1]])
def test_finalize_assembles_in_index_order(db, store, order):
    for index in order:
        _append(db, store, index)

    result = chunk_service.finalize(db, store, user_id="u1", session_id="s1", total_chunks=3)

    assert store.get(result.ingest.file_path) == b"first-second-third"
    recording = db.get(Recording, result.ingest.recording_id)
    assert recording.status == "uploaded"
    assert recording.size == len(b"first-second-third")
    assert result.cleanup.deleted == 3
    assert not store.exists("chunks/u1/s1/1")
    assert db.get(ChunkSession, "s1") is None
    assert db.query(ChunkPart).count() == 0


def test_reuploaded_chunk_replaces_previous_bytes(db, store):
    _append(db, store, 1, data=b"stale-")
    _append(db, store, 1)
    _append(db, store, 2)
    _append(db, store, 3)

    result = chunk_service.finalize(db, store, user_id="u1", session_id="s1", total_chunks=3)
    assert store.get(result.ingest.file_path) == b"first-second-third"


def test_incomplete_session_is_rejected(db, store):
    _append(db, store, 1)
    _append(db, store, 3)

    with pytest.raises(IncompleteSession) as exc_info:
        chunk_service.finalize(db, store, user_id="u1", session_id="s1", total_chunks=3)
    assert exc_info.value.code == 400
    assert db.query(Recording).count() == 0
    assert store.exists("chunks/u1/s1/1")


def test_unknown_session_is_rejected(db, store):
    with pytest.raises(SessionNotFound) as exc_info:
        chunk_service.finalize(db, store, user_id="u1", session_id="nope", total_chunks=1)
    assert exc_info.value.code == 400


def test_foreign_session_is_rejected(db, store):
    _append(db, store, 1, total=1)

    with pytest.raises(Unauthorized) as exc_info:
        chunk_service.finalize(db, store, user_id="intruder", session_id="s1", total_chunks=1)
    assert exc_info.value.code == 400

    with pytest.raises(Unauthorized):
        _append(db, store, 2, user_id="intruder")


def test_declared_total_must_match_session(db, store):
    _append(db, store, 1, total=1)
    with pytest.raises(ValidationError):
        chunk_service.finalize(db, store, user_id="u1", session_id="s1", total_chunks=2)


def test_concurrent_first_append_of_same_chunk_is_merged(tmp_path, store):
    engine = build_engine(f"sqlite:///{tmp_path / 'chunks.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    db = Session()
    competing = []

    def insert_competing_part(session, flush_context, instances):
        if competing or not any(isinstance(obj, ChunkPart) for obj in session.new):
            return
        other = Session()
        try:
            other.add(ChunkPart(session_id="s1", chunk_index=1, path="chunks/u1/s1/1", size=999))
            other.commit()
        finally:
            other.close()
        competing.append(True)

    try:
        _append(db, store, 2)
        event.listen(db, "before_flush", insert_competing_part)
        part = _append(db, store, 1)

        assert competing == [True]
        parts = db.query(ChunkPart).filter(ChunkPart.chunk_index == 1).all()
        assert len(parts) == 1
        assert parts[0].id == part.id
        assert parts[0].size == len(CHUNKS[1])
    finally:
        db.close()
        engine.dispose()
