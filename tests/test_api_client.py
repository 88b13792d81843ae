import pytest

from voicenotes.client import ApiClientError, RecordingsApiClient, RecordingsCache
from voicenotes.config import settings
from voicenotes.models import Recording
from voicenotes.services.auth_service import create_access_token

from conftest import FakeArqPool


@pytest.fixture
def api(client):
    return RecordingsApiClient(
        token_provider=lambda: create_access_token("user-1"),
        api_url="http://testserver",
        session=client,
        chunk_size=4,
        max_workers=1,
    )


def test_split_chunks(api):
    assert api.split_chunks(b"0123456789") == [b"0123", b"4567", b"89"]
    assert api.split_chunks(b"") == [b""]


def test_upload_and_list_recordings(api):
    result = api.upload_audio(b"abc", "visit.mp3")

    recordings = api.list_recordings()
    assert [item["recordingId"] for item in recordings] == [result["recordingId"]]
    assert api.get_recording(result["recordingId"])["status"] == "processed"


def test_chunked_upload_is_finalized(api, store):
    result = api.upload_chunked(b"0123456789", "long.mp3", session_id="client-session")

    assert result["success"] is True
    assert store.get(result["filePath"]) == b"0123456789"


def test_delete_invalidates_cache(api, db):
    result = api.upload_audio(b"abc", "visit.mp3")
    api.list_recordings()

    api.delete_recording(result["recordingId"])

    assert api.cache.get(result["recordingId"]) is None
    assert api.list_recordings() == []
    assert db.query(Recording).count() == 0


def test_errors_raise_with_server_message(api):
    with pytest.raises(ApiClientError) as exc_info:
        api.get_recording("missing")
    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == "Recording not found or unauthorized"


def test_cache_invalidate_all():
    cache = RecordingsCache()
    cache.put_listing([{"recordingId": "a", "status": "processed"}, {"recordingId": "b", "status": "failed"}])
    assert [item["recordingId"] for item in cache.get_listing()] == ["a", "b"]

    cache.invalidate("a")
    assert cache.get_listing() is None
    assert cache.get("b") == {"recordingId": "b", "status": "failed"}

    cache.invalidate_all()
    assert cache.get("b") is None


def test_cache_keeps_only_settled_recordings():
    cache = RecordingsCache()
    cache.put_listing([{"recordingId": "a", "status": "processed"}, {"recordingId": "b", "status": "uploaded"}])

    assert cache.get_listing() is None
    assert cache.get("a") is not None
    assert cache.get("b") is None

    cache.put({"recordingId": "c", "status": "processing"})
    assert cache.get("c") is None


def test_polling_sees_queued_recording_finish(api, db, monkeypatch):
    monkeypatch.setattr(settings, "PROCESSING_MODE", "queued")
    api.session.app.state.arq_pool = FakeArqPool()
    recording_id = api.upload_audio(b"abc", "visit.mp3")["recordingId"]

    assert api.get_recording(recording_id)["status"] == "uploaded"
    assert [item["status"] for item in api.list_recordings()] == ["uploaded"]

    db.query(Recording).filter(Recording.id == recording_id).update({"status": "processed"})
    db.commit()

    assert api.get_recording(recording_id)["status"] == "processed"
    assert [item["status"] for item in api.list_recordings()] == ["processed"]
    assert api.cache.get(recording_id)["status"] == "processed"
