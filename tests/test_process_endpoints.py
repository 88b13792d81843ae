from voicenotes.api import deps
from voicenotes.models import Recording
from voicenotes.services.audio_service import audio_service
from voicenotes.services.processing_service import ProcessingPipeline

from conftest import FailingTranscriber


def _payload(result, user_id):
    return {
        "filePath": result.file_path,
        "recordingId": result.recording_id,
        "userId": user_id,
        "fileHash": result.file_hash,
    }


def test_missing_fields_are_listed(client, auth):
    response = client.post("/processAudio", json={"filePath": "audio/u/1-a.mp3"}, headers=auth())
    assert response.status_code == 400
    assert response.json()["message"] == "Missing fields: recordingId, userId, fileHash"


def test_process_then_repeat_is_rejected(client, auth, db, store, transcriber):
    result = audio_service.store_and_register(db, store, "user-1", "a.mp3", "audio/mpeg", b"bytes")

    first = client.post("/processAudio", json=_payload(result, "user-1"), headers=auth("user-1"))
    assert first.status_code == 200
    assert first.json()["transcript"] == "Mocked transcription text"

    second = client.post("/processAudio", json=_payload(result, "user-1"), headers=auth("user-1"))
    assert second.status_code == 400
    assert second.json()["message"] == "Invalid or already processed recording"
    assert transcriber.calls == 1


def test_caller_must_own_the_recording(client, auth, db, store):
    result = audio_service.store_and_register(db, store, "user-1", "a.mp3", "audio/mpeg", b"bytes")

    response = client.post("/processAudio", json=_payload(result, "user-1"), headers=auth("intruder"))

    assert response.status_code == 400
    assert db.get(Recording, result.recording_id).status == "uploaded"


def test_processing_failure_returns_500(client, auth, db, store, summarizer):
    failing = ProcessingPipeline(store=store, transcriber=FailingTranscriber(), summarizer=summarizer)
    client.app.dependency_overrides[deps.get_pipeline] = lambda: failing
    result = audio_service.store_and_register(db, store, "user-1", "a.mp3", "audio/mpeg", b"bytes")

    response = client.post("/processAudio", json=_payload(result, "user-1"), headers=auth("user-1"))

    assert response.status_code == 500
    assert response.json()["message"] == "Processing failed: model unavailable"
    recording = db.get(Recording, result.recording_id)
    db.refresh(recording)
    assert recording.status == "failed"
