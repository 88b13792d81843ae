import asyncio

from voicenotes import worker
from voicenotes.models import Deduplication, Recording
from voicenotes.services.audio_service import audio_service


def test_process_recording_task(db, store, pipeline):
    result = audio_service.store_and_register(db, store, "user-1", "a.mp3", "audio/mpeg", b"bytes")
    ctx = {"pipeline": pipeline}
    kwargs = audio_service.build_processing_job(result, "user-1").to_kwargs()

    first = asyncio.run(worker.process_recording(ctx, **kwargs))
    redelivered = asyncio.run(worker.process_recording(ctx, **kwargs))

    assert first == {"recording_id": result.recording_id, "status": "processed", "error": None}
    assert redelivered["status"] == "skipped"
    db.expire_all()
    assert db.get(Recording, result.recording_id).status == "processed"


def test_cleanup_deduplications_task(db):
    db.add(Deduplication(signature="old", recording_id="r1", user_id="u1", timestamp=0))
    db.commit()

    assert asyncio.run(worker.cleanup_deduplications({})) == 1
    assert db.query(Deduplication).count() == 0


def test_reconcile_task_runs_without_stuck_rows():
    assert asyncio.run(worker.reconcile_stuck_recordings({})) == 0


def test_worker_settings_register_tasks():
    assert worker.process_recording in worker.WorkerSettings.functions
    assert len(worker.WorkerSettings.cron_jobs) == 2
