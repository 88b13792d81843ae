import logging

from arq import cron
from sqlalchemy.orm import Session

from voicenotes.common.exceptions import ConflictOrAlreadyProcessed
from voicenotes.config import settings
from voicenotes.core.redis_config import REDIS_SETTINGS
from voicenotes.db.session import SessionLocal
from voicenotes.services.deduplication_service import deduplication_service
from voicenotes.services.processing_service import (
    ProcessingJob,
    ProcessingPipeline,
    reconcile_stuck_recordings as reconcile,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("arq.worker")

SWEEP_MINUTES = set(range(0, 60, settings.DEDUP_SWEEP_INTERVAL_MINUTES))


async def startup(ctx):
    from voicenotes.api.deps import build_pipeline

    ctx["pipeline"] = build_pipeline()
    logger.info("Worker pipeline ready")


async def process_recording(
    ctx,
    file_path: str,
    recording_id: str,
    user_id: str,
    file_hash: str,
):
    """
    Background task for processing an uploaded recording.
    Redelivery of an already claimed recording is skipped, not re-run.
    """
    pipeline: ProcessingPipeline = ctx["pipeline"]
    db: Session = SessionLocal()
    try:
        logger.info("Starting processing for recording: %s", recording_id)
        outcome = await pipeline.process(
            db,
            ProcessingJob(
                file_path=file_path,
                recording_id=recording_id,
                user_id=user_id,
                file_hash=file_hash,
            ),
        )
        logger.info("Recording %s finished with status %s", recording_id, outcome.status)
        return {"recording_id": recording_id, "status": outcome.status, "error": outcome.error}
    except ConflictOrAlreadyProcessed as exc:
        logger.info("Skipping recording %s: %s", recording_id, exc.message)
        return {"recording_id": recording_id, "status": "skipped", "error": exc.message}
    finally:
        db.close()


async def cleanup_deduplications(ctx):
    """Scheduled sweep of expired dedup ledger entries."""
    db: Session = SessionLocal()
    try:
        return deduplication_service.sweep_expired(db)
    except Exception as exc:
        logger.error("Cleanup error: %s", exc)
        db.rollback()
        return 0
    finally:
        db.close()


async def reconcile_stuck_recordings(ctx):
    """Scheduled sweep failing recordings stuck in processing."""
    db: Session = SessionLocal()
    try:
        return reconcile(db)
    except Exception as exc:
        logger.error("Reconciliation error: %s", exc)
        db.rollback()
        return 0
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker configuration."""

    functions = [process_recording]
    cron_jobs = [
        cron(cleanup_deduplications, minute=SWEEP_MINUTES),
        cron(reconcile_stuck_recordings, minute=SWEEP_MINUTES),
    ]
    on_startup = startup
    redis_settings = REDIS_SETTINGS
    max_jobs = 10
    job_timeout = 300
    keep_result = 3600
