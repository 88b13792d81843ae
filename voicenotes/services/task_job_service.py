import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from voicenotes.common.exceptions import QueueError
from voicenotes.services.processing_service import (
    ProcessingJob,
    ProcessingOutcome,
    ProcessingPipeline,
)

logger = logging.getLogger(__name__)

PROCESS_TASK_FUNCTION = "process_recording"


@dataclass(frozen=True)
class DispatchResult:
    queued: bool
    job_id: Optional[str] = None
    outcome: Optional[ProcessingOutcome] = None


class ProcessingDispatcher(ABC):
    """Strategy for invoking the processing pipeline after an upload."""

    @abstractmethod
    async def dispatch(self, db: Session, job: ProcessingJob) -> DispatchResult:
        ...


class InlineDispatcher(ProcessingDispatcher):
    """Runs the pipeline inside the request; the response waits for it."""

    def __init__(self, pipeline: ProcessingPipeline):
        self.pipeline = pipeline

    async def dispatch(self, db: Session, job: ProcessingJob) -> DispatchResult:
        logger.info("Processing recording %s inline", job.recording_id)
        outcome = await self.pipeline.process(db, job)
        return DispatchResult(queued=False, outcome=outcome)


class QueuedDispatcher(ProcessingDispatcher):
    """Enqueues the pipeline on the ARQ worker and returns immediately."""

    def __init__(self, arq_pool):
        self.arq_pool = arq_pool

    @staticmethod
    def job_id_for(recording_id: str) -> str:
        # Re-enqueueing the same recording collapses onto one ARQ job
        return f"process:{recording_id}"

    async def dispatch(self, db: Session, job: ProcessingJob) -> DispatchResult:
        if self.arq_pool is None:
            raise QueueError("ARQ pool not initialized")

        job_id = self.job_id_for(job.recording_id)
        try:
            await self.arq_pool.enqueue_job(
                PROCESS_TASK_FUNCTION,
                _job_id=job_id,
                **job.to_kwargs(),
            )
        except Exception as exc:
            logger.error("Failed to queue processing for %s: %s", job.recording_id, exc)
            raise QueueError(f"Failed to queue task job: {exc}") from exc

        logger.info("Queued processing job %s", job_id)
        return DispatchResult(queued=True, job_id=job_id)
