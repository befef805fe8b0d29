"""Progress projection over queued transcription jobs.

Polling clients only see a coarse public status derived from the
job's internal queue state.
"""

import logging
from typing import TYPE_CHECKING

from journal_pipeline.queue.schemas import (
    JobState,
    JobStatus,
    PublicStatus,
    TranscriptionJob,
)

if TYPE_CHECKING:
    from journal_pipeline.queue.transcription_queue import TranscriptionQueue

logger = logging.getLogger(__name__)

STATUS_BY_STATE: dict[JobState, PublicStatus] = {
    JobState.COMPLETED: "transcribed",
    JobState.FAILED: "failed",
    JobState.ACTIVE: "processing",
    # A delayed job is between attempts of the same transcription
    JobState.DELAYED: "processing",
    JobState.PENDING: "pending",
}


def status_for_state(state: str | JobState) -> PublicStatus:
    """Map an internal queue state to the public polling status."""
    try:
        return STATUS_BY_STATE.get(JobState(state), "unknown")
    except ValueError:
        return "unknown"


def to_job_status(job: TranscriptionJob) -> JobStatus:
    return JobStatus(
        stage_id=job.payload.stage_id,
        job_id=job.job_id,
        status=status_for_state(job.state),
        duration_ms=job.payload.duration_ms,
        created_at=job.created_at,
        progress=job.progress,
    )


class ProgressTracker:
    """Read-only view of job progress for one correlation token.

    Never raises: an empty, disabled or failing queue yields an empty list.
    """

    def __init__(self, queue: "TranscriptionQueue"):
        self._queue = queue

    async def query_by_token(self, token: str) -> list[JobStatus]:
        """Return the progress of every retained job submitted with token.

        Args:
            token: Caller correlation token given at enqueue time

        Returns:
            Job statuses, oldest submission first
        """
        if not self._queue.available:
            return []
        try:
            jobs = await self._queue.jobs_for_token(token)
        except Exception as e:
            logger.error(f"Failed to get job statuses: {e}")
            return []
        return [to_job_status(job) for job in jobs]
