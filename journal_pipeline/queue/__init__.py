"""Durable transcription job queue.

Provides:
- TranscriptionQueue: enqueue/inspect facade plus worker-side leasing
- ProgressTracker: polling projection keyed by correlation token
- Queue schemas (payloads, handles, statuses, stats)
"""

from journal_pipeline.queue.progress import ProgressTracker, status_for_state
from journal_pipeline.queue.schemas import (
    JobDetail,
    JobHandle,
    JobOptions,
    JobPayload,
    JobState,
    JobStatus,
    QueueStats,
    TranscriptionJob,
    compute_priority,
)
from journal_pipeline.queue.transcription_queue import TranscriptionQueue

__all__ = [
    "TranscriptionQueue",
    "ProgressTracker",
    "status_for_state",
    "compute_priority",
    "JobDetail",
    "JobHandle",
    "JobOptions",
    "JobPayload",
    "JobState",
    "JobStatus",
    "QueueStats",
    "TranscriptionJob",
]
