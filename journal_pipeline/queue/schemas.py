"""Schemas for the transcription job queue.

Timestamps are stored as epoch milliseconds and exposed as aware
datetimes.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from journal_pipeline.config import Settings

JOB_NAME = "transcribe-audio"
MS_PER_MINUTE = 60_000


class JobState(StrEnum):
    """Internal queue state of a job."""

    PENDING = "pending"
    ACTIVE = "active"
    DELAYED = "delayed"  # waiting out retry backoff
    COMPLETED = "completed"
    FAILED = "failed"


PublicStatus = Literal["pending", "processing", "transcribed", "failed", "unknown"]


def compute_priority(duration_ms: int) -> int:
    """Priority score for a clip: shorter audio scores higher.

    One point is lost per full minute of audio, never dropping below 1.
    """
    return max(1, 100 - duration_ms // MS_PER_MINUTE)


def from_ms(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)


class JobOptions(BaseModel):
    """Default options applied to every enqueued job."""

    attempts: int = Field(default=3, ge=1, description="Total attempts per job")
    backoff_ms: int = Field(
        default=2000, ge=0, description="First retry delay; doubles per attempt"
    )
    keep_completed: int = Field(
        default=10, ge=0, description="Completed jobs retained for inspection"
    )
    keep_failed: int = Field(
        default=5, ge=0, description="Failed jobs retained for inspection"
    )
    lease_ms: int = Field(
        default=120_000, gt=0, description="How long a claim stays valid"
    )

    @classmethod
    def from_settings(cls, config: Settings) -> "JobOptions":
        return cls(
            attempts=config.queue_attempts,
            backoff_ms=config.queue_backoff_ms,
            keep_completed=config.queue_keep_completed,
            keep_failed=config.queue_keep_failed,
            lease_ms=config.worker_lease_ms,
        )

    def backoff_for(self, attempts_made: int) -> int:
        """Exponential delay before the next attempt."""
        return self.backoff_ms * 2 ** max(0, attempts_made - 1)


class JobPayload(BaseModel):
    """Data submitted with a transcription job."""

    model_config = ConfigDict(str_strip_whitespace=True)

    response_ref: str = Field(description="Answer record the transcript belongs to")
    audio_locator: str = Field(min_length=1, description="URL or upload path")
    stage_id: int = Field(description="Question stage the answer belongs to")
    correlation_token: str = Field(
        min_length=1, description="Caller token used for progress polling"
    )
    duration_ms: int = Field(default=0, ge=0, description="Audio duration")
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class JobHandle(BaseModel):
    """Returned to the submitter of a job."""

    job_id: str
    priority: int
    payload: JobPayload


class TranscriptionJob(BaseModel):
    """A job as seen by the worker holding its lease."""

    job_id: str
    name: str = JOB_NAME
    payload: JobPayload
    priority: int
    state: JobState
    progress: int = Field(default=0, ge=0, le=100)
    attempts: int
    attempts_made: int = 0
    lease_owner: str | None = None
    created_at: datetime


class JobStatus(BaseModel):
    """Progress polling item for one job."""

    stage_id: int
    job_id: str
    status: PublicStatus
    duration_ms: int
    created_at: datetime
    progress: int = Field(ge=0, le=100)


class JobDetail(BaseModel):
    """Detailed view of a single job for inspection endpoints."""

    job_id: str
    state: JobState
    status: PublicStatus
    progress: int
    payload: JobPayload
    attempts_made: int
    return_value: dict[str, Any] | None = None
    failed_reason: str | None = None
    processed_on: datetime | None = None
    finished_on: datetime | None = None
    created_at: datetime


class QueueStats(BaseModel):
    """Queue counters for monitoring."""

    available: bool
    active: int = 0
    waiting: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0
    error: str | None = None
