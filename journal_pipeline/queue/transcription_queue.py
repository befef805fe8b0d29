"""Durable transcription job queue backed by Turso/libSQL.

Jobs live in a single table. Workers compete for jobs through a
conditional update, so each job is leased to exactly one attempt at a
time. When the backend cannot be reached at init the queue runs in a
disabled mode where submission quietly returns None.
"""

import json
import time
from collections.abc import Callable
from typing import Any

import structlog

from journal_pipeline.db.turso import TursoClient
from journal_pipeline.queue.progress import ProgressTracker, status_for_state
from journal_pipeline.queue.schemas import (
    JOB_NAME,
    JobDetail,
    JobHandle,
    JobOptions,
    JobPayload,
    JobState,
    JobStatus,
    QueueStats,
    TranscriptionJob,
    compute_priority,
    from_ms,
)
from journal_pipeline.transcription.errors import ConfigurationError

logger = structlog.get_logger()

_JOB_COLUMNS = """id, name, payload, priority, state, progress, attempts,
    attempts_made, lease_owner, created_at"""

# Claims lost to a competing worker before giving up for this poll
_CLAIM_RETRIES = 5


def _now_ms() -> int:
    return int(time.time() * 1000)


class TranscriptionQueue:
    """Facade over the durable transcription job table.

    Request handlers use enqueue/status/stats; workers use claim,
    update_progress, complete and fail. Every worker-side mutation is
    conditional on the caller still holding the job's lease.
    """

    def __init__(
        self,
        client: TursoClient | None,
        options: JobOptions | None = None,
        *,
        enabled: bool = True,
        clock: Callable[[], int] | None = None,
    ):
        """Initialize the queue facade.

        Args:
            client: Database client for the queue table (owned by the queue)
            options: Default job options
            enabled: Feature switch; False keeps the queue disabled
            clock: Epoch-milliseconds source (injectable for tests)
        """
        self._db = client
        self.options = options or JobOptions()
        self._enabled = enabled and client is not None
        self._clock = clock or _now_ms
        self._available = False
        self.progress = ProgressTracker(self)

    @property
    def available(self) -> bool:
        return self._available

    async def init(self) -> bool:
        """Connect and create the queue schema.

        Any failure leaves the queue disabled; this never raises.

        Returns:
            True if the queue is available
        """
        if self._available:
            return True
        if not self._enabled:
            logger.warning("Transcription queue disabled - background transcription off")
            return False
        try:
            await self._db.connect()
            await self._init_schema()
        except Exception as e:
            logger.warning(
                "Transcription queue backend unavailable - background transcription off",
                error=str(e),
            )
            return False
        self._available = True
        logger.info("Transcription queue initialized")
        return True

    def require_available(self) -> None:
        """Raise ConfigurationError unless the backend is usable."""
        if not self._available:
            raise ConfigurationError("Transcription queue backend is not available")

    async def _init_schema(self) -> None:
        await self._db.apply_schema([
            """CREATE TABLE IF NOT EXISTS transcription_jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                correlation_token TEXT NOT NULL,
                payload TEXT NOT NULL,
                priority INTEGER NOT NULL,
                state TEXT NOT NULL DEFAULT 'pending',
                progress INTEGER NOT NULL DEFAULT 0,
                attempts INTEGER NOT NULL,
                attempts_made INTEGER NOT NULL DEFAULT 0,
                available_at INTEGER NOT NULL,
                lease_owner TEXT,
                lease_expires_at INTEGER,
                return_value TEXT,
                failed_reason TEXT,
                created_at INTEGER NOT NULL,
                processed_on INTEGER,
                finished_on INTEGER
            )""",
            """CREATE INDEX IF NOT EXISTS idx_jobs_claim
            ON transcription_jobs(state, priority, available_at)""",
            """CREATE INDEX IF NOT EXISTS idx_jobs_token
            ON transcription_jobs(correlation_token)""",
        ])

    # ------------------------------------------------------------------
    # Submission side
    # ------------------------------------------------------------------

    async def enqueue(self, payload: JobPayload) -> JobHandle | None:
        """Add a transcription job.

        Args:
            payload: Job data

        Returns:
            JobHandle, or None when the queue is unavailable or the insert fails
        """
        if not self._available:
            logger.debug("Queue not available - job not added")
            return None

        priority = compute_priority(payload.duration_ms)
        now = self._clock()
        try:
            result = await self._db.execute(
                """INSERT INTO transcription_jobs
                   (name, correlation_token, payload, priority, state,
                    attempts, available_at, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    JOB_NAME,
                    payload.correlation_token,
                    payload.model_dump_json(),
                    priority,
                    JobState.PENDING.value,
                    self.options.attempts,
                    now,
                    now,
                ],
            )
        except Exception as e:
            logger.error("Failed to add job", error=str(e))
            return None

        job_id = str(result.last_insert_rowid)
        logger.info(
            "Job added",
            job_id=job_id,
            response_ref=payload.response_ref,
            stage_id=payload.stage_id,
            duration_ms=payload.duration_ms,
            priority=priority,
        )
        return JobHandle(job_id=job_id, priority=priority, payload=payload)

    async def status(self, correlation_token: str) -> list[JobStatus]:
        """Progress of all retained jobs for a correlation token."""
        return await self.progress.query_by_token(correlation_token)

    async def jobs_for_token(self, correlation_token: str) -> list[TranscriptionJob]:
        """Load every retained job submitted with a correlation token."""
        result = await self._db.execute(
            f"""SELECT {_JOB_COLUMNS}
                FROM transcription_jobs
                WHERE correlation_token = ?
                ORDER BY created_at ASC, id ASC""",
            [correlation_token],
        )
        return [self._row_to_job(row) for row in result.rows]

    async def status_by_id(self, job_id: str) -> JobDetail | None:
        """Detailed state of one job, or None if unknown or unavailable."""
        if not self._available:
            return None
        try:
            result = await self._db.execute(
                """SELECT id, state, progress, payload, attempts_made,
                          return_value, failed_reason, processed_on,
                          finished_on, created_at
                   FROM transcription_jobs WHERE id = ?""",
                [int(job_id)],
            )
        except (ValueError, TypeError):
            return None
        except Exception as e:
            logger.error("Error getting job status by id", job_id=job_id, error=str(e))
            return None
        if not result.rows:
            return None

        row = result.rows[0]
        return JobDetail(
            job_id=str(row[0]),
            state=JobState(row[1]),
            status=status_for_state(row[1]),
            progress=row[2],
            payload=JobPayload.model_validate_json(row[3]),
            attempts_made=row[4],
            return_value=json.loads(row[5]) if row[5] else None,
            failed_reason=row[6],
            processed_on=from_ms(row[7]),
            finished_on=from_ms(row[8]),
            created_at=from_ms(row[9]),
        )

    async def stats(self) -> QueueStats:
        """Queue counters for monitoring; never raises."""
        if not self._available:
            return QueueStats(available=False)
        try:
            result = await self._db.execute(
                "SELECT state, COUNT(*) FROM transcription_jobs GROUP BY state"
            )
        except Exception as e:
            logger.error("Failed to get queue stats", error=str(e))
            return QueueStats(available=False, error=str(e))

        counts = {row[0]: row[1] for row in result.rows}
        active = counts.get(JobState.ACTIVE.value, 0)
        waiting = counts.get(JobState.PENDING.value, 0) + counts.get(
            JobState.DELAYED.value, 0
        )
        return QueueStats(
            available=True,
            active=active,
            waiting=waiting,
            completed=counts.get(JobState.COMPLETED.value, 0),
            failed=counts.get(JobState.FAILED.value, 0),
            total=active + waiting,
        )

    async def is_healthy(self) -> bool:
        """Check whether the backend answers."""
        if not self._available:
            return False
        return await self._db.is_healthy()

    async def close(self) -> None:
        """Close the backend connection."""
        self._available = False
        if self._db is not None:
            try:
                await self._db.close()
                logger.info("Transcription queue closed")
            except Exception as e:
                logger.error("Error during queue close", error=str(e))

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    async def claim(self, worker_id: str) -> TranscriptionJob | None:
        """Lease the next runnable job to a worker.

        Highest priority first, then oldest. Returns None when nothing is
        runnable (or every candidate was taken by a competing worker).
        """
        self.require_available()
        for _ in range(_CLAIM_RETRIES):
            now = self._clock()
            result = await self._db.execute(
                """SELECT id FROM transcription_jobs
                   WHERE state IN ('pending', 'delayed') AND available_at <= ?
                   ORDER BY priority DESC, id ASC
                   LIMIT 1""",
                [now],
            )
            if not result.rows:
                return None
            job_id = result.rows[0][0]

            claimed = await self._db.execute(
                """UPDATE transcription_jobs
                   SET state = 'active',
                       lease_owner = ?,
                       lease_expires_at = ?,
                       attempts_made = attempts_made + 1,
                       processed_on = ?
                   WHERE id = ? AND state IN ('pending', 'delayed')""",
                [worker_id, now + self.options.lease_ms, now, job_id],
            )
            if claimed.rows_affected == 1:
                return await self._get_job(job_id)
            logger.debug("Lost claim race", job_id=job_id, worker_id=worker_id)
        return None

    async def update_progress(self, job_id: str, worker_id: str, progress: int) -> bool:
        """Record progress and extend the lease.

        Progress is clamped to [0, 100] and never moves backwards.

        Returns:
            False if the worker no longer holds the lease
        """
        value = max(0, min(100, int(progress)))
        now = self._clock()
        result = await self._db.execute(
            """UPDATE transcription_jobs
               SET progress = MAX(progress, ?), lease_expires_at = ?
               WHERE id = ? AND state = 'active' AND lease_owner = ?""",
            [value, now + self.options.lease_ms, int(job_id), worker_id],
        )
        return result.rows_affected == 1

    async def complete(
        self,
        job_id: str,
        worker_id: str,
        return_value: dict[str, Any] | None = None,
    ) -> bool:
        """Mark a leased job completed."""
        now = self._clock()
        result = await self._db.execute(
            """UPDATE transcription_jobs
               SET state = 'completed', return_value = ?, finished_on = ?,
                   lease_owner = NULL, lease_expires_at = NULL
               WHERE id = ? AND state = 'active' AND lease_owner = ?""",
            [
                json.dumps(return_value) if return_value is not None else None,
                now,
                int(job_id),
                worker_id,
            ],
        )
        if result.rows_affected != 1:
            logger.warning("Complete ignored - lease lost", job_id=job_id)
            return False
        await self._prune(JobState.COMPLETED, self.options.keep_completed)
        return True

    async def fail(
        self,
        job_id: str,
        worker_id: str,
        reason: str,
        *,
        retryable: bool = True,
    ) -> JobState | None:
        """Record a failed attempt.

        Retryable failures with budget left move the job to DELAYED with
        exponential backoff; anything else is a terminal FAILED.

        Returns:
            The job's new state, or None if the worker lost the lease
        """
        result = await self._db.execute(
            """SELECT attempts_made, attempts FROM transcription_jobs
               WHERE id = ? AND state = 'active' AND lease_owner = ?""",
            [int(job_id), worker_id],
        )
        if not result.rows:
            logger.warning("Fail ignored - lease lost", job_id=job_id)
            return None
        attempts_made, attempts = result.rows[0][0], result.rows[0][1]
        now = self._clock()

        if retryable and attempts_made < attempts:
            delay = self.options.backoff_for(attempts_made)
            result = await self._db.execute(
                """UPDATE transcription_jobs
                   SET state = 'delayed', available_at = ?, failed_reason = ?,
                       lease_owner = NULL, lease_expires_at = NULL
                   WHERE id = ? AND state = 'active' AND lease_owner = ?""",
                [now + delay, reason, int(job_id), worker_id],
            )
            if result.rows_affected != 1:
                logger.warning("Fail ignored - lease lost", job_id=job_id)
                return None
            logger.info(
                "Job scheduled for retry",
                job_id=job_id,
                attempts_made=attempts_made,
                delay_ms=delay,
            )
            return JobState.DELAYED

        result = await self._db.execute(
            """UPDATE transcription_jobs
               SET state = 'failed', failed_reason = ?, finished_on = ?,
                   lease_owner = NULL, lease_expires_at = NULL
               WHERE id = ? AND state = 'active' AND lease_owner = ?""",
            [reason, now, int(job_id), worker_id],
        )
        if result.rows_affected != 1:
            logger.warning("Fail ignored - lease lost", job_id=job_id)
            return None
        await self._prune(JobState.FAILED, self.options.keep_failed)
        return JobState.FAILED

    async def reclaim_stalled(self) -> int:
        """Release jobs whose lease expired (e.g. their worker died).

        Jobs with attempts left become runnable again; the rest fail.

        Returns:
            Number of jobs released or failed
        """
        if not self._available:
            return 0
        now = self._clock()
        exhausted = await self._db.execute(
            """UPDATE transcription_jobs
               SET state = 'failed', finished_on = ?,
                   failed_reason = 'job stalled more than allowable limit',
                   lease_owner = NULL, lease_expires_at = NULL
               WHERE state = 'active' AND lease_expires_at < ?
                 AND attempts_made >= attempts""",
            [now, now],
        )
        released = await self._db.execute(
            """UPDATE transcription_jobs
               SET state = 'delayed', available_at = ?,
                   lease_owner = NULL, lease_expires_at = NULL
               WHERE state = 'active' AND lease_expires_at < ?""",
            [now, now],
        )
        count = exhausted.rows_affected + released.rows_affected
        if count:
            logger.warning(
                "Reclaimed stalled jobs",
                released=released.rows_affected,
                failed=exhausted.rows_affected,
            )
            await self._prune(JobState.FAILED, self.options.keep_failed)
        return count

    async def _prune(self, state: JobState, keep: int) -> None:
        """Keep only the most recent `keep` jobs in a terminal state."""
        await self._db.execute(
            """DELETE FROM transcription_jobs
               WHERE state = ? AND id NOT IN (
                   SELECT id FROM transcription_jobs
                   WHERE state = ?
                   ORDER BY finished_on DESC, id DESC
                   LIMIT ?
               )""",
            [state.value, state.value, keep],
        )

    async def _get_job(self, job_id: int) -> TranscriptionJob | None:
        result = await self._db.execute(
            f"SELECT {_JOB_COLUMNS} FROM transcription_jobs WHERE id = ?",
            [job_id],
        )
        if not result.rows:
            return None
        return self._row_to_job(result.rows[0])

    @staticmethod
    def _row_to_job(row) -> TranscriptionJob:
        return TranscriptionJob(
            job_id=str(row[0]),
            name=row[1],
            payload=JobPayload.model_validate_json(row[2]),
            priority=row[3],
            state=JobState(row[4]),
            progress=row[5],
            attempts=row[6],
            attempts_made=row[7],
            lease_owner=row[8],
            created_at=from_ms(row[9]),
        )
