"""APScheduler integration for queue maintenance in the worker process.

Periodically releases jobs whose lease expired so a crashed worker's
jobs are picked up by another one.
"""

from contextlib import asynccontextmanager
from datetime import UTC
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from journal_pipeline.queue.transcription_queue import TranscriptionQueue

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()

STALLED_JOB_ID = "reclaim_stalled_jobs"


async def reclaim_stalled_jobs(queue: TranscriptionQueue) -> None:
    """Scheduled job: release expired leases.

    Errors are logged; the next run tries again.
    """
    try:
        count = await queue.reclaim_stalled()
        if count:
            logger.info("Released stalled jobs", count=count)
    except Exception as e:
        logger.error("Stalled job check failed", error=str(e))


@asynccontextmanager
async def maintenance_scheduler(
    queue: TranscriptionQueue,
    interval_seconds: int = 30,
) -> "AsyncGenerator[AsyncIOScheduler, None]":
    """Run queue maintenance for the lifetime of the context.

    Usage:
        async with maintenance_scheduler(queue) as scheduler:
            # Stalled jobs are reclaimed every interval_seconds
            ...
    """
    scheduler = AsyncIOScheduler(timezone=UTC)
    scheduler.add_job(
        reclaim_stalled_jobs,
        "interval",
        seconds=interval_seconds,
        args=[queue],
        id=STALLED_JOB_ID,
        replace_existing=True,
        max_instances=1,  # Prevent overlap if a check runs long
    )

    logger.info("Starting queue maintenance scheduler")
    scheduler.start()

    try:
        yield scheduler
    finally:
        logger.info("Shutting down queue maintenance scheduler")
        scheduler.shutdown(wait=False)
