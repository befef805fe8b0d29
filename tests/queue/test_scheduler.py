"""Tests for the queue maintenance scheduler."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from journal_pipeline.queue.scheduler import (
    STALLED_JOB_ID,
    maintenance_scheduler,
    reclaim_stalled_jobs,
)


@pytest.mark.asyncio
async def test_scheduler_registers_reclaim_job() -> None:
    queue = MagicMock()
    queue.reclaim_stalled = AsyncMock(return_value=0)

    async with maintenance_scheduler(queue, interval_seconds=15) as scheduler:
        assert scheduler.running
        job = scheduler.get_job(STALLED_JOB_ID)
        assert job is not None
        assert job.trigger.interval.total_seconds() == 15
        assert job.args == (queue,)

    assert not scheduler.running


@pytest.mark.asyncio
async def test_reclaim_job_calls_queue() -> None:
    queue = MagicMock()
    queue.reclaim_stalled = AsyncMock(return_value=2)

    await reclaim_stalled_jobs(queue)

    queue.reclaim_stalled.assert_awaited_once()


@pytest.mark.asyncio
async def test_reclaim_job_swallows_errors() -> None:
    queue = MagicMock()
    queue.reclaim_stalled = AsyncMock(side_effect=RuntimeError("db gone"))

    await reclaim_stalled_jobs(queue)
