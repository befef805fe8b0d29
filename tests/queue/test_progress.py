"""Tests for the progress polling projection."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeClock, make_payload
from journal_pipeline.queue.progress import ProgressTracker, status_for_state
from journal_pipeline.queue.schemas import JobState
from journal_pipeline.queue.transcription_queue import TranscriptionQueue


@pytest.mark.parametrize(
    ("state", "expected"),
    [
        (JobState.COMPLETED, "transcribed"),
        (JobState.FAILED, "failed"),
        (JobState.ACTIVE, "processing"),
        (JobState.DELAYED, "processing"),
        (JobState.PENDING, "pending"),
        ("paused", "unknown"),
    ],
)
def test_status_mapping(state, expected) -> None:
    assert status_for_state(state) == expected


@pytest.mark.asyncio
async def test_query_by_token_reports_progress(queue: TranscriptionQueue) -> None:
    first = await queue.enqueue(make_payload(stage_id=1, duration_ms=45_000))
    second = await queue.enqueue(make_payload(stage_id=2, duration_ms=90_000))
    await queue.enqueue(make_payload(stage_id=3, correlation_token="other-token"))

    job = await queue.claim("w1")
    await queue.update_progress(job.job_id, "w1", 40)

    statuses = await queue.progress.query_by_token("token-abc")

    assert [s.job_id for s in statuses] == [first.job_id, second.job_id]
    by_stage = {s.stage_id: s for s in statuses}
    assert by_stage[1].status == "processing"
    assert by_stage[1].progress == 40
    assert by_stage[1].duration_ms == 45_000
    assert by_stage[2].status == "pending"
    assert by_stage[2].progress == 0


@pytest.mark.asyncio
async def test_status_sequence_is_monotonic(
    queue: TranscriptionQueue, clock: FakeClock
) -> None:
    """A retried job never reports a status earlier than one already seen."""
    order = ["pending", "processing", "transcribed"]
    await queue.enqueue(make_payload())
    seen = [(await queue.status("token-abc"))[0].status]

    job = await queue.claim("w1")
    seen.append((await queue.status("token-abc"))[0].status)
    await queue.fail(job.job_id, "w1", "timeout")
    seen.append((await queue.status("token-abc"))[0].status)
    clock.advance(2000)
    job = await queue.claim("w1")
    seen.append((await queue.status("token-abc"))[0].status)
    await queue.complete(job.job_id, "w1", {})
    seen.append((await queue.status("token-abc"))[0].status)

    ranks = [order.index(s) for s in seen]
    assert ranks == sorted(ranks)
    assert seen[-1] == "transcribed"


@pytest.mark.asyncio
async def test_unknown_token_is_empty(queue: TranscriptionQueue) -> None:
    assert await queue.progress.query_by_token("nobody") == []


@pytest.mark.asyncio
async def test_disabled_queue_is_empty() -> None:
    tracker = ProgressTracker(TranscriptionQueue(None))
    assert await tracker.query_by_token("token-abc") == []


@pytest.mark.asyncio
async def test_backend_error_is_swallowed() -> None:
    queue = MagicMock()
    queue.available = True
    queue.jobs_for_token = AsyncMock(side_effect=RuntimeError("connection reset"))

    tracker = ProgressTracker(queue)

    assert await tracker.query_by_token("token-abc") == []
