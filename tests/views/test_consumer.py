"""Tests for EventStreamConsumer."""

import asyncio

import pytest

from conftest import make_interaction
from journal_pipeline.events.checkpoints import CheckpointStore
from journal_pipeline.events.store import InteractionStore
from journal_pipeline.views.consumer import EventStreamConsumer
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository


def make_consumer(store, materializer, checkpoints, **kwargs) -> EventStreamConsumer:
    options = {"batch_size": 2, "poll_interval": 0.01, "max_backoff": 0.05}
    options.update(kwargs)
    return EventStreamConsumer(store, materializer, checkpoints, **options)


@pytest.mark.asyncio
async def test_process_pending_applies_in_order(
    interaction_store: InteractionStore,
    checkpoints: CheckpointStore,
    materializer: ViewMaterializer,
    view_repo: ViewRepository,
) -> None:
    for value in (10, 20, 30):
        await interaction_store.append(
            make_interaction(numeric_answer=value, interaction_meta={"type": "mood"})
        )
    consumer = make_consumer(interaction_store, materializer, checkpoints)

    assert await consumer.process_pending() == 3

    # Last write wins in feed order
    views = await view_repo.list_compass("user-1")
    assert views[0].mood == 30
    assert await checkpoints.get(consumer.name) == 3
    assert await consumer.process_pending() == 0


@pytest.mark.asyncio
async def test_resumes_after_failure_from_checkpoint(
    interaction_store: InteractionStore,
    checkpoints: CheckpointStore,
    materializer: ViewMaterializer,
) -> None:
    events = [
        await interaction_store.append(make_interaction(numeric_answer=n))
        for n in (1, 2, 3)
    ]
    seen: list[int] = []
    original = materializer.apply
    failed = False

    async def flaky_apply(event):
        nonlocal failed
        if event.position == 2 and not failed:
            failed = True
            raise RuntimeError("view database unavailable")
        seen.append(event.position)
        return await original(event)

    materializer.apply = flaky_apply
    consumer = make_consumer(interaction_store, materializer, checkpoints)

    with pytest.raises(RuntimeError):
        await consumer.process_pending()
    assert await checkpoints.get(consumer.name) == events[0].position

    assert await consumer.process_pending() == 2
    assert seen == [1, 2, 3]
    assert await checkpoints.get(consumer.name) == events[2].position


@pytest.mark.asyncio
async def test_run_recovers_and_follows_feed(
    interaction_store: InteractionStore,
    checkpoints: CheckpointStore,
    materializer: ViewMaterializer,
    view_repo: ViewRepository,
) -> None:
    """The supervised loop survives a failure and picks up new events."""
    await interaction_store.append(
        make_interaction(numeric_answer=44, interaction_meta={"type": "mood"})
    )
    original = materializer.apply
    calls = 0

    async def fail_once(event):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("transient failure")
        return await original(event)

    materializer.apply = fail_once
    consumer = make_consumer(interaction_store, materializer, checkpoints)
    task = asyncio.create_task(consumer.run())

    await interaction_store.append(
        make_interaction(numeric_answer=55, interaction_meta={"type": "energy"})
    )
    for _ in range(200):
        if await checkpoints.get(consumer.name) == 2:
            break
        await asyncio.sleep(0.01)

    consumer.stop()
    await asyncio.wait_for(task, timeout=2)

    [view] = await view_repo.list_compass("user-1")
    assert view.mood == 44
    assert view.energy == 55
    assert calls == 3


@pytest.mark.asyncio
async def test_checkpoints_are_per_consumer(checkpoints: CheckpointStore) -> None:
    await checkpoints.save("a", 5)
    await checkpoints.save("a", 3)

    assert await checkpoints.get("a") == 5
    assert await checkpoints.get("b") == 0


@pytest.mark.asyncio
async def test_poison_interaction_is_skipped_after_cap(
    interaction_store: InteractionStore,
    checkpoints: CheckpointStore,
    materializer: ViewMaterializer,
    view_repo: ViewRepository,
) -> None:
    """An interaction that always fails stops blocking the feed."""
    await interaction_store.append(
        make_interaction(numeric_answer=10, interaction_meta={"type": "mood"})
    )
    bad = await interaction_store.append(make_interaction(numeric_answer=20))
    await interaction_store.append(
        make_interaction(numeric_answer=30, interaction_meta={"type": "energy"})
    )
    original = materializer.apply

    async def reject_bad(event):
        if event.position == bad.position:
            raise ValueError("cannot apply interaction")
        return await original(event)

    materializer.apply = reject_bad
    consumer = make_consumer(
        interaction_store, materializer, checkpoints, max_event_failures=3
    )

    for _ in range(2):
        with pytest.raises(ValueError):
            await consumer.process_pending()
        assert await checkpoints.get(consumer.name) == bad.position - 1

    assert await consumer.process_pending() == 2
    assert consumer.skipped == 1
    assert await checkpoints.get(consumer.name) == bad.position + 1
    [view] = await view_repo.list_compass("user-1")
    assert view.mood == 10
    assert view.energy == 30


@pytest.mark.asyncio
async def test_failure_count_resets_after_success(
    interaction_store: InteractionStore,
    checkpoints: CheckpointStore,
    materializer: ViewMaterializer,
) -> None:
    event = await interaction_store.append(make_interaction())
    original = materializer.apply
    calls = 0

    async def fail_twice(e):
        nonlocal calls
        calls += 1
        if calls <= 2:
            raise RuntimeError("flaky")
        return await original(e)

    materializer.apply = fail_twice
    consumer = make_consumer(
        interaction_store, materializer, checkpoints, max_event_failures=3
    )

    for _ in range(2):
        with pytest.raises(RuntimeError):
            await consumer.process_pending()
    assert await consumer.process_pending() == 1

    assert consumer.skipped == 0
    assert await checkpoints.get(consumer.name) == event.position
