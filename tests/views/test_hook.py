"""Tests for InlineViewUpdateHook."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_interaction
from journal_pipeline.views.hook import InlineViewUpdateHook
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository


@pytest.mark.asyncio
async def test_applies_update(
    materializer: ViewMaterializer, view_repo: ViewRepository
) -> None:
    hook = InlineViewUpdateHook(materializer)

    updates = await hook.apply(make_interaction(numeric_answer=65))

    assert len(updates) == 1
    [view] = await view_repo.list_compass("user-1")
    assert view.mood == 65


@pytest.mark.asyncio
async def test_failure_is_swallowed() -> None:
    materializer = MagicMock()
    materializer.apply = AsyncMock(side_effect=RuntimeError("database is locked"))
    hook = InlineViewUpdateHook(materializer)

    assert await hook.apply(make_interaction()) == []
    materializer.apply.assert_awaited_once()


@pytest.mark.asyncio
async def test_hook_then_consumer_converge(
    materializer: ViewMaterializer, view_repo: ViewRepository
) -> None:
    """The consumer re-applying an event the hook already applied changes nothing."""
    event = make_interaction(
        prompt_text="What's your top priority?", numeric_answer=None, response_text="rest"
    )
    await InlineViewUpdateHook(materializer).apply(event)
    [before] = await view_repo.list_compass("user-1")

    await materializer.apply(event)
    [after] = await view_repo.list_compass("user-1")

    assert before == after
