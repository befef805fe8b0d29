"""Tests for ViewRepository and ViewMaterializer."""

import asyncio
from zoneinfo import ZoneInfo

import pytest

from conftest import make_interaction
from journal_pipeline.db.turso import TursoClient
from journal_pipeline.views.builders import CompassViewBuilder, WinsViewBuilder
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository
from journal_pipeline.views.schemas import ViewUpdate


@pytest.fixture
def utc_materializer(view_repo: ViewRepository) -> ViewMaterializer:
    tz = ZoneInfo("UTC")
    return ViewMaterializer(view_repo, [CompassViewBuilder(tz), WinsViewBuilder(tz)])


@pytest.mark.asyncio
async def test_initialize_creates_tables(db_client: TursoClient) -> None:
    await ViewRepository(db_client).initialize()

    result = await db_client.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in result.rows}
    assert {"compass_views", "wins_views"} <= tables


@pytest.mark.asyncio
async def test_upsert_creates_then_updates(view_repo: ViewRepository) -> None:
    await view_repo.apply(
        ViewUpdate(view="compass", user_id="u1", date="2024-03-05", fields={"mood": 70})
    )
    await view_repo.apply(
        ViewUpdate(
            view="compass", user_id="u1", date="2024-03-05", fields={"energy": 40}
        )
    )

    view = await view_repo.get_compass("u1", "2024-03-05")
    assert view.mood == 70
    assert view.energy == 40
    assert view.priority is None
    assert view.created_at is not None
    assert await view_repo.count("compass", "u1") == 1


@pytest.mark.asyncio
async def test_unknown_field_rejected(view_repo: ViewRepository) -> None:
    update = ViewUpdate(
        view="compass", user_id="u1", date="2024-03-05", fields={"mood; DROP": 1}
    )
    with pytest.raises(ValueError):
        await view_repo.apply(update)


@pytest.mark.asyncio
async def test_list_compass_range(view_repo: ViewRepository) -> None:
    for day in ("2024-03-01", "2024-03-02", "2024-03-03"):
        await view_repo.apply(
            ViewUpdate(view="compass", user_id="u1", date=day, fields={"mood": 50})
        )
    await view_repo.apply(
        ViewUpdate(view="compass", user_id="u2", date="2024-03-02", fields={"mood": 1})
    )

    views = await view_repo.list_compass("u1", start="2024-03-02")

    assert [v.date for v in views] == ["2024-03-03", "2024-03-02"]


@pytest.mark.asyncio
async def test_mood_and_energy_share_one_document(
    view_repo: ViewRepository, utc_materializer: ViewMaterializer
) -> None:
    """Two tagged events for the same user and day converge on one view."""
    await utc_materializer.apply(
        make_interaction(numeric_answer=80, interaction_meta={"type": "mood"})
    )
    await utc_materializer.apply(
        make_interaction(numeric_answer=35, interaction_meta={"type": "energy"})
    )

    views = await view_repo.list_compass("user-1")
    assert len(views) == 1
    assert views[0].mood == 80
    assert views[0].energy == 35


@pytest.mark.asyncio
async def test_reapplying_event_is_idempotent(
    view_repo: ViewRepository, utc_materializer: ViewMaterializer
) -> None:
    event = make_interaction(
        kind="reflection",
        prompt_text="What got in the way?",
        numeric_answer=None,
        response_text="lowEnergy",
    )
    await utc_materializer.apply(event)
    first = await view_repo.get_compass("user-1", "2024-03-05")

    await utc_materializer.apply(event)
    second = await view_repo.get_compass("user-1", "2024-03-05")

    assert first == second
    assert second.blocker == "lowEnergy"


@pytest.mark.asyncio
async def test_concurrent_updates_do_not_clobber(
    view_repo: ViewRepository, utc_materializer: ViewMaterializer
) -> None:
    events = [
        make_interaction(numeric_answer=60, interaction_meta={"type": "mood"}),
        make_interaction(numeric_answer=20, interaction_meta={"type": "energy"}),
        make_interaction(
            prompt_text="Top priority?", numeric_answer=None, response_text="health"
        ),
    ]
    await asyncio.gather(*(utc_materializer.apply(e) for e in events))

    view = await view_repo.get_compass("user-1", "2024-03-05")
    assert (view.mood, view.energy, view.priority) == (60, 20, "health")


@pytest.mark.asyncio
async def test_win_title_and_description(
    view_repo: ViewRepository, utc_materializer: ViewMaterializer
) -> None:
    title = make_interaction(
        kind="win", prompt_text="Win title", numeric_answer=None, response_text="Ran 5k"
    )
    description = make_interaction(
        kind="win",
        prompt_text="Win description",
        numeric_answer=None,
        response_text="First time without stopping",
    )
    await utc_materializer.apply(title)
    await utc_materializer.apply(description)

    wins = await view_repo.list_wins("user-1")
    assert len(wins) == 1
    assert wins[0].achieved_at == "2024-03-05"
    assert wins[0].title_interaction_id == str(title.event_id)
    assert wins[0].description_interaction_id == str(description.event_id)


@pytest.mark.asyncio
async def test_unclassified_event_writes_nothing(
    view_repo: ViewRepository, utc_materializer: ViewMaterializer
) -> None:
    updates = await utc_materializer.apply(
        make_interaction(kind="fragment", prompt_text="Random thought")
    )

    assert updates == []
    assert await view_repo.list_compass("user-1") == []
