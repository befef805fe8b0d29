"""Tests for CompassViewBuilder and WinsViewBuilder."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from conftest import make_interaction
from journal_pipeline.views.builders import CompassViewBuilder, WinsViewBuilder


class TestCompassViewBuilder:
    """Tests for compass view updates."""

    def test_builds_single_field_update(self) -> None:
        builder = CompassViewBuilder(tz=ZoneInfo("UTC"))
        update = builder.build(make_interaction(numeric_answer=72))

        assert update is not None
        assert update.view == "compass"
        assert update.user_id == "user-1"
        assert update.date == "2024-03-05"
        assert update.fields == {"mood": 72}

    def test_uses_local_date(self) -> None:
        builder = CompassViewBuilder(tz=ZoneInfo("America/Los_Angeles"))
        event = make_interaction(captured_at=datetime(2024, 3, 6, 6, 0, tzinfo=UTC))

        assert builder.build(event).date == "2024-03-05"

    def test_handles_reflection_kind(self) -> None:
        builder = CompassViewBuilder(tz=ZoneInfo("UTC"))
        event = make_interaction(
            kind="reflection",
            prompt_text="What would you improve tomorrow?",
            numeric_answer=None,
            response_text="Plan the morning",
        )

        assert builder.build(event).fields == {"improvement_note": "Plan the morning"}

    def test_ignores_other_kinds(self) -> None:
        builder = CompassViewBuilder()
        assert builder.build(make_interaction(kind="win")) is None
        assert builder.build(make_interaction(kind="goal")) is None

    def test_same_event_builds_same_update(self) -> None:
        builder = CompassViewBuilder(tz=ZoneInfo("UTC"))
        event = make_interaction()
        assert builder.build(event) == builder.build(event)


class TestWinsViewBuilder:
    """Tests for wins view updates."""

    def test_title(self) -> None:
        event = make_interaction(
            kind="win",
            prompt_text="Give your win a title",
            numeric_answer=None,
            response_text="Shipped v2",
        )
        update = WinsViewBuilder(tz=ZoneInfo("UTC")).build(event)

        assert update.view == "wins"
        assert update.date == "2024-03-05"
        assert update.fields == {"title_interaction_id": str(event.event_id)}

    def test_description(self) -> None:
        event = make_interaction(
            kind="win",
            prompt_text="Add a short DESCRIPTION",
            numeric_answer=None,
            response_text="After three weeks of work",
        )
        update = WinsViewBuilder(tz=ZoneInfo("UTC")).build(event)

        assert update.fields == {"description_interaction_id": str(event.event_id)}

    def test_title_checked_before_description(self) -> None:
        event = make_interaction(
            kind="win",
            prompt_text="Title and description",
            numeric_answer=None,
            response_text="x",
        )
        update = WinsViewBuilder().build(event)

        assert list(update.fields) == ["title_interaction_id"]

    def test_other_prompts_ignored(self) -> None:
        event = make_interaction(
            kind="win", prompt_text="Who helped you?", response_text="Sam"
        )
        assert WinsViewBuilder().build(event) is None

    def test_ignores_compass(self) -> None:
        assert WinsViewBuilder().build(make_interaction(prompt_text="title")) is None
