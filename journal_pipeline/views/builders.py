"""View builders turning a single interaction into a partial view update.

Builders are pure: they never touch storage, so the stream consumer and
the inline capture hook can share them and produce identical updates.
"""

from datetime import tzinfo
from typing import ClassVar

from journal_pipeline.events.types import InteractionEvent
from journal_pipeline.views.rules import COMPASS_RULES, CompassRule, classify, local_date_string
from journal_pipeline.views.schemas import ViewName, ViewUpdate


class ViewBuilder:
    """Base class for builders of one daily view."""

    view: ClassVar[ViewName]
    kinds: ClassVar[frozenset[str]]

    def __init__(self, tz: tzinfo | None = None):
        """Initialize builder.

        Args:
            tz: Zone for daily buckets; the host zone when None
        """
        self.tz = tz

    def handles(self, event: InteractionEvent) -> bool:
        return event.kind in self.kinds

    def build(self, event: InteractionEvent) -> ViewUpdate | None:
        raise NotImplementedError

    def _update(self, event: InteractionEvent, field: str, value) -> ViewUpdate:
        return ViewUpdate(
            view=self.view,
            user_id=event.user_id,
            date=local_date_string(event.captured_at, self.tz),
            fields={field: value},
        )


class CompassViewBuilder(ViewBuilder):
    """Builds CompassView updates from compass and reflection interactions."""

    view = "compass"
    kinds = frozenset({"compass", "reflection"})

    def __init__(
        self,
        tz: tzinfo | None = None,
        rules: tuple[CompassRule, ...] = COMPASS_RULES,
    ):
        super().__init__(tz)
        self.rules = rules

    def build(self, event: InteractionEvent) -> ViewUpdate | None:
        if not self.handles(event):
            return None
        match = classify(event, self.rules)
        if match is None:
            return None
        field, value = match
        return self._update(event, field, value)


class WinsViewBuilder(ViewBuilder):
    """Builds WinsView updates from win title and description interactions."""

    view = "wins"
    kinds = frozenset({"win"})

    def build(self, event: InteractionEvent) -> ViewUpdate | None:
        if not self.handles(event):
            return None
        prompt = (event.prompt_text or "").lower()
        if "title" in prompt:
            field = "title_interaction_id"
        elif "description" in prompt:
            field = "description_interaction_id"
        else:
            return None
        return self._update(event, field, str(event.event_id))
