"""Routes interactions to view builders and persists their updates."""

import structlog

from journal_pipeline.events.types import InteractionEvent
from journal_pipeline.views.builders import CompassViewBuilder, ViewBuilder, WinsViewBuilder
from journal_pipeline.views.repository import ViewRepository
from journal_pipeline.views.schemas import ViewUpdate

logger = structlog.get_logger()


class ViewMaterializer:
    """Applies one interaction to every daily view that handles its kind.

    Shared by the stream consumer and the inline capture hook.
    """

    def __init__(
        self,
        repository: ViewRepository,
        builders: list[ViewBuilder] | None = None,
    ):
        """Initialize materializer.

        Args:
            repository: Persists view updates
            builders: View builders; compass and wins by default
        """
        self.repository = repository
        self.builders = builders or [CompassViewBuilder(), WinsViewBuilder()]

    async def apply(self, event: InteractionEvent) -> list[ViewUpdate]:
        """Build and persist all view updates for an interaction.

        Returns:
            The updates that were written (possibly empty)
        """
        updates = []
        for builder in self.builders:
            if not builder.handles(event):
                continue
            update = builder.build(event)
            if update is None:
                continue
            await self.repository.apply(update)
            updates.append(update)

        if updates:
            logger.debug(
                "Materialized interaction",
                event_id=str(event.event_id),
                views=[(u.view, list(u.fields)) for u in updates],
            )
        else:
            logger.debug(
                "No view update for interaction",
                event_id=str(event.event_id),
                kind=event.kind,
            )
        return updates
