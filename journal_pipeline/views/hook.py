"""Inline view update run by the capture endpoint.

Gives the user's own screen an immediately consistent view without
waiting for the stream consumer. The consumer applies the same event
again later; per-field upserts make the second application a no-op.
"""

import structlog

from journal_pipeline.events.types import InteractionEvent
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.schemas import ViewUpdate

logger = structlog.get_logger()


class InlineViewUpdateHook:
    """Applies a freshly captured interaction to the views; never raises."""

    def __init__(self, materializer: ViewMaterializer):
        self._materializer = materializer

    async def apply(self, event: InteractionEvent) -> list[ViewUpdate]:
        try:
            return await self._materializer.apply(event)
        except Exception as e:
            logger.error(
                "Inline view update failed",
                event_id=str(event.event_id),
                user_id=event.user_id,
                kind=event.kind,
                error=str(e),
            )
            return []
