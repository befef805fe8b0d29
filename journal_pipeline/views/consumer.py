"""Change-feed consumer keeping the daily views up to date.

Tails the interaction store by feed position, hands each interaction to
the ViewMaterializer one at a time, and checkpoints after every event.
A failure never kills the process: the supervised loop backs off and
resumes right after the last checkpoint, so events are applied at
least once.

Usage: python -m journal_pipeline.views.consumer
"""

import asyncio
import signal
from zoneinfo import ZoneInfo

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_when_event_set,
    wait_exponential,
)

from journal_pipeline.config import Settings, get_settings
from journal_pipeline.db.turso import TursoClient
from journal_pipeline.events.checkpoints import CheckpointStore
from journal_pipeline.events.store import InteractionStore
from journal_pipeline.events.types import InteractionEvent
from journal_pipeline.logging_config import configure_logging
from journal_pipeline.views.builders import CompassViewBuilder, WinsViewBuilder
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository

logger = structlog.get_logger()

DEFAULT_CONSUMER_NAME = "view-builder"


class EventStreamConsumer:
    """Sequential, checkpointed consumer of the interaction feed."""

    def __init__(
        self,
        store: InteractionStore,
        materializer: ViewMaterializer,
        checkpoints: CheckpointStore,
        *,
        name: str = DEFAULT_CONSUMER_NAME,
        batch_size: int = 100,
        poll_interval: float = 1.0,
        max_backoff: float = 30.0,
        max_event_failures: int = 5,
    ):
        """Initialize consumer.

        Args:
            store: Interaction store to tail
            materializer: Applies interactions to views
            checkpoints: Persists this consumer's feed position
            name: Checkpoint key
            batch_size: Interactions read per feed query
            poll_interval: Idle wait when the feed is drained (seconds)
            max_backoff: Cap on the wait between recovery attempts (seconds)
            max_event_failures: Failed attempts on one interaction before it
                is logged and skipped
        """
        self._store = store
        self._materializer = materializer
        self._checkpoints = checkpoints
        self.name = name
        self._batch_size = batch_size
        self._poll_interval = poll_interval
        self._max_backoff = max_backoff
        self._max_event_failures = max_event_failures
        self._failures: dict[int, int] = {}
        self.skipped = 0
        self._stopping = asyncio.Event()

    async def process_pending(self) -> int:
        """Apply every interaction appended since the last checkpoint.

        Returns:
            Number of interactions processed

        Raises:
            Exception: The first failure; earlier events stay checkpointed.
                An interaction that keeps failing is skipped once it reaches
                max_event_failures.
        """
        position = await self._checkpoints.get(self.name)
        processed = 0
        while True:
            events = await self._store.read_after(position, self._batch_size)
            for event in events:
                try:
                    await self._materializer.apply(event)
                except Exception as e:
                    if not self._give_up(event, e):
                        raise
                else:
                    self._failures.pop(event.position, None)
                position = event.position
                await self._checkpoints.save(self.name, position)
                processed += 1
            if len(events) < self._batch_size:
                break
        if processed:
            logger.info(
                "Processed interaction feed",
                consumer=self.name,
                processed=processed,
                position=position,
            )
        return processed

    def _give_up(self, event: InteractionEvent, error: Exception) -> bool:
        """Count a failed attempt; True once the interaction should be skipped."""
        failures = self._failures.get(event.position, 0) + 1
        if failures < self._max_event_failures:
            self._failures[event.position] = failures
            return False
        self._failures.pop(event.position, None)
        self.skipped += 1
        logger.error(
            "Skipping interaction after repeated failures",
            consumer=self.name,
            position=event.position,
            event_id=str(event.event_id),
            user_id=event.user_id,
            failures=failures,
            error=str(error),
        )
        return True

    async def run(self) -> None:
        """Follow the feed until stop() is called, recovering from failures."""
        self._stopping.clear()
        logger.info("View builder consumer started", consumer=self.name)
        retrying = AsyncRetrying(
            stop=stop_when_event_set(self._stopping),
            wait=wait_exponential(multiplier=1, max=self._max_backoff),
            retry=retry_if_exception_type(Exception),
            before_sleep=self._log_failure,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self._follow()
        logger.info("View builder consumer stopped", consumer=self.name)

    def stop(self) -> None:
        self._stopping.set()

    async def _follow(self) -> None:
        while not self._stopping.is_set():
            if await self.process_pending():
                continue
            try:
                await asyncio.wait_for(self._stopping.wait(), self._poll_interval)
            except TimeoutError:
                pass

    def _log_failure(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.error(
            "Interaction feed failed, resuming from checkpoint",
            consumer=self.name,
            attempt=retry_state.attempt_number,
            retry_in=round(retry_state.upcoming_sleep, 1),
            error=str(error),
        )


async def run_consumer(settings: Settings) -> None:
    """Run the view builder until SIGINT/SIGTERM."""
    db = TursoClient()
    await db.connect()

    store = InteractionStore(db)
    await store.init_schema()
    checkpoints = CheckpointStore(db)
    await checkpoints.init_schema()
    repository = ViewRepository(db)
    await repository.initialize()

    tz = ZoneInfo(settings.local_timezone) if settings.local_timezone else None
    consumer = EventStreamConsumer(
        store,
        ViewMaterializer(repository, [CompassViewBuilder(tz), WinsViewBuilder(tz)]),
        checkpoints,
        batch_size=settings.stream_batch_size,
        poll_interval=settings.stream_poll_interval_seconds,
        max_backoff=settings.stream_max_backoff_seconds,
        max_event_failures=settings.stream_max_event_failures,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, consumer.stop)

    try:
        await consumer.run()
    finally:
        await db.close()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    asyncio.run(run_consumer(settings))


if __name__ == "__main__":
    main()
