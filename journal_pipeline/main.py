"""FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

from fastapi import FastAPI

from journal_pipeline.api.router import api_router
from journal_pipeline.config import settings
from journal_pipeline.db.turso import TursoClient
from journal_pipeline.events.store import InteractionStore
from journal_pipeline.logging_config import configure_logging
from journal_pipeline.queue.schemas import JobOptions
from journal_pipeline.queue.transcription_queue import TranscriptionQueue
from journal_pipeline.repositories.activity_repo import ActivityRepository
from journal_pipeline.repositories.response_repo import ResponseRepository
from journal_pipeline.services.activity import ActivityTracker, TTLCache
from journal_pipeline.views.builders import CompassViewBuilder, WinsViewBuilder
from journal_pipeline.views.hook import InlineViewUpdateHook
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


def _build_transcription_queue() -> TranscriptionQueue:
    """Queue facade for the API process.

    Uses its own connection so it can be disabled without affecting the
    interaction store. Tests may turn it off via environment.
    """
    enabled = settings.queue_enabled and not os.environ.get("DISABLE_TRANSCRIPTION_QUEUE")
    return TranscriptionQueue(
        TursoClient.for_queue(settings),
        JobOptions.from_settings(settings),
        enabled=enabled,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Initialize database connection
    - Initialize interaction store and view tables
    - Wire the inline view hook and activity tracker
    - Initialize the transcription queue (disabled on failure)

    Shutdown:
    - Close queue and database connections
    """
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    db = TursoClient()
    await db.connect()
    app.state.db = db
    logger.info(f"Database connected: {db.url}")

    interaction_store = InteractionStore(db)
    await interaction_store.init_schema()
    app.state.interaction_store = interaction_store
    logger.info("Interaction store initialized")

    view_repo = ViewRepository(db)
    await view_repo.initialize()
    app.state.view_repo = view_repo

    tz = ZoneInfo(settings.local_timezone) if settings.local_timezone else None
    materializer = ViewMaterializer(
        view_repo, [CompassViewBuilder(tz), WinsViewBuilder(tz)]
    )
    app.state.view_hook = InlineViewUpdateHook(materializer)
    logger.info("View repository and inline hook initialized")

    response_repo = ResponseRepository(db)
    await response_repo.initialize()
    app.state.response_repo = response_repo

    activity_repo = ActivityRepository(db)
    await activity_repo.initialize()
    app.state.activity_tracker = ActivityTracker(
        activity_repo,
        TTLCache(
            max_entries=settings.activity_cache_size,
            ttl_seconds=settings.activity_ttl_seconds,
        ),
    )

    queue = _build_transcription_queue()
    await queue.init()
    app.state.transcription_queue = queue

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await queue.close()
    await db.close()
    logger.info("Database connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Journal capture, daily views and background transcription",
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(api_router)


def run() -> None:
    import uvicorn

    uvicorn.run(
        "journal_pipeline.main:app",
        host="0.0.0.0",
        port=8000,
    )


if __name__ == "__main__":
    run()
