"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from journal_pipeline.db.turso import TursoClient
from journal_pipeline.events.checkpoints import CheckpointStore
from journal_pipeline.events.store import InteractionStore
from journal_pipeline.events.types import InteractionEvent
from journal_pipeline.main import app
from journal_pipeline.queue.schemas import JobOptions, JobPayload
from journal_pipeline.queue.transcription_queue import TranscriptionQueue
from journal_pipeline.repositories.activity_repo import ActivityRepository
from journal_pipeline.repositories.response_repo import ResponseRepository
from journal_pipeline.services.activity import ActivityTracker, TTLCache
from journal_pipeline.views.hook import InlineViewUpdateHook
from journal_pipeline.views.materializer import ViewMaterializer
from journal_pipeline.views.repository import ViewRepository


class FakeClock:
    """Epoch-milliseconds clock advanced by hand."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_payload(**overrides: Any) -> JobPayload:
    data = {
        "response_ref": "resp-1",
        "audio_locator": "uploads/answer-1.webm",
        "stage_id": 1,
        "correlation_token": "token-abc",
        "duration_ms": 30_000,
    }
    data.update(overrides)
    return JobPayload(**data)


def make_interaction(**overrides: Any) -> InteractionEvent:
    data = {
        "user_id": "user-1",
        "kind": "compass",
        "prompt_text": "How is your mood today?",
        "numeric_answer": 70,
        "captured_at": datetime(2024, 3, 5, 9, 30, tzinfo=UTC),
    }
    data.update(overrides)
    return InteractionEvent(**data)


@pytest.fixture
async def db_client(tmp_path: Path) -> AsyncIterator[TursoClient]:
    """Create a temp file database client for testing."""
    db_path = tmp_path / "test_pipeline.db"
    client = TursoClient(url=f"file:{db_path}")
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def queue(tmp_path: Path, clock: FakeClock) -> AsyncIterator[TranscriptionQueue]:
    """Initialized queue on its own temp database."""
    q = TranscriptionQueue(
        TursoClient(url=f"file:{tmp_path / 'test_queue.db'}"),
        JobOptions(attempts=3, backoff_ms=2000, lease_ms=60_000),
        clock=clock,
    )
    assert await q.init()
    yield q
    await q.close()


@pytest.fixture
async def interaction_store(db_client: TursoClient) -> InteractionStore:
    store = InteractionStore(db_client)
    await store.init_schema()
    return store


@pytest.fixture
async def checkpoints(db_client: TursoClient) -> CheckpointStore:
    store = CheckpointStore(db_client)
    await store.init_schema()
    return store


@pytest.fixture
async def view_repo(db_client: TursoClient) -> ViewRepository:
    repo = ViewRepository(db_client)
    await repo.initialize()
    return repo


@pytest.fixture
def materializer(view_repo: ViewRepository) -> ViewMaterializer:
    return ViewMaterializer(view_repo)


@pytest.fixture
async def client(
    db_client: TursoClient,
    interaction_store: InteractionStore,
    view_repo: ViewRepository,
    materializer: ViewMaterializer,
    queue: TranscriptionQueue,
) -> AsyncIterator[AsyncClient]:
    """Create async test client for FastAPI app with database."""
    response_repo = ResponseRepository(db_client)
    await response_repo.initialize()
    activity_repo = ActivityRepository(db_client)
    await activity_repo.initialize()

    # Set up app state
    app.state.db = db_client
    app.state.interaction_store = interaction_store
    app.state.view_repo = view_repo
    app.state.view_hook = InlineViewUpdateHook(materializer)
    app.state.response_repo = response_repo
    app.state.activity_tracker = ActivityTracker(activity_repo, TTLCache())
    app.state.transcription_queue = queue

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up app state
    for name in (
        "db",
        "interaction_store",
        "view_repo",
        "view_hook",
        "response_repo",
        "activity_tracker",
        "transcription_queue",
    ):
        delattr(app.state, name)
