"""Health, liveness and readiness endpoints."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from journal_pipeline.config import settings

router = APIRouter(prefix="/health", tags=["health"])

CheckResult = str  # "ok" | "failed" | "disabled" | "not_configured"


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Readiness verdict plus the result of every component check.

    Only required components decide the verdict; optional ones are
    reported for dashboards.
    """

    status: str
    checks: dict[str, CheckResult]


async def _check(is_healthy: Callable[[], Awaitable[bool]]) -> CheckResult:
    try:
        return "ok" if await is_healthy() else "failed"
    except Exception:
        return "failed"


@router.get("/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        environment=settings.app_env,
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Process is up; says nothing about dependencies."""
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> ReadinessResponse:
    """Whether the API can serve capture and view traffic.

    The database is required. The transcription queue is optional:
    capture and views keep working while background transcription is off.
    """
    state = request.app.state
    required: dict[str, CheckResult] = {"api": "ok"}

    db = getattr(state, "db", None)
    required["database"] = await _check(db.is_healthy) if db else "not_configured"

    queue = getattr(state, "transcription_queue", None)
    if queue is None or not queue.available:
        queue_check = "disabled"
    else:
        queue_check = await _check(queue.is_healthy)

    ready = all(result == "ok" for result in required.values())
    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        checks={**required, "transcription_queue": queue_check},
    )
