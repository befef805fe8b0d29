"""Daily view API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from journal_pipeline.views.repository import ViewRepository
from journal_pipeline.views.schemas import CompassView, WinsView

router = APIRouter(prefix="/views", tags=["views"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def get_view_repo(request: Request) -> ViewRepository:
    """Get ViewRepository from app state."""
    if not hasattr(request.app.state, "view_repo"):
        raise HTTPException(status_code=500, detail="ViewRepository not initialized")
    return request.app.state.view_repo


@router.get("/compass", response_model=list[CompassView])
async def list_compass_views(
    user_id: str = Query(..., min_length=1),
    date: str | None = Query(default=None, pattern=DATE_PATTERN),
    start: str | None = Query(default=None, pattern=DATE_PATTERN),
    end: str | None = Query(default=None, pattern=DATE_PATTERN),
    limit: int = Query(default=31, ge=1, le=366),
    repo: ViewRepository = Depends(get_view_repo),
) -> list[CompassView]:
    """Get a user's compass views, newest day first.

    `date` selects a single day and takes precedence over the range.
    """
    if date:
        view = await repo.get_compass(user_id, date)
        return [view] if view else []
    return await repo.list_compass(user_id, start, end, limit)


@router.get("/wins", response_model=list[WinsView])
async def list_wins_views(
    user_id: str = Query(..., min_length=1),
    date: str | None = Query(default=None, pattern=DATE_PATTERN),
    start: str | None = Query(default=None, pattern=DATE_PATTERN),
    end: str | None = Query(default=None, pattern=DATE_PATTERN),
    limit: int = Query(default=31, ge=1, le=366),
    repo: ViewRepository = Depends(get_view_repo),
) -> list[WinsView]:
    """Get a user's wins, newest day first."""
    if date:
        view = await repo.get_wins(user_id, date)
        return [view] if view else []
    return await repo.list_wins(user_id, start, end, limit)
