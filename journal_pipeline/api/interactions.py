"""Interaction capture API endpoints.

Captured interactions are appended to the interaction store, applied
inline to the daily views, and picked up again by the view builder
consumer from the store's feed.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field, model_validator

from journal_pipeline.events.store import InteractionStore
from journal_pipeline.events.types import CaptureMethod, InteractionEvent, InteractionKind
from journal_pipeline.services.activity import ActivityTracker
from journal_pipeline.views.hook import InlineViewUpdateHook

router = APIRouter(prefix="/interactions", tags=["interactions"])


class CaptureRequest(BaseModel):
    """Request body for capturing an interaction."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(min_length=1, description="Owning user")
    kind: InteractionKind
    prompt_text: str | None = None
    response_text: str | None = None
    numeric_answer: float | None = None
    capture_method: CaptureMethod = "text"
    interaction_meta: dict[str, Any] | None = None
    is_private: bool = False
    captured_at: datetime | None = Field(
        default=None, description="Capture time; now when omitted"
    )

    @model_validator(mode="after")
    def require_answer(self) -> "CaptureRequest":
        if not self.response_text and self.numeric_answer is None:
            raise ValueError("Either response_text or numeric_answer must be provided")
        return self


class InteractionListResponse(BaseModel):
    """Paged list of a user's interactions."""

    interactions: list[InteractionEvent]
    limit: int
    offset: int
    has_more: bool


def get_interaction_store(request: Request) -> InteractionStore:
    """Get InteractionStore from app state."""
    if not hasattr(request.app.state, "interaction_store"):
        raise HTTPException(status_code=500, detail="InteractionStore not initialized")
    return request.app.state.interaction_store


def get_view_hook(request: Request) -> InlineViewUpdateHook:
    """Get InlineViewUpdateHook from app state."""
    if not hasattr(request.app.state, "view_hook"):
        raise HTTPException(status_code=500, detail="View hook not initialized")
    return request.app.state.view_hook


def get_activity_tracker(request: Request) -> ActivityTracker | None:
    return getattr(request.app.state, "activity_tracker", None)


@router.post(
    "",
    response_model=InteractionEvent,
    status_code=status.HTTP_201_CREATED,
)
async def capture_interaction(
    body: CaptureRequest,
    store: InteractionStore = Depends(get_interaction_store),
    hook: InlineViewUpdateHook = Depends(get_view_hook),
    tracker: ActivityTracker | None = Depends(get_activity_tracker),
) -> InteractionEvent:
    """Record an interaction and update the user's daily views.

    The request succeeds once the interaction is stored, even if the
    inline view update fails.
    """
    data = body.model_dump(exclude={"captured_at"})
    event = InteractionEvent(
        **data,
        captured_at=body.captured_at or datetime.now(UTC),
    )
    event = await store.append(event)
    await hook.apply(event)
    if tracker is not None:
        await tracker.touch(event.user_id)
    return event


@router.get("", response_model=InteractionListResponse)
async def list_interactions(
    user_id: str = Query(..., min_length=1, description="Owning user"),
    kind: InteractionKind | None = Query(default=None),
    limit: int = Query(default=25, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    store: InteractionStore = Depends(get_interaction_store),
) -> InteractionListResponse:
    """List a user's interactions, most recent capture first."""
    interactions = await store.list_for_user(user_id, kind, limit, offset)
    return InteractionListResponse(
        interactions=interactions,
        limit=limit,
        offset=offset,
        has_more=len(interactions) == limit,
    )


@router.get("/{interaction_id}", response_model=InteractionEvent)
async def get_interaction(
    interaction_id: UUID,
    user_id: str = Query(..., min_length=1),
    store: InteractionStore = Depends(get_interaction_store),
) -> InteractionEvent:
    """Get one of a user's interactions."""
    event = await store.get(interaction_id)
    if event is None or event.user_id != user_id:
        raise HTTPException(status_code=404, detail="Interaction not found")
    return event
