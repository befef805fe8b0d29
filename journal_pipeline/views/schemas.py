"""Daily view documents materialized from interaction events.

These schemas represent read models keyed by (user, local date),
optimized for the daily compass and wins screens.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

Completion = Literal[0, 20, 40, 60, 80, 100]
Blocker = Literal["priorityShift", "emergency", "lowEnergy", "overScoped", "other"]

COMPLETION_VALUES: frozenset[int] = frozenset({0, 20, 40, 60, 80, 100})
BLOCKER_VALUES: frozenset[str] = frozenset(
    {"priorityShift", "emergency", "lowEnergy", "overScoped", "other"}
)


class CompassView(BaseModel):
    """One user's morning compass and evening reflection for a day.

    Every field besides the key is set independently by its own event.
    """

    user_id: str = Field(description="Owning user")
    date: str = Field(description="Local calendar date (YYYY-MM-DD)")
    mood: float | None = Field(default=None, description="Mood slider value")
    energy: float | None = Field(default=None, description="Energy slider value")
    alignment: float | None = Field(default=None, description="Legacy slider value")
    priority: str | None = Field(default=None, description="Top priority key")
    priority_note: str | None = Field(default=None, description="Priority details")
    note: str | None = Field(default=None, description="Morning journal entry")
    completion: Completion | None = Field(default=None)
    blocker: Blocker | None = Field(default=None)
    improvement_note: str | None = Field(default=None)
    reflection_interaction_id: str | None = Field(
        default=None, description="Interaction holding the evening reflection"
    )
    created_at: str | None = Field(default=None, description="When view created")


class WinsView(BaseModel):
    """A user's win for a day, assembled from a title and a description."""

    user_id: str = Field(description="Owning user")
    achieved_at: str = Field(description="Local calendar date (YYYY-MM-DD)")
    title_interaction_id: str | None = Field(default=None)
    description_interaction_id: str | None = Field(default=None)
    created_at: str | None = Field(default=None, description="When view created")


ViewName = Literal["compass", "wins"]


class ViewUpdate(BaseModel):
    """Partial, idempotent upsert produced by a view builder.

    `fields` are overwritten on every application; the key is only
    written when the document is first created.
    """

    view: ViewName
    user_id: str
    date: str
    fields: dict[str, Any] = Field(default_factory=dict)
