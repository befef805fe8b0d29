"""Interaction events captured from the journaling UI.

A single event type flows through the view pipeline:
- InteractionEvent: a user answered a prompt (slider, text, voice...)
"""

from datetime import UTC, datetime
from typing import Any, ClassVar, Literal

from pydantic import Field

from journal_pipeline.events.base import Event

InteractionKind = Literal[
    "onboarding",
    "fragment",
    "compass",
    "reflection",
    "goal",
    "win",
]
CaptureMethod = Literal["text", "slider", "voice", "image", "web"]


class InteractionEvent(Event):
    """Emitted when a user interaction is durably recorded.

    The capture timestamp (not the record timestamp) decides which
    daily view the interaction contributes to.
    """

    store_excluded: ClassVar[frozenset[str]] = Event.store_excluded | {"position"}

    user_id: str = Field(min_length=1, description="Owning user")
    kind: InteractionKind = Field(description="Interaction category")
    prompt_text: str | None = Field(
        default=None, description="Literal question shown to the user"
    )
    response_text: str | None = Field(default=None, description="Free-text answer")
    numeric_answer: float | None = Field(
        default=None, description="Slider value (mood, energy...)"
    )
    capture_method: CaptureMethod = Field(default="text")
    interaction_meta: dict[str, Any] | None = Field(
        default=None, description="Structured tag, e.g. {'type': 'mood'}"
    )
    is_private: bool = Field(default=False)
    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the user captured the interaction",
    )
    position: int | None = Field(
        default=None,
        description="Feed position assigned by the store on append",
    )

    @property
    def meta_type(self) -> str | None:
        """Structured classification tag, if the capture path attached one."""
        if not self.interaction_meta:
            return None
        tag = self.interaction_meta.get("type")
        return str(tag) if tag else None
