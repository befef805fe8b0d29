"""Base type for records appended to the interaction feed."""

from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """Immutable fact appended to a feed.

    Feed consumers may see an event more than once, so anything derived
    from events must tolerate replays.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # Fields kept out of the serialized payload: identity and recording
    # time have their own columns, and store-assigned values are re-attached
    # on read.
    store_excluded: ClassVar[frozenset[str]] = frozenset({"event_id", "timestamp"})

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event was recorded",
    )

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_store_dict(self) -> dict[str, Any]:
        """Split the event into indexed columns and a JSON payload."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "data": self.model_dump(mode="json", exclude=set(self.store_excluded)),
        }
