"""Event infrastructure for the journal pipeline.

Provides:
- Event: Base class for all domain events
- InteractionEvent: A captured user interaction
- InteractionStore: Append-only persistence that doubles as a change feed
- CheckpointStore: Per-consumer feed positions
"""

from journal_pipeline.events.base import Event
from journal_pipeline.events.checkpoints import CheckpointStore
from journal_pipeline.events.store import InteractionStore
from journal_pipeline.events.types import (
    CaptureMethod,
    InteractionEvent,
    InteractionKind,
)

__all__ = [
    # Base
    "Event",
    # Infrastructure
    "InteractionStore",
    "CheckpointStore",
    # Event types
    "InteractionEvent",
    "InteractionKind",
    "CaptureMethod",
]
