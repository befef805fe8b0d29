"""Repository layer for data persistence.

Provides repository classes for the records the journal pipeline owns
outside the interaction store and the view tables.
"""

from journal_pipeline.repositories.activity_repo import ActivityRepository
from journal_pipeline.repositories.response_repo import (
    MentorResponse,
    ResponseRepository,
)

__all__ = [
    "ActivityRepository",
    "MentorResponse",
    "ResponseRepository",
]
