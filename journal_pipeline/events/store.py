"""Append-only interaction store using Turso/libSQL.

The store persists every captured interaction and doubles as the live
feed for the view builder: each row gets a monotonically increasing
position, and consumers tail the table by position.
"""

import json
import logging
from uuid import UUID

from journal_pipeline.db.turso import TursoClient
from journal_pipeline.events.types import InteractionEvent, InteractionKind

logger = logging.getLogger(__name__)


class InteractionStore:
    """Append-only interaction store using Turso/libSQL.

    Features:
    - Append-only (never update/delete)
    - Position-ordered reads for change-feed consumers
    - Per-user listing for the capture API
    """

    def __init__(self, client: TursoClient):
        """Initialize interaction store.

        Args:
            client: Database client for persistence
        """
        self.client = client

    async def init_schema(self) -> None:
        """Create the interactions table if it doesn't exist."""
        await self.client.apply_schema([
            """CREATE TABLE IF NOT EXISTS interactions (
                position INTEGER PRIMARY KEY AUTOINCREMENT,
                event_id TEXT UNIQUE NOT NULL,
                user_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                captured_at TEXT NOT NULL,
                event_data TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )""",
            """CREATE INDEX IF NOT EXISTS idx_interactions_user
            ON interactions(user_id, kind, captured_at)""",
        ])
        logger.info("Interaction store schema initialized")

    async def append(self, event: InteractionEvent) -> InteractionEvent:
        """Append an interaction to the store.

        Args:
            event: The interaction to store

        Returns:
            The same interaction carrying its assigned feed position
        """
        store_dict = event.to_store_dict()
        data = store_dict["data"]

        result = await self.client.execute(
            """INSERT INTO interactions
               (event_id, user_id, kind, captured_at, event_data)
               VALUES (?, ?, ?, ?, ?)""",
            [
                store_dict["event_id"],
                event.user_id,
                event.kind,
                event.captured_at.isoformat(),
                json.dumps(
                    {**data, "timestamp": store_dict["timestamp"]}, default=str
                ),
            ],
        )
        position = result.last_insert_rowid
        logger.debug(f"Stored interaction {event.event_id} at position {position}")
        return event.model_copy(update={"position": position})

    async def read_after(
        self,
        position: int,
        limit: int = 100,
    ) -> list[InteractionEvent]:
        """Read interactions appended after a feed position.

        Args:
            position: Last position already processed (exclusive)
            limit: Maximum interactions to return

        Returns:
            Interactions in feed order
        """
        result = await self.client.execute(
            """SELECT position, event_id, event_data
               FROM interactions
               WHERE position > ?
               ORDER BY position ASC
               LIMIT ?""",
            [position, limit],
        )
        return [self._row_to_event(row) for row in result.rows]

    async def get(self, event_id: UUID) -> InteractionEvent | None:
        """Fetch a single interaction by id."""
        result = await self.client.execute(
            """SELECT position, event_id, event_data
               FROM interactions
               WHERE event_id = ?""",
            [str(event_id)],
        )
        if not result.rows:
            return None
        return self._row_to_event(result.rows[0])

    async def list_for_user(
        self,
        user_id: str,
        kind: InteractionKind | None = None,
        limit: int = 25,
        offset: int = 0,
    ) -> list[InteractionEvent]:
        """List a user's interactions, most recent capture first."""
        if kind:
            result = await self.client.execute(
                """SELECT position, event_id, event_data
                   FROM interactions
                   WHERE user_id = ? AND kind = ?
                   ORDER BY captured_at DESC
                   LIMIT ? OFFSET ?""",
                [user_id, kind, limit, offset],
            )
        else:
            result = await self.client.execute(
                """SELECT position, event_id, event_data
                   FROM interactions
                   WHERE user_id = ?
                   ORDER BY captured_at DESC
                   LIMIT ? OFFSET ?""",
                [user_id, limit, offset],
            )
        return [self._row_to_event(row) for row in result.rows]

    async def latest_position(self) -> int:
        """Return the highest assigned feed position (0 when empty)."""
        result = await self.client.execute("SELECT MAX(position) FROM interactions")
        return result.rows[0][0] or 0

    async def count(self, user_id: str | None = None) -> int:
        """Count interactions, optionally for one user."""
        if user_id:
            result = await self.client.execute(
                "SELECT COUNT(*) FROM interactions WHERE user_id = ?",
                [user_id],
            )
        else:
            result = await self.client.execute("SELECT COUNT(*) FROM interactions")
        return result.rows[0][0]

    @staticmethod
    def _row_to_event(row) -> InteractionEvent:
        data = json.loads(row[2])
        return InteractionEvent(
            **data,
            event_id=UUID(row[1]),
            position=row[0],
        )
