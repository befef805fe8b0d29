"""Persisted feed positions for change-feed consumers."""

from journal_pipeline.db.turso import TursoClient


class CheckpointStore:
    """Remembers the last feed position each named consumer has processed.

    A restarted or recovering consumer resumes right after its checkpoint,
    so events are delivered at least once.
    """

    def __init__(self, client: TursoClient):
        self._db = client

    async def init_schema(self) -> None:
        """Create the checkpoints table if it doesn't exist."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS stream_checkpoints (
                consumer TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

    async def get(self, consumer: str) -> int:
        """Return the consumer's last processed position (0 if none)."""
        result = await self._db.execute(
            "SELECT position FROM stream_checkpoints WHERE consumer = ?",
            [consumer],
        )
        if result.rows:
            return result.rows[0][0]
        return 0

    async def save(self, consumer: str, position: int) -> None:
        """Record that the consumer has processed everything up to position."""
        await self._db.execute(
            """
            INSERT INTO stream_checkpoints (consumer, position)
            VALUES (?, ?)
            ON CONFLICT(consumer) DO UPDATE SET
                position = MAX(stream_checkpoints.position, excluded.position),
                updated_at = CURRENT_TIMESTAMP
            """,
            [consumer, position],
        )
