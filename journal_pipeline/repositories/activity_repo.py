"""Repository for per-user last activity timestamps."""

from datetime import datetime

from journal_pipeline.db.turso import TursoClient


class ActivityRepository:
    """Stores when each user was last active."""

    def __init__(self, db_client: TursoClient):
        self._db = db_client

    async def initialize(self) -> None:
        """Create user_activity table if not exists."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS user_activity (
                user_id TEXT PRIMARY KEY,
                last_active_at TEXT NOT NULL
            )
        """)

    async def mark_active(self, user_id: str, at: datetime) -> None:
        await self._db.execute(
            """
            INSERT INTO user_activity (user_id, last_active_at)
            VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET last_active_at = excluded.last_active_at
            """,
            [user_id, at.isoformat()],
        )

    async def last_active(self, user_id: str) -> str | None:
        """Get the user's last activity timestamp (ISO 8601), if any."""
        result = await self._db.execute(
            "SELECT last_active_at FROM user_activity WHERE user_id = ?",
            [user_id],
        )
        if result.rows:
            return result.rows[0][0]
        return None
