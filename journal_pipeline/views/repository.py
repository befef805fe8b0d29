"""Repository for the daily compass and wins view tables.

Every write is a single-field upsert keyed by (user, date): the key is
seeded when the row is first inserted and only the updated field is
overwritten afterwards, so replaying an event leaves the row unchanged.
"""

import logging

from journal_pipeline.db.turso import TursoClient
from journal_pipeline.views.schemas import CompassView, ViewName, ViewUpdate, WinsView

logger = logging.getLogger(__name__)

COMPASS_FIELDS = frozenset(
    {
        "mood",
        "energy",
        "alignment",
        "priority",
        "priority_note",
        "note",
        "completion",
        "blocker",
        "improvement_note",
        "reflection_interaction_id",
    }
)
WINS_FIELDS = frozenset({"title_interaction_id", "description_interaction_id"})

# view -> (table, date column, writable fields)
_TABLES: dict[ViewName, tuple[str, str, frozenset[str]]] = {
    "compass": ("compass_views", "date", COMPASS_FIELDS),
    "wins": ("wins_views", "achieved_at", WINS_FIELDS),
}


class ViewRepository:
    """Repository for materialized daily views.

    Handles schema creation, idempotent per-field upserts and reads for
    the compass and wins read models.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create view tables if they don't exist."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS compass_views (
                user_id TEXT NOT NULL,
                date TEXT NOT NULL,
                mood REAL,
                energy REAL,
                alignment REAL,
                priority TEXT,
                priority_note TEXT,
                note TEXT,
                completion INTEGER,
                blocker TEXT,
                improvement_note TEXT,
                reflection_interaction_id TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (user_id, date)
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS wins_views (
                user_id TEXT NOT NULL,
                achieved_at TEXT NOT NULL,
                title_interaction_id TEXT,
                description_interaction_id TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (user_id, achieved_at)
            )
        """)

        logger.info("View tables initialized")

    async def apply(self, update: ViewUpdate) -> None:
        """Upsert the fields of a view update.

        Raises:
            ValueError: If the update names a field the view doesn't have
        """
        table, date_column, allowed = _TABLES[update.view]
        unknown = set(update.fields) - allowed
        if unknown:
            raise ValueError(f"Unknown {update.view} view fields: {sorted(unknown)}")
        if not update.fields:
            return

        columns = list(update.fields)
        placeholders = ", ".join("?" for _ in range(len(columns) + 2))
        assignments = ", ".join(f"{col} = excluded.{col}" for col in columns)
        await self._db.execute(
            f"""
            INSERT INTO {table} (user_id, {date_column}, {", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT(user_id, {date_column}) DO UPDATE SET {assignments}
            """,
            [update.user_id, update.date, *update.fields.values()],
        )
        logger.debug(
            f"Upserted {update.view} view {update.user_id}/{update.date}: {columns}"
        )

    async def get_compass(self, user_id: str, date: str) -> CompassView | None:
        result = await self._db.execute(
            "SELECT * FROM compass_views WHERE user_id = ? AND date = ?",
            [user_id, date],
        )
        if not result.rows:
            return None
        return CompassView(**_row_dict(result.columns, result.rows[0]))

    async def list_compass(
        self,
        user_id: str,
        start: str | None = None,
        end: str | None = None,
        limit: int = 31,
    ) -> list[CompassView]:
        """List a user's compass views, newest date first.

        Args:
            user_id: Owning user
            start: Earliest date to include (inclusive)
            end: Latest date to include (inclusive)
            limit: Maximum views to return
        """
        sql, params = _range_query("compass_views", "date", user_id, start, end, limit)
        result = await self._db.execute(sql, params)
        return [CompassView(**_row_dict(result.columns, row)) for row in result.rows]

    async def get_wins(self, user_id: str, achieved_at: str) -> WinsView | None:
        result = await self._db.execute(
            "SELECT * FROM wins_views WHERE user_id = ? AND achieved_at = ?",
            [user_id, achieved_at],
        )
        if not result.rows:
            return None
        return WinsView(**_row_dict(result.columns, result.rows[0]))

    async def list_wins(
        self,
        user_id: str,
        start: str | None = None,
        end: str | None = None,
        limit: int = 31,
    ) -> list[WinsView]:
        sql, params = _range_query(
            "wins_views", "achieved_at", user_id, start, end, limit
        )
        result = await self._db.execute(sql, params)
        return [WinsView(**_row_dict(result.columns, row)) for row in result.rows]

    async def count(self, view: ViewName, user_id: str) -> int:
        table, _, _ = _TABLES[view]
        result = await self._db.execute(
            f"SELECT COUNT(*) FROM {table} WHERE user_id = ?", [user_id]
        )
        return result.rows[0][0]


def _row_dict(columns, row) -> dict:
    return {column: row[i] for i, column in enumerate(columns)}


def _range_query(
    table: str,
    date_column: str,
    user_id: str,
    start: str | None,
    end: str | None,
    limit: int,
) -> tuple[str, list]:
    conditions = ["user_id = ?"]
    params: list = [user_id]
    if start:
        conditions.append(f"{date_column} >= ?")
        params.append(start)
    if end:
        conditions.append(f"{date_column} <= ?")
        params.append(end)
    params.append(limit)
    sql = (
        f"SELECT * FROM {table} WHERE {' AND '.join(conditions)} "
        f"ORDER BY {date_column} DESC LIMIT ?"
    )
    return sql, params
