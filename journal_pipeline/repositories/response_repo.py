"""Repository for mentor interview answer records.

The transcription worker writes its result here through the
`/api/mentor-interview/{token}/response/{stage_id}` endpoint.
"""

from typing import Literal

from pydantic import BaseModel

from journal_pipeline.db.turso import TursoClient

ResponseStatus = Literal["pending", "transcribed", "error"]


class MentorResponse(BaseModel):
    """Answer to one interview stage."""

    correlation_token: str
    stage_id: int
    response_text: str = ""
    status: ResponseStatus = "pending"
    provider_model: str | None = None
    updated_at: str | None = None


class ResponseRepository:
    """Repository for answer records keyed by (token, stage)."""

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create mentor_responses table if not exists."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS mentor_responses (
                correlation_token TEXT NOT NULL,
                stage_id INTEGER NOT NULL,
                response_text TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL DEFAULT 'pending',
                provider_model TEXT,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (correlation_token, stage_id)
            )
        """)

    async def get(self, correlation_token: str, stage_id: int) -> MentorResponse | None:
        result = await self._db.execute(
            """
            SELECT correlation_token, stage_id, response_text, status,
                   provider_model, updated_at
            FROM mentor_responses
            WHERE correlation_token = ? AND stage_id = ?
            """,
            [correlation_token, stage_id],
        )
        if not result.rows:
            return None
        return _row_to_response(result.rows[0])

    async def save(
        self,
        correlation_token: str,
        stage_id: int,
        response_text: str,
        status: ResponseStatus,
        provider_model: str | None = None,
    ) -> MentorResponse:
        """Create or replace the answer for a stage (upsert).

        Returns:
            The stored record
        """
        result = await self._db.execute(
            """
            INSERT INTO mentor_responses
                (correlation_token, stage_id, response_text, status, provider_model)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(correlation_token, stage_id)
            DO UPDATE SET
                response_text = excluded.response_text,
                status = excluded.status,
                provider_model = excluded.provider_model,
                updated_at = CURRENT_TIMESTAMP
            RETURNING correlation_token, stage_id, response_text, status,
                      provider_model, updated_at
            """,
            [correlation_token, stage_id, response_text, status, provider_model],
        )
        return _row_to_response(result.rows[0])

    async def list_for_token(self, correlation_token: str) -> list[MentorResponse]:
        result = await self._db.execute(
            """
            SELECT correlation_token, stage_id, response_text, status,
                   provider_model, updated_at
            FROM mentor_responses
            WHERE correlation_token = ?
            ORDER BY stage_id
            """,
            [correlation_token],
        )
        return [_row_to_response(row) for row in result.rows]


def _row_to_response(row) -> MentorResponse:
    return MentorResponse(
        correlation_token=row[0],
        stage_id=row[1],
        response_text=row[2],
        status=row[3],
        provider_model=row[4],
        updated_at=row[5],
    )
