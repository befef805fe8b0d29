"""Async libSQL client shared by the stores, the view tables and the job queue.

URLs starting with ``libsql://`` (plus an auth token) reach a hosted Turso
database; anything else, typically ``file:journal.db``, opens a local one.
"""

import logging
from typing import Any

from libsql_client import Client, ResultSet, create_client

from journal_pipeline.config import Settings, settings

logger = logging.getLogger(__name__)

DEFAULT_URL = "file:journal.db"


class DatabaseNotConnectedError(RuntimeError):
    """Raised when a statement is issued before connect() or after close()."""


class TursoClient:
    """Thin connection holder around a libsql_client Client."""

    def __init__(
        self,
        url: str | None = None,
        auth_token: str | None = None,
    ):
        """Initialize client.

        Args:
            url: Database URL; falls back to settings, then a local file
            auth_token: Token for hosted databases; falls back to settings
        """
        self.url = url or settings.turso_database_url or DEFAULT_URL
        self.auth_token = auth_token or settings.turso_auth_token
        self._client: Client | None = None

    @classmethod
    def for_queue(cls, config: Settings) -> "TursoClient":
        """Client for the transcription job table.

        The queue may live in its own database so workers can run without
        access to the interaction store.
        """
        return cls(
            url=config.queue_database_url or config.turso_database_url,
            auth_token=config.turso_auth_token,
        )

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def is_remote(self) -> bool:
        return self.url.startswith("libsql://") and bool(self.auth_token)

    async def connect(self) -> None:
        if self._client is not None:
            return
        if self.is_remote:
            self._client = create_client(url=self.url, auth_token=self.auth_token)
        else:
            self._client = create_client(url=self.url)
        logger.info("Opened database %s", self.url)

    def _require_client(self) -> Client:
        if self._client is None:
            raise DatabaseNotConnectedError(f"No open connection to {self.url}")
        return self._client

    async def execute(self, sql: str, params: list[Any] | None = None) -> ResultSet:
        """Run one statement with ``?`` placeholders."""
        return await self._require_client().execute(sql, params or [])

    async def apply_schema(self, statements: list[str]) -> None:
        """Run DDL statements together in a single batch."""
        await self._require_client().batch(statements)

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.close()
        self._client = None
        logger.info("Closed database %s", self.url)

    async def is_healthy(self) -> bool:
        """Round-trip a trivial query; False on any failure."""
        if self._client is None:
            return False
        try:
            result = await self._client.execute("SELECT 1")
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            return False
        return len(result.rows) == 1
