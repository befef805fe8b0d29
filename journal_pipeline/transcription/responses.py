"""Client for writing transcription results back to the answer record."""

from typing import Literal

import httpx
import structlog
from pydantic import BaseModel

from journal_pipeline.transcription.errors import PersistenceError, TransientIOError

logger = structlog.get_logger()

FAILURE_MODEL = "error"


class ResponseUpdate(BaseModel):
    """Body of the answer-record update call."""

    response_text: str
    status: Literal["transcribed", "error"]
    provider_model: str


def failure_marker(reason: str) -> str:
    """Readable placeholder shown instead of a silently stuck answer."""
    return f"[Transcription failed: {reason}]"


class ResponseClient:
    """Delivers transcripts to `PATCH /api/mentor-interview/{token}/response/{stage}`."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = http_client

    def update_url(self, correlation_token: str, stage_id: int) -> str:
        return (
            f"{self._base_url}/api/mentor-interview/"
            f"{correlation_token}/response/{stage_id}"
        )

    async def update(
        self,
        correlation_token: str,
        stage_id: int,
        update: ResponseUpdate,
    ) -> None:
        """Send an update to the answer record.

        Raises:
            TransientIOError: On network failures, timeouts and 5xx answers
            PersistenceError: If the record rejects the update
        """
        url = self.update_url(correlation_token, stage_id)
        body = update.model_dump()
        try:
            if self._http is not None:
                response = await self._http.patch(url, json=body, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.patch(url, json=body)
        except httpx.HTTPError as e:
            raise TransientIOError(f"Answer record update failed: {e}") from e

        if response.status_code >= 500:
            raise TransientIOError(
                f"Answer record unavailable: HTTP {response.status_code}"
            )
        if response.status_code != 200:
            raise PersistenceError(
                f"Unexpected response status: {response.status_code}"
            )
        logger.info(
            "Updated answer record",
            stage_id=stage_id,
            status=update.status,
        )

    async def record_transcript(
        self, correlation_token: str, stage_id: int, text: str, model: str
    ) -> None:
        await self.update(
            correlation_token,
            stage_id,
            ResponseUpdate(response_text=text, status="transcribed", provider_model=model),
        )

    async def record_failure(
        self, correlation_token: str, stage_id: int, reason: str
    ) -> None:
        await self.update(
            correlation_token,
            stage_id,
            ResponseUpdate(
                response_text=failure_marker(reason),
                status="error",
                provider_model=FAILURE_MODEL,
            ),
        )
