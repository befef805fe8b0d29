"""Speech-to-text provider interface and the Whisper-compatible client."""

from typing import Protocol, runtime_checkable

import httpx
import structlog

from journal_pipeline.transcription.audio import AudioFile
from journal_pipeline.transcription.errors import (
    ConfigurationError,
    ProviderError,
    TransientIOError,
)

logger = structlog.get_logger()


@runtime_checkable
class SpeechToTextProvider(Protocol):
    """Protocol for speech-to-text backends.

    Implementations return the transcript text or raise ProviderError
    when no usable text comes back.
    """

    @property
    def model(self) -> str:
        """Model identifier recorded alongside the transcript."""
        ...

    async def transcribe(self, audio: AudioFile) -> str:
        """Transcribe audio bytes to text."""
        ...


class WhisperProvider:
    """OpenAI-compatible `/audio/transcriptions` client.

    Uses httpx multipart upload with `response_format=text`.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize provider.

        Args:
            api_key: Provider API key
            base_url: API root, without trailing slash
            model: Transcription model name
            timeout: Bounded wait for one transcription call (seconds)
            http_client: Optional client for dependency injection
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._http = http_client

    @property
    def model(self) -> str:
        return self._model

    async def transcribe(self, audio: AudioFile) -> str:
        """Transcribe audio bytes to text.

        Raises:
            ConfigurationError: If no API key is configured
            TransientIOError: On network failures, timeouts and 5xx answers
            ProviderError: If the provider rejects the audio or returns no text
        """
        if not self._api_key:
            raise ConfigurationError("Speech-to-text API key not configured")

        request = {
            "url": f"{self._base_url}/audio/transcriptions",
            "headers": {"Authorization": f"Bearer {self._api_key}"},
            "files": {"file": (audio.filename, audio.content, audio.mime_type)},
            "data": {"model": self._model, "response_format": "text"},
            "timeout": self._timeout,
        }
        try:
            if self._http is not None:
                response = await self._http.post(**request)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(**request)
        except httpx.HTTPError as e:
            raise TransientIOError(f"Transcription request failed: {e}") from e

        if response.status_code >= 500:
            raise TransientIOError(
                f"Transcription service error: HTTP {response.status_code}"
            )
        if response.status_code != 200:
            raise ProviderError(
                f"Transcription failed: {self._error_message(response)}"
            )

        text = response.text.strip()
        if not text:
            raise ProviderError("No transcription text returned from provider")

        logger.debug("Transcription completed", text_length=len(text))
        return text

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return f"HTTP {response.status_code}"
