"""Audio locator resolution for transcription jobs.

A locator is either an http(s) URL (object storage, CDN) or a path to a
local upload.
"""

import asyncio
from pathlib import Path
from urllib.parse import urlparse

import httpx
import structlog
from pydantic import BaseModel

from journal_pipeline.transcription.errors import InvalidLocatorError, TransientIOError

logger = structlog.get_logger()

DEFAULT_FILENAME = "audio.webm"
DEFAULT_MIME_TYPE = "audio/webm"

MIME_TYPES = {
    "mp3": "audio/mp3",
    "mp4": "audio/mp4",
    "m4a": "audio/mp4",
    "wav": "audio/wav",
    "webm": "audio/webm",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
}


class AudioFile(BaseModel):
    """Downloaded audio plus the hints a provider needs."""

    content: bytes
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def file_metadata(locator: str) -> tuple[str, str]:
    """Derive (filename, mime_type) from a locator's last path segment."""
    path = urlparse(locator).path if "://" in locator else locator
    filename = path.rstrip("/").split("/")[-1] or DEFAULT_FILENAME
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if not extension:
        return filename, DEFAULT_MIME_TYPE
    return filename, MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


class AudioFetcher:
    """Resolves an audio locator to bytes.

    Network and filesystem failures surface as TransientIOError so the
    job is retried under its backoff budget. Local paths must stay inside
    the upload directory.
    """

    def __init__(
        self,
        uploads_dir: str | Path = ".",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._uploads_dir = Path(uploads_dir)
        self._http = http_client
        self._timeout = timeout

    async def fetch(self, locator: str) -> AudioFile:
        """Download the audio behind a locator.

        Raises:
            TransientIOError: If the audio cannot be read
            InvalidLocatorError: If a local path escapes the upload directory
        """
        if locator.startswith(("http://", "https://")):
            content = await self._fetch_url(locator)
        else:
            content = await self._read_upload(locator)

        filename, mime_type = file_metadata(locator)
        logger.debug("Audio downloaded", size=len(content), filename=filename)
        return AudioFile(content=content, filename=filename, mime_type=mime_type)

    async def _fetch_url(self, url: str) -> bytes:
        try:
            if self._http is not None:
                response = await self._http.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransientIOError(f"Failed to download audio: {e}") from e
        return response.content

    def _upload_path(self, locator: str) -> Path:
        root = self._uploads_dir.resolve()
        path = (root / locator.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise InvalidLocatorError(f"Audio locator outside uploads: {locator}")
        return path

    async def _read_upload(self, locator: str) -> bytes:
        path = self._upload_path(locator)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise TransientIOError(f"Failed to read audio: {e}") from e
