"""Error taxonomy for the transcription pipeline.

The worker decides retry behaviour from the exception type:
- TransientIOError: retried under the job's attempt/backoff budget
- ProviderError, PersistenceError, InvalidLocatorError: terminal on first
  occurrence
"""


class TranscriptionError(Exception):
    """Base class for transcription pipeline errors."""


class ConfigurationError(TranscriptionError):
    """Raised when the queue backend or a collaborator is not usable at startup."""


class TransientIOError(TranscriptionError):
    """Raised for network failures fetching audio or calling back."""


class ProviderError(TranscriptionError):
    """Raised when the speech-to-text provider returns no usable text."""


class PersistenceError(TranscriptionError):
    """Raised when the downstream answer record rejects an update."""


class LeaseLostError(TranscriptionError):
    """Raised when a worker no longer holds the lease on its job."""


class InvalidLocatorError(TranscriptionError):
    """Raised when an audio locator points outside the upload directory."""
