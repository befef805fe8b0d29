"""Background transcription worker.

Claims jobs from the TranscriptionQueue and runs each one through
fetch -> transcribe -> persist, reporting progress at fixed milestones.
Failures are isolated per job: a job that fails for good leaves a
readable failure marker in the answer record.

Usage: python -m journal_pipeline.transcription.worker
"""

import asyncio
import signal
import sys
import uuid
from typing import Any

import structlog

from journal_pipeline.config import Settings, get_settings
from journal_pipeline.db.turso import TursoClient
from journal_pipeline.logging_config import configure_logging
from journal_pipeline.queue.scheduler import maintenance_scheduler
from journal_pipeline.queue.schemas import JobOptions, JobState, TranscriptionJob
from journal_pipeline.queue.transcription_queue import TranscriptionQueue
from journal_pipeline.transcription.audio import AudioFetcher
from journal_pipeline.transcription.errors import (
    ConfigurationError,
    InvalidLocatorError,
    LeaseLostError,
    PersistenceError,
    ProviderError,
)
from journal_pipeline.transcription.provider import SpeechToTextProvider, WhisperProvider
from journal_pipeline.transcription.responses import ResponseClient

logger = structlog.get_logger()

# Progress milestones
PROGRESS_CLAIMED = 10
PROGRESS_AUDIO_FETCHED = 30
PROGRESS_PROVIDER_SELECTED = 40
PROGRESS_TRANSCRIBED = 80
PROGRESS_PERSISTED = 100

# Failures that retrying cannot fix
TERMINAL_ERRORS = (
    ProviderError,
    PersistenceError,
    ConfigurationError,
    InvalidLocatorError,
)


class TranscriptionWorker:
    """Processes transcription jobs with bounded concurrency.

    Each of the `concurrency` slots claims one job at a time, so at most
    that many jobs run at once. Several workers may share a queue; the
    queue's leasing keeps their jobs disjoint.
    """

    def __init__(
        self,
        queue: TranscriptionQueue,
        fetcher: AudioFetcher,
        provider: SpeechToTextProvider,
        responses: ResponseClient,
        *,
        concurrency: int = 2,
        poll_interval: float = 1.0,
        worker_id: str | None = None,
    ):
        """Initialize worker.

        Args:
            queue: Job queue to claim from
            fetcher: Resolves audio locators to bytes
            provider: Speech-to-text backend
            responses: Writes results to the answer record
            concurrency: Maximum jobs processed at once
            poll_interval: Idle wait between claims when the queue is empty
            worker_id: Lease owner name; random when omitted
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue = queue
        self._fetcher = fetcher
        self._provider = provider
        self._responses = responses
        self.concurrency = concurrency
        self._poll_interval = poll_interval
        self.worker_id = worker_id or f"worker-{uuid.uuid4().hex[:8]}"
        self._stopping = asyncio.Event()

    async def process_job(self, job: TranscriptionJob) -> dict[str, Any]:
        """Run one job through the pipeline.

        Args:
            job: A job leased to this worker

        Returns:
            Result stored as the job's return value

        Raises:
            Exception: Any step failure; the caller decides retry vs. fail
        """
        payload = job.payload
        log = logger.bind(
            job_id=job.job_id,
            response_ref=payload.response_ref,
            stage_id=payload.stage_id,
        )
        log.info(
            "Processing transcription job",
            duration_ms=payload.duration_ms,
            attempt=job.attempts_made,
        )

        await self._report(job, PROGRESS_CLAIMED)

        audio = await self._fetcher.fetch(payload.audio_locator)
        await self._report(job, PROGRESS_AUDIO_FETCHED)

        model = self._provider.model
        await self._report(job, PROGRESS_PROVIDER_SELECTED)
        log.debug("Using speech-to-text provider", model=model, size=audio.size)

        text = await self._provider.transcribe(audio)
        if not text or not text.strip():
            raise ProviderError("No transcription text returned from provider")
        text = text.strip()
        await self._report(job, PROGRESS_TRANSCRIBED)

        await self._responses.record_transcript(
            payload.correlation_token, payload.stage_id, text, model
        )
        await self._report(job, PROGRESS_PERSISTED)

        log.info("Job completed successfully", text_length=len(text))
        return {"success": True, "text": text, "provider_model": model}

    async def handle(self, job: TranscriptionJob) -> JobState | None:
        """Process a job and record its outcome in the queue.

        Exceptions from the pipeline never escape this method.

        Returns:
            The job's resulting state, or None if the lease was lost
        """
        try:
            result = await self.process_job(job)
        except LeaseLostError as e:
            logger.warning("Abandoning job", job_id=job.job_id, reason=str(e))
            return None
        except Exception as e:
            return await self._handle_failure(job, e)

        if not await self.queue.complete(job.job_id, self.worker_id, result):
            return None
        logger.info("Job completed", job_id=job.job_id)
        return JobState.COMPLETED

    async def _handle_failure(
        self, job: TranscriptionJob, error: Exception
    ) -> JobState | None:
        reason = str(error) or type(error).__name__
        retryable = not isinstance(error, TERMINAL_ERRORS)
        logger.error(
            "Job failed",
            job_id=job.job_id,
            response_ref=job.payload.response_ref,
            stage_id=job.payload.stage_id,
            error=reason,
            error_type=type(error).__name__,
            retryable=retryable,
        )

        state = await self.queue.fail(
            job.job_id, self.worker_id, reason, retryable=retryable
        )
        if state == JobState.FAILED:
            await self._write_failure_marker(job, reason)
        return state

    async def _write_failure_marker(self, job: TranscriptionJob, reason: str) -> None:
        """Best-effort placeholder in the answer record; never raises."""
        payload = job.payload
        if not payload.correlation_token:
            return
        try:
            await self._responses.record_failure(
                payload.correlation_token, payload.stage_id, reason
            )
        except Exception as e:
            logger.error(
                "Failed to update response with error status",
                job_id=job.job_id,
                error=str(e),
            )

    async def _report(self, job: TranscriptionJob, progress: int) -> None:
        if not await self.queue.update_progress(job.job_id, self.worker_id, progress):
            raise LeaseLostError(f"Lease on job {job.job_id} lost")

    async def run_once(self) -> bool:
        """Claim and handle a single job.

        Returns:
            True if a job was handled, False if none was runnable
        """
        job = await self.queue.claim(self.worker_id)
        if job is None:
            return False
        await self.handle(job)
        return True

    async def run(self) -> None:
        """Process jobs until stop() is called.

        Raises:
            ConfigurationError: If the queue backend is unavailable
        """
        self.queue.require_available()
        self._stopping.clear()
        logger.info(
            "Worker started",
            worker_id=self.worker_id,
            concurrency=self.concurrency,
        )
        await asyncio.gather(*(self._slot(n) for n in range(self.concurrency)))
        logger.info("Worker stopped", worker_id=self.worker_id)

    def stop(self) -> None:
        """Stop claiming new jobs; in-flight jobs finish first."""
        if not self._stopping.is_set():
            logger.info("Shutting down gracefully", worker_id=self.worker_id)
        self._stopping.set()

    async def _slot(self, slot: int) -> None:
        while not self._stopping.is_set():
            try:
                worked = await self.run_once()
            except Exception as e:
                logger.error("Worker slot error", slot=slot, error=str(e))
                worked = False
            if not worked:
                try:
                    await asyncio.wait_for(
                        self._stopping.wait(), timeout=self._poll_interval
                    )
                except TimeoutError:
                    pass


def build_worker(settings: Settings) -> TranscriptionWorker:
    """Wire a worker and its collaborators from settings."""
    queue = TranscriptionQueue(
        TursoClient.for_queue(settings),
        JobOptions.from_settings(settings),
        enabled=settings.queue_enabled,
    )
    return TranscriptionWorker(
        queue=queue,
        fetcher=AudioFetcher(settings.uploads_dir),
        provider=WhisperProvider(
            settings.stt_api_key,
            base_url=settings.stt_base_url,
            model=settings.stt_model,
            timeout=settings.provider_timeout_seconds,
        ),
        responses=ResponseClient(
            settings.callback_base_url,
            timeout=settings.callback_timeout_seconds,
        ),
        concurrency=settings.worker_concurrency,
        poll_interval=settings.worker_poll_interval_seconds,
    )


async def run_worker(settings: Settings) -> None:
    """Run a worker process until SIGINT/SIGTERM.

    Raises:
        ConfigurationError: If the queue or provider is not usable
    """
    if not settings.stt_api_key:
        raise ConfigurationError("STT_API_KEY is required for transcription")

    worker = build_worker(settings)
    queue = worker.queue
    if not await queue.init():
        raise ConfigurationError("Transcription queue backend is not available")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        async with maintenance_scheduler(queue, settings.worker_stalled_check_seconds):
            await worker.run()
    finally:
        await queue.close()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        asyncio.run(run_worker(settings))
    except ConfigurationError as e:
        logger.error("Fatal worker configuration error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
