"""Transcription job API endpoints.

Submits voice answers for background transcription and exposes the
polling surface used by the interview screen.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from journal_pipeline.queue.schemas import (
    JobDetail,
    JobHandle,
    JobPayload,
    JobStatus,
    QueueStats,
)
from journal_pipeline.queue.transcription_queue import TranscriptionQueue

router = APIRouter(prefix="/transcriptions", tags=["transcriptions"])


def get_transcription_queue(request: Request) -> TranscriptionQueue:
    """Get TranscriptionQueue from app state."""
    if not hasattr(request.app.state, "transcription_queue"):
        raise HTTPException(
            status_code=500, detail="TranscriptionQueue not initialized"
        )
    return request.app.state.transcription_queue


@router.post("", response_model=JobHandle, status_code=status.HTTP_202_ACCEPTED)
async def submit_transcription(
    payload: JobPayload,
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> JobHandle:
    """Queue a voice answer for transcription.

    Returns 503 when background transcription is off; callers fall back
    to synchronous handling.
    """
    handle = await queue.enqueue(payload)
    if handle is None:
        raise HTTPException(
            status_code=503, detail="Background transcription unavailable"
        )
    return handle


@router.get("/progress/{token}", response_model=list[JobStatus])
async def get_progress(
    token: str,
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> list[JobStatus]:
    """Progress of every job submitted with a correlation token."""
    return await queue.status(token)


@router.get("/jobs/{job_id}", response_model=JobDetail)
async def get_job(
    job_id: str,
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> JobDetail:
    detail = await queue.status_by_id(job_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return detail


@router.get("/stats", response_model=QueueStats)
async def get_stats(
    queue: TranscriptionQueue = Depends(get_transcription_queue),
) -> QueueStats:
    """Queue counters for monitoring."""
    return await queue.stats()
