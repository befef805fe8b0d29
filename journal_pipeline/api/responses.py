"""Mentor interview answer record endpoints.

The transcription worker PATCHes its result here; the interview screen
reads the stored answer back.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from journal_pipeline.repositories.response_repo import MentorResponse, ResponseRepository
from journal_pipeline.transcription.responses import ResponseUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mentor-interview", tags=["responses"])


def get_response_repo(request: Request) -> ResponseRepository:
    """Get ResponseRepository from app state."""
    if not hasattr(request.app.state, "response_repo"):
        raise HTTPException(status_code=500, detail="ResponseRepository not initialized")
    return request.app.state.response_repo


@router.patch("/{token}/response/{stage_id}", response_model=MentorResponse)
async def update_response(
    token: str,
    stage_id: int,
    body: ResponseUpdate,
    repo: ResponseRepository = Depends(get_response_repo),
) -> MentorResponse:
    """Store the transcript (or failure marker) for an interview stage."""
    saved = await repo.save(
        token,
        stage_id,
        body.response_text,
        body.status,
        body.provider_model,
    )
    logger.info(f"Updated response {token}/{stage_id} with status {body.status}")
    return saved


@router.get("/{token}/response/{stage_id}", response_model=MentorResponse)
async def get_response(
    token: str,
    stage_id: int,
    repo: ResponseRepository = Depends(get_response_repo),
) -> MentorResponse:
    response = await repo.get(token, stage_id)
    if response is None:
        raise HTTPException(status_code=404, detail="Response not found")
    return response


@router.get("/{token}/responses", response_model=list[MentorResponse])
async def list_responses(
    token: str,
    repo: ResponseRepository = Depends(get_response_repo),
) -> list[MentorResponse]:
    """All stored answers of an interview, in stage order."""
    return await repo.list_for_token(token)
