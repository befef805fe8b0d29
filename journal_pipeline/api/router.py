"""API router aggregation."""

from fastapi import APIRouter

from journal_pipeline.api.health import router as health_router
from journal_pipeline.api.interactions import router as interactions_router
from journal_pipeline.api.responses import router as responses_router
from journal_pipeline.api.transcriptions import router as transcriptions_router
from journal_pipeline.api.views import router as views_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(interactions_router)
api_router.include_router(views_router)
# Background transcription submission and progress polling
api_router.include_router(transcriptions_router)
# Answer records written back by the transcription worker
api_router.include_router(responses_router)
