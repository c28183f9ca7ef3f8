"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from ideaflow.api.routes import (
    audit,
    drafts,
    escalations,
    health,
    ideas,
    pipelines,
    reviews,
    stages,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(ideas.router)
api_router.include_router(reviews.router)
api_router.include_router(stages.router)
api_router.include_router(escalations.router)
api_router.include_router(drafts.router)
api_router.include_router(pipelines.router)
api_router.include_router(audit.router)
