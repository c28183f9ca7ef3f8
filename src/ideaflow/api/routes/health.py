"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ideaflow.logging_config import SERVICE_NAME

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": "1.0.0"}


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 whenever the process is serving."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: checks the database answers."""
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        async with request.app.state.db_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc.__class__.__name__}"
        overall_ok = False

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={"status": "ready" if overall_ok else "not_ready", "checks": checks},
    )
