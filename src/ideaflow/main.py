"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ideaflow.api.middleware.auth import AuthMiddleware
from ideaflow.api.middleware.rate_limit import setup_rate_limiter
from ideaflow.api.middleware.trace_id import TraceIdMiddleware
from ideaflow.api.router import api_router
from ideaflow.config import settings
from ideaflow.db.base import Base
from ideaflow.db.engine import create_db_engine, create_session_factory
from ideaflow.errors.handlers import register_exception_handlers
from ideaflow.logging_config import configure_logging
from ideaflow.services.pipeline_config import seed_default_pipelines

import ideaflow.db.models  # noqa: F401  (register all ORM models)

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Local SQLite has no migrations: build the schema directly.
    if "sqlite" in db_url:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    session_factory = create_session_factory(engine)
    async with session_factory() as seed_session:
        await seed_default_pipelines(seed_session)

    app.state.db_engine = engine
    app.state.db_session_factory = session_factory

    flags = settings.feature_flags()
    logger.info(
        "IdeaFlow API started (db=%s, multi_stage=%s, drafts=%s, blind_review=%s)",
        "sqlite" if "sqlite" in db_url else "postgresql",
        flags.multi_stage_review,
        flags.drafts,
        flags.blind_review,
    )
    yield

    await engine.dispose()
    logger.info("IdeaFlow API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="IdeaFlow API",
        version="1.0.0",
        description="Idea submission review workflow: state machine, multi-stage pipelines, drafts and blind review.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Order matters: last added = first executed
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    register_exception_handlers(app)
    setup_rate_limiter(app)

    app.include_router(api_router)
    return app


app = create_app()
