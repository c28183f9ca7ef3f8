"""Shared test fixtures."""

import logging
import os

# Settings are read at import time: pin the test environment first.
os.environ.setdefault("IDEAFLOW_LOCAL_MODE", "1")
os.environ.setdefault("IDEAFLOW_CRON_SECRET", "test-cron-secret")

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to register with Base.metadata
import ideaflow.db.models  # noqa: F401
from ideaflow.config import FeatureFlags, settings
from ideaflow.db.base import Base
from ideaflow.db.models.idea import IdeaRow
from ideaflow.db.models.user import UserRow
from ideaflow.dependencies import get_feature_flags
from ideaflow.models.common import Actor
from ideaflow.models.enums import IdeaCategory, IdeaStatus, UserRole
from ideaflow.services.id_generator import IDEA, USER, generate_id
from ideaflow.services.pipeline_config import seed_default_pipelines

ALL_FEATURES = FeatureFlags(multi_stage_review=True, drafts=True, blind_review=True)
NO_FEATURES = FeatureFlags()

DEFAULT_CATEGORY = IdeaCategory.PROCESS_IMPROVEMENT.value

# Log calls must build real records in tests so bad `extra` keys surface.
logging.getLogger("ideaflow").setLevel(logging.INFO)


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Seed default pipelines (mirrors main.py lifespan)
    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as seed_session:
        await seed_default_pipelines(seed_session)

    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def flags():
    return ALL_FEATURES


@pytest.fixture
def app(db_engine, flags):
    """Create a test application instance with in-memory DB and the chosen feature flags."""
    from ideaflow.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    _app.dependency_overrides[get_feature_flags] = lambda: flags
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session):
    """Factory: persist a user and return the matching Actor."""

    async def _make(role: UserRole = UserRole.SUBMITTER, display_name: str | None = "Test User") -> Actor:
        user_id = generate_id(USER)
        db_session.add(
            UserRow(
                user_id=user_id,
                email=f"{user_id}@example.com",
                display_name=display_name,
                role=role.value,
            )
        )
        await db_session.commit()
        return Actor(user_id=user_id, role=role)

    return _make


@pytest.fixture
def make_idea(db_session):
    """Factory: persist an idea directly in the given status. Returns its id."""

    async def _make(
        author: Actor,
        status: IdeaStatus = IdeaStatus.SUBMITTED,
        category: str = DEFAULT_CATEGORY,
        **fields,
    ) -> str:
        idea_id = generate_id(IDEA)
        values = {
            "title": "Automate the expense approval queue",
            "description": "Route low-value expense claims through an automatic check.",
            "visibility": "PUBLIC",
            **fields,
        }
        db_session.add(IdeaRow(idea_id=idea_id, author_id=author.user_id, category=category, status=status.value, **values))
        await db_session.commit()
        return idea_id

    return _make


@pytest.fixture
def reload(db_session):
    """Fetch a row fresh from the database, bypassing the identity map."""

    async def _reload(model, pk):
        return await db_session.get(model, pk, populate_existing=True)

    return _reload


def _auth_headers(actor: Actor, **claims) -> dict[str, str]:
    """Mint an access token for ``actor`` the way the credential provider does."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": actor.user_id,
        "role": actor.role.value,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=15),
        **claims,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _auth_headers
