"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.config import FeatureFlags, settings
from ideaflow.errors.exceptions import AuthenticationError
from ideaflow.models.common import Actor
from ideaflow.models.enums import UserRole


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


async def get_current_user(request: Request) -> dict:
    """Return the authenticated user dict or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in user:
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


async def get_current_actor(user: dict = Depends(get_current_user)) -> Actor:
    """The caller as the workflow services see it: user id plus role."""
    try:
        role = UserRole(user.get("role", ""))
    except ValueError as exc:
        raise AuthenticationError("Token carries an unknown role") from exc
    return Actor(user_id=user["sub"], role=role)


def get_feature_flags() -> FeatureFlags:
    """Feature switches for this request, read from settings at the boundary."""
    return settings.feature_flags()


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
Flags = Annotated[FeatureFlags, Depends(get_feature_flags)]
