"""Per-user rate limiting using slowapi.

Limits are declared on the routes that need them with ``@limiter.limit``;
only draft saves are limited today. Counters live in Redis, or in process
memory in local mode.
"""

import logging

from fastapi import FastAPI, Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ideaflow.config import settings
from ideaflow.errors.exceptions import RateLimitedError
from ideaflow.errors.handlers import error_response

logger = logging.getLogger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """Use user_id for authenticated users, IP for anonymous."""
    user = getattr(request.state, "user", {}) or {}
    sub = user.get("sub", "")
    if sub and sub not in ("anonymous", ""):
        return f"user:{sub}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    error = RateLimitedError()
    logger.warning(
        "rate_limited",
        extra={"path": request.url.path, "key": get_rate_limit_key(request), "limit": str(exc.detail)},
    )
    return error_response(request, error.status_code, error.code, error.message, {"limit": str(exc.detail)})


def setup_rate_limiter(app: FastAPI) -> None:
    """Attach the shared limiter to the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    logger.info(
        "Rate limiter configured (enabled=%s, draft saves=%s)",
        settings.rate_limit_enabled,
        settings.draft_save_rate_limit,
    )
