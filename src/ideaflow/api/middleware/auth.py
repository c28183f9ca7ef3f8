"""JWT Bearer authentication middleware.

The credential provider issues access tokens whose ``sub`` is the user id
and whose ``role`` is one of SUBMITTER, ADMIN or SUPERADMIN. The decoded
identity is attached to ``request.state.user``; routes decide whether
they need it.
"""

import logging

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ideaflow.config import settings
from ideaflow.logging_config import bind_actor

logger = logging.getLogger(__name__)

_ANONYMOUS = {"sub": "anonymous", "role": None}

# Paths that do not require authentication
_PUBLIC_PATHS = {
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/api/v1/drafts/expire",  # guarded by the cron secret instead
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _decode_jwt(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise ValueError(f"Invalid token: {exc}") from exc


def _user_from_token(token: str) -> dict:
    try:
        payload = _decode_jwt(token)
    except ValueError:
        return {**_ANONYMOUS, "_auth_error": "invalid_token"}

    if payload.get("type") == "refresh":
        return {**_ANONYMOUS, "_auth_error": "not_access_token"}

    return {
        "sub": payload.get("sub", ""),
        "role": payload.get("role"),
        "email": payload.get("email", ""),
    }


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in _PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            request.state.user = dict(_ANONYMOUS)
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            user = _user_from_token(auth_header[7:])
        else:
            user = dict(_ANONYMOUS)

        request.state.user = user
        if user.get("sub") not in ("anonymous", ""):
            bind_actor(user["sub"], user.get("role"))
        return await call_next(request)
