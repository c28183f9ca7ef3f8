"""Trace ID propagation.

An incoming ``X-Trace-Id`` is honoured only when it fits the error
envelope's trace id bounds; anything else is replaced with a fresh id so
every error response can carry one.
"""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ideaflow.logging_config import bind_request_context, clear_request_context

_TRACE_ID_RE = re.compile(r"^[A-Za-z0-9_\-.:]{8,128}$")


def new_trace_id() -> str:
    return f"trc_{uuid.uuid4().hex[:16]}"


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get("x-trace-id", "")
        trace_id = incoming if _TRACE_ID_RE.match(incoming) else new_trace_id()
        request.state.trace_id = trace_id
        bind_request_context(trace_id)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Trace-Id"] = trace_id
        return response
