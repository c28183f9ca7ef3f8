"""FastAPI exception handlers producing the standard ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ideaflow.errors.exceptions import IdeaFlowError
from ideaflow.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", None) or "trc_unknown"
    envelope = ErrorResponse(
        schema_version="1.1",
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(IdeaFlowError)
    async def ideaflow_error_handler(request: Request, exc: IdeaFlowError):
        if exc.category == "authorization":
            user = getattr(request.state, "user", {}) or {}
            logger.warning(
                "workflow_access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "user_sub": user.get("sub", "anonymous"),
                    "user_role": user.get("role"),
                    "code": exc.code,
                    "reason": exc.message,
                },
            )
        return error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        message = errors[0]["message"] if errors else "Validation failed."
        return error_response(request, 400, "VALIDATION_ERROR", message, errors)
