"""Pydantic models shared across API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ideaflow.models.enums import UserRole


class Actor(BaseModel):
    """The authenticated caller as supplied by the credential provider."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    role: UserRole


class ErrorDetail(BaseModel):
    """Error detail in API responses."""

    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    trace_id: str = Field(..., min_length=8, max_length=128)
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = "1.1"
    error: ErrorDetail
