"""Input validation shared by service entry points."""

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ideaflow.errors.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


def field_errors(exc: PydanticValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def validate_input(model: type[M], data: dict[str, Any] | M) -> M:
    """Validate raw input against ``model``, raising VALIDATION_ERROR with field details."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = field_errors(exc)
        raise ValidationError(errors[0]["message"], details=errors) from exc
