"""Custom exception classes for the IdeaFlow review engine.

Every error carries a stable ``code`` the caller branches on and a
``category`` describing how it should be handled:

- ``authorization``: never retried, surfaced verbatim for redirection.
- ``state``: the caller's view is stale ("someone already acted on this").
- ``validation``: client-correctable, ``details`` names the offending field.
- ``internal``: storage or configuration failure, opaque to the caller.
"""


class IdeaFlowError(Exception):
    """Base exception for IdeaFlow."""

    category = "internal"

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(IdeaFlowError):
    """Request or business-rule validation failure."""

    category = "validation"

    def __init__(self, message: str, details=None, code: str = "VALIDATION_ERROR"):
        super().__init__(code, message, details, status_code=400)


class NotFoundError(IdeaFlowError):
    """Resource not found."""

    category = "state"

    def __init__(self, resource: str, resource_id: str, code: str = "NOT_FOUND"):
        super().__init__(
            code,
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(IdeaFlowError):
    """Authentication required or token invalid."""

    category = "authorization"

    def __init__(self, message: str = "Authentication required"):
        super().__init__("UNAUTHENTICATED", message, status_code=401)


class AuthorizationError(IdeaFlowError):
    """Insufficient permissions."""

    category = "authorization"

    def __init__(self, message: str = "Insufficient role", code: str = "FORBIDDEN"):
        super().__init__(code, message, status_code=403)


class ConflictError(IdeaFlowError):
    """Resource state conflict: the precondition no longer holds."""

    category = "state"

    def __init__(self, code: str, message: str, details=None):
        super().__init__(code, message, details, status_code=409)


class FeatureDisabledError(IdeaFlowError):
    category = "authorization"

    def __init__(self, feature: str):
        super().__init__("FEATURE_DISABLED", f"{feature} is not enabled.", status_code=403)


class RateLimitedError(IdeaFlowError):
    category = "validation"

    def __init__(self, message: str = "Too many requests, please slow down."):
        super().__init__("RATE_LIMITED", message, status_code=429)


class InternalError(IdeaFlowError):
    """Transaction or storage failure. Details stay in the server log."""

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__("INTERNAL_ERROR", message, status_code=500)


class PipelineConfigurationError(IdeaFlowError):
    """A pipeline's stored shape cannot support the requested step."""

    def __init__(self, message: str, details=None):
        super().__init__("PIPELINE_MISCONFIGURED", message, details, status_code=500)


# ── Status state machine ─────────────────────────────────────────────────────


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, action: str):
        super().__init__(
            "INVALID_TRANSITION",
            f"Invalid transition: cannot perform '{action}' when idea is in '{current}' state.",
            details={"current": current, "action": action},
        )
        self.current = current
        self.action = action


class AlreadyReviewedError(ConflictError):
    def __init__(self, current: str):
        super().__init__(
            "ALREADY_REVIEWED",
            f"Idea has already been reviewed (status: '{current}').",
            details={"current": current},
        )
        self.current = current


class InsufficientRoleError(AuthorizationError):
    def __init__(self, required: str, actual: str):
        super().__init__(
            f"Insufficient role: '{required}' required, but user has '{actual}'.",
            code="FORBIDDEN_ROLE",
        )
        self.required = required
        self.actual = actual


# ── Drafts ───────────────────────────────────────────────────────────────────


class DraftExpiredError(IdeaFlowError):
    """The draft outlived its expiry and can no longer be edited or submitted."""

    category = "validation"

    def __init__(self, draft_id: str):
        super().__init__(
            "EXPIRED",
            "This draft has expired.",
            details={"draft_id": draft_id},
            status_code=410,
        )
