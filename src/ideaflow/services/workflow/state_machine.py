"""Idea status state machine.

Pure function, no I/O. Valid transitions:

    DRAFT        + SUBMIT        (author, checked by caller) -> SUBMITTED
    SUBMITTED    + START_REVIEW  (ADMIN | SUPERADMIN)        -> UNDER_REVIEW
    UNDER_REVIEW + ACCEPT        (ADMIN | SUPERADMIN)        -> ACCEPTED
    UNDER_REVIEW + REJECT        (ADMIN | SUPERADMIN)        -> REJECTED
    UNDER_REVIEW + ABANDON       (SUPERADMIN)                -> SUBMITTED

Everything else raises one of InvalidTransitionError, InsufficientRoleError
or AlreadyReviewedError.
"""

from typing import assert_never

from ideaflow.errors.exceptions import (
    AlreadyReviewedError,
    InsufficientRoleError,
    InvalidTransitionError,
)
from ideaflow.models.enums import IdeaStatus, ReviewAction, UserRole


def transition(current: IdeaStatus, action: ReviewAction, role: UserRole) -> IdeaStatus:
    """Compute the next status for ``action`` applied to ``current`` by ``role``."""
    current, action, role = IdeaStatus(current), ReviewAction(action), UserRole(role)

    # Authorship for SUBMIT is enforced by the caller before this is reached.
    if current is IdeaStatus.DRAFT:
        if action is ReviewAction.SUBMIT:
            return IdeaStatus.SUBMITTED
        raise InvalidTransitionError(current, action)

    if (current is IdeaStatus.ACCEPTED and action is ReviewAction.ACCEPT) or (
        current is IdeaStatus.REJECTED and action is ReviewAction.REJECT
    ):
        raise AlreadyReviewedError(current)

    if role is UserRole.SUBMITTER:
        raise InsufficientRoleError("ADMIN or SUPERADMIN", role)

    if action is ReviewAction.ABANDON and role is not UserRole.SUPERADMIN:
        raise InsufficientRoleError("SUPERADMIN", role)

    match current:
        case IdeaStatus.SUBMITTED:
            if action is ReviewAction.START_REVIEW:
                return IdeaStatus.UNDER_REVIEW
            raise InvalidTransitionError(current, action)
        case IdeaStatus.UNDER_REVIEW:
            if action is ReviewAction.ACCEPT:
                return IdeaStatus.ACCEPTED
            if action is ReviewAction.REJECT:
                return IdeaStatus.REJECTED
            if action is ReviewAction.ABANDON:
                return IdeaStatus.SUBMITTED
            raise InvalidTransitionError(current, action)
        case IdeaStatus.ACCEPTED | IdeaStatus.REJECTED:
            raise InvalidTransitionError(current, action)
        case _:
            assert_never(current)
