"""Status state machine: the full (status, action, role) grid."""

import pytest

from ideaflow.errors.exceptions import (
    AlreadyReviewedError,
    InsufficientRoleError,
    InvalidTransitionError,
)
from ideaflow.models.enums import IdeaStatus, ReviewAction, UserRole
from ideaflow.services.workflow.state_machine import transition

S, A, R = IdeaStatus, ReviewAction, UserRole

VALID = {
    (S.DRAFT, A.SUBMIT): S.SUBMITTED,
    (S.SUBMITTED, A.START_REVIEW): S.UNDER_REVIEW,
    (S.UNDER_REVIEW, A.ACCEPT): S.ACCEPTED,
    (S.UNDER_REVIEW, A.REJECT): S.REJECTED,
    (S.UNDER_REVIEW, A.ABANDON): S.SUBMITTED,
}


@pytest.mark.parametrize("current,action,expected", [(s, a, n) for (s, a), n in VALID.items() if a is not A.SUBMIT])
def test_admin_and_superadmin_transitions(current, action, expected):
    if action is not A.ABANDON:
        assert transition(current, action, R.ADMIN) is expected
    assert transition(current, action, R.SUPERADMIN) is expected


@pytest.mark.parametrize("role", list(UserRole))
def test_submit_from_draft_for_any_role(role):
    assert transition(S.DRAFT, A.SUBMIT, role) is S.SUBMITTED


@pytest.mark.parametrize("action", [a for a in ReviewAction if a is not A.SUBMIT])
@pytest.mark.parametrize("role", list(UserRole))
def test_draft_only_accepts_submit(action, role):
    with pytest.raises(InvalidTransitionError):
        transition(S.DRAFT, action, role)


@pytest.mark.parametrize("action", [A.START_REVIEW, A.ACCEPT, A.REJECT, A.ABANDON])
def test_submitter_cannot_review(action):
    with pytest.raises(InsufficientRoleError) as exc_info:
        transition(S.UNDER_REVIEW if action is not A.START_REVIEW else S.SUBMITTED, action, R.SUBMITTER)
    assert exc_info.value.code == "FORBIDDEN_ROLE"


def test_abandon_requires_superadmin():
    with pytest.raises(InsufficientRoleError):
        transition(S.UNDER_REVIEW, A.ABANDON, R.ADMIN)


@pytest.mark.parametrize("status,action", [(S.ACCEPTED, A.ACCEPT), (S.REJECTED, A.REJECT)])
@pytest.mark.parametrize("role", list(UserRole))
def test_repeat_decision_is_already_reviewed(status, action, role):
    # Checked before role: even a SUBMITTER learns the idea is already decided.
    with pytest.raises(AlreadyReviewedError) as exc_info:
        transition(status, action, role)
    assert exc_info.value.code == "ALREADY_REVIEWED"


def test_every_other_pair_is_invalid():
    for status in IdeaStatus:
        for action in ReviewAction:
            if (status, action) in VALID or status is S.DRAFT:
                continue
            if (status, action) in {(S.ACCEPTED, A.ACCEPT), (S.REJECTED, A.REJECT)}:
                continue
            with pytest.raises(InvalidTransitionError) as exc_info:
                transition(status, action, R.SUPERADMIN)
            assert exc_info.value.code == "INVALID_TRANSITION"
            assert exc_info.value.details == {"current": status, "action": action}


def test_accepts_plain_strings():
    assert transition("UNDER_REVIEW", "ACCEPT", "ADMIN") is S.ACCEPTED


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        transition("ARCHIVED", A.ACCEPT, R.ADMIN)
