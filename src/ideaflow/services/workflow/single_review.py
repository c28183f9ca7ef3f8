"""Single-stage (legacy) review path: start, finalize and abandon.

Each operation runs in one transaction: the idea row is locked, the
preconditions are re-checked against fresh state, the status change goes
through the state machine, and the audit entry is written alongside.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.db.base import utcnow
from ideaflow.errors.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientRoleError,
    NotFoundError,
)
from ideaflow.models.common import Actor
from ideaflow.models.enums import (
    REVIEWER_ROLES,
    AuditAction,
    IdeaStatus,
    ReviewAction,
    ReviewDecision,
    UserRole,
)
from ideaflow.models.review import FinalizeReviewRequest
from ideaflow.repositories.idea_repo import IdeaRepository
from ideaflow.repositories.review_repo import SingleStageReviewRepository
from ideaflow.repositories.user_repo import UserRepository
from ideaflow.services.audit import record_audit
from ideaflow.services.id_generator import REVIEW, generate_id
from ideaflow.services.transactions import atomic
from ideaflow.services.validation import validate_input
from ideaflow.services.workflow.state_machine import transition

logger = logging.getLogger(__name__)

COMMENT_SUMMARY_LENGTH = 100


def _already_under_review(idea_id: str) -> ConflictError:
    return ConflictError(
        "ALREADY_UNDER_REVIEW",
        "This idea is already under review.",
        details={"idea_id": idea_id},
    )


def _no_active_review(idea_id: str) -> ConflictError:
    return ConflictError(
        "NO_ACTIVE_REVIEW",
        "No active review exists for this idea.",
        details={"idea_id": idea_id},
    )


def _require_reviewer(actor: Actor) -> None:
    if actor.role not in REVIEWER_ROLES:
        raise InsufficientRoleError("ADMIN or SUPERADMIN", actor.role)


async def start_review(session: AsyncSession, actor: Actor, idea_id: str) -> str:
    """Claim a SUBMITTED idea for single-stage review. Returns the review id."""
    _require_reviewer(actor)

    ideas = IdeaRepository(session)
    reviews = SingleStageReviewRepository(session)

    async with atomic(
        session,
        operation="start_review",
        on_conflict=_already_under_review(idea_id),
        idea_id=idea_id,
        actor_id=actor.user_id,
    ):
        idea = await ideas.get_for_update(idea_id)
        if idea is None:
            raise NotFoundError("Idea", idea_id, code="IDEA_NOT_FOUND")
        if idea.author_id == actor.user_id:
            raise AuthorizationError("You cannot review your own idea.", code="SELF_REVIEW_FORBIDDEN")

        if await reviews.get_for_idea(idea_id) is not None or idea.status == IdeaStatus.UNDER_REVIEW:
            raise _already_under_review(idea_id)

        next_status = transition(idea.status, ReviewAction.START_REVIEW, actor.role)

        review_id = generate_id(REVIEW)
        await reviews.create(
            review_id=review_id,
            idea_id=idea_id,
            reviewer_id=actor.user_id,
            started_at=utcnow(),
        )
        idea.status = next_status

        reviewer = await UserRepository(session).get(actor.user_id)
        await record_audit(
            session,
            actor.user_id,
            AuditAction.IDEA_REVIEW_STARTED,
            idea_id,
            {
                "idea_id": idea_id,
                "reviewer_id": actor.user_id,
                "reviewer_display_name": reviewer.display_name if reviewer else None,
            },
        )

    logger.info("Review started", extra={"idea_id": idea_id, "review_id": review_id})
    return review_id


async def finalize_review(
    session: AsyncSession,
    actor: Actor,
    idea_id: str,
    decision: ReviewDecision | str,
    comment: str,
) -> IdeaStatus:
    """Record the reviewer's decision on an UNDER_REVIEW idea. Returns the new status."""
    request = validate_input(FinalizeReviewRequest, {"decision": decision, "comment": comment})
    _require_reviewer(actor)

    ideas = IdeaRepository(session)
    reviews = SingleStageReviewRepository(session)
    action = ReviewAction.ACCEPT if request.decision is ReviewDecision.ACCEPTED else ReviewAction.REJECT

    async with atomic(session, operation="finalize_review", idea_id=idea_id, actor_id=actor.user_id):
        idea = await ideas.get_for_update(idea_id)
        if idea is None:
            raise NotFoundError("Idea", idea_id, code="IDEA_NOT_FOUND")
        if idea.author_id == actor.user_id:
            raise AuthorizationError("You cannot review your own idea.", code="SELF_REVIEW_FORBIDDEN")

        review = await reviews.get_for_idea(idea_id)
        if review is None:
            raise _no_active_review(idea_id)

        # A second finalize fails here: the idea is already terminal.
        next_status = transition(idea.status, action, actor.role)

        await reviews.update(
            review,
            decision=request.decision.value,
            comment=request.comment,
            decided_at=utcnow(),
        )
        idea.status = next_status

        await record_audit(
            session,
            actor.user_id,
            AuditAction.IDEA_REVIEWED,
            idea_id,
            {
                "idea_id": idea_id,
                "decision": request.decision.value,
                "comment_summary": request.comment[:COMMENT_SUMMARY_LENGTH],
            },
        )

    logger.info("Review finalized", extra={"idea_id": idea_id, "decision": request.decision.value})
    return next_status


async def abandon_review(session: AsyncSession, actor: Actor, idea_id: str) -> None:
    """Drop an open review and return the idea to SUBMITTED. SUPERADMIN only."""
    if actor.role is not UserRole.SUPERADMIN:
        raise InsufficientRoleError("SUPERADMIN", actor.role)

    ideas = IdeaRepository(session)
    reviews = SingleStageReviewRepository(session)

    async with atomic(session, operation="abandon_review", idea_id=idea_id, actor_id=actor.user_id):
        idea = await ideas.get_for_update(idea_id)
        if idea is None:
            raise NotFoundError("Idea", idea_id, code="IDEA_NOT_FOUND")

        review = await reviews.get_for_idea(idea_id)
        if review is None:
            raise _no_active_review(idea_id)

        # Only UNDER_REVIEW may be abandoned; a decided review stays put.
        next_status = transition(idea.status, ReviewAction.ABANDON, actor.role)

        original_reviewer_id = review.reviewer_id
        await reviews.delete(review)
        idea.status = next_status

        await record_audit(
            session,
            actor.user_id,
            AuditAction.IDEA_REVIEW_ABANDONED,
            idea_id,
            {
                "idea_id": idea_id,
                "original_reviewer_id": original_reviewer_id,
                "abandoned_by": actor.user_id,
            },
        )

    logger.info("Review abandoned", extra={"idea_id": idea_id, "original_reviewer_id": original_reviewer_id})
