"""Idea submission and read paths."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.config import FeatureFlags
from ideaflow.db.base import as_utc, utcnow
from ideaflow.db.models.idea import IdeaRow
from ideaflow.errors.exceptions import AuthorizationError, NotFoundError
from ideaflow.models.common import Actor
from ideaflow.models.enums import (
    REVIEWER_ROLES,
    AuditAction,
    IdeaStatus,
    ReviewAction,
    Visibility,
)
from ideaflow.models.idea import IdeaSubmission
from ideaflow.repositories.idea_repo import IdeaRepository
from ideaflow.repositories.pipeline_repo import ReviewPipelineRepository
from ideaflow.repositories.review_repo import SingleStageReviewRepository
from ideaflow.repositories.stage_progress_repo import StageProgressRepository
from ideaflow.repositories.user_repo import UserRepository
from ideaflow.services.audit import record_audit
from ideaflow.services.blind_review import ANONYMOUS, mask_author_if_blind
from ideaflow.services.id_generator import IDEA, generate_id
from ideaflow.services.transactions import atomic
from ideaflow.services.validation import validate_input
from ideaflow.services.workflow.stage_pipeline import serialize_progress
from ideaflow.services.workflow.state_machine import transition

logger = logging.getLogger(__name__)


def is_draft_expired(idea: IdeaRow, now: datetime | None = None) -> bool:
    """A draft is expired once flagged, or once its deadline has passed."""
    if idea.status != IdeaStatus.DRAFT:
        return False
    if idea.is_expired_draft:
        return True
    expires_at = as_utc(idea.draft_expires_at)
    return expires_at is not None and expires_at < (now or utcnow())


def serialize_idea(idea: IdeaRow, author_name: str, masked: bool = False, now: datetime | None = None) -> dict:
    expires_at = as_utc(idea.draft_expires_at)
    return {
        "idea_id": idea.idea_id,
        "author_id": None if masked else idea.author_id,
        "author_name": author_name,
        "title": idea.title,
        "description": idea.description,
        "category": idea.category,
        "status": idea.status,
        "visibility": idea.visibility,
        "draft_expires_at": expires_at.isoformat() if expires_at else None,
        "is_expired_draft": is_draft_expired(idea, now),
        "created_at": idea.created_at.isoformat() if idea.created_at else None,
        "updated_at": idea.updated_at.isoformat() if idea.updated_at else None,
    }


async def blind_categories(session: AsyncSession) -> set[str]:
    """Category slugs whose pipeline has blind review switched on."""
    return {p.category_slug for p in await ReviewPipelineRepository(session).list_all() if p.blind_review}


def _author_view(
    idea: IdeaRow,
    display_name: str | None,
    viewer: Actor,
    blind_categories: set[str],
    flags: FeatureFlags,
) -> tuple[str, bool]:
    """Author name as ``viewer`` sees it, and whether it was masked."""
    name = mask_author_if_blind(
        author_id=idea.author_id,
        author_display_name=display_name,
        requester_id=viewer.user_id,
        requester_role=viewer.role,
        pipeline_blind_review=idea.category in blind_categories,
        idea_status=idea.status,
        feature_flag_enabled=flags.blind_review,
    )
    return name, name == ANONYMOUS and display_name != ANONYMOUS


async def create_idea(session: AsyncSession, actor: Actor, data: dict | IdeaSubmission) -> str:
    """Submit a new idea directly, skipping the draft stage."""
    submission = validate_input(IdeaSubmission, data)

    async with atomic(session, operation="create_idea", actor_id=actor.user_id):
        idea_id = generate_id(IDEA)
        await IdeaRepository(session).create(
            idea_id=idea_id,
            author_id=actor.user_id,
            title=submission.title,
            description=submission.description,
            category=submission.category.value,
            visibility=submission.visibility.value,
            status=transition(IdeaStatus.DRAFT, ReviewAction.SUBMIT, actor.role).value,
        )
        await record_audit(
            session,
            actor.user_id,
            AuditAction.IDEA_CREATED,
            idea_id,
            {"idea_id": idea_id, "category": submission.category.value},
        )

    logger.info("Idea submitted", extra={"idea_id": idea_id, "author_id": actor.user_id})
    return idea_id


async def get_idea(session: AsyncSession, viewer: Actor, flags: FeatureFlags, idea_id: str) -> dict:
    """One idea as ``viewer`` may see it, with its review progress."""
    idea = await IdeaRepository(session).get(idea_id)
    is_author = idea is not None and idea.author_id == viewer.user_id
    hidden = idea is None or (
        not is_author
        and (
            idea.status == IdeaStatus.DRAFT
            or (idea.visibility == Visibility.PRIVATE and viewer.role not in REVIEWER_ROLES)
        )
    )
    if hidden:
        raise NotFoundError("Idea", idea_id, code="IDEA_NOT_FOUND")

    author = await UserRepository(session).get(idea.author_id)
    author_name, masked = _author_view(
        idea, author.display_name if author else None, viewer, await blind_categories(session), flags
    )
    result = serialize_idea(idea, author_name, masked)

    review = await SingleStageReviewRepository(session).get_for_idea(idea_id)
    result["review"] = None
    if review is not None:
        result["review"] = {
            "review_id": review.review_id,
            "reviewer_id": review.reviewer_id,
            "started_at": review.started_at.isoformat(),
            "decision": review.decision,
            "comment": review.comment,
            "decided_at": review.decided_at.isoformat() if review.decided_at else None,
        }
    result["stages"] = [serialize_progress(r) for r in await StageProgressRepository(session).list_for_idea(idea_id)]
    return result


async def list_review_queue(session: AsyncSession, viewer: Actor, flags: FeatureFlags) -> list[dict]:
    """Ideas awaiting or undergoing review, oldest first. Reviewers only."""
    if viewer.role not in REVIEWER_ROLES:
        raise AuthorizationError("Only ADMIN or SUPERADMIN can view the review queue.")

    ideas = await IdeaRepository(session).list_by_statuses([IdeaStatus.SUBMITTED, IdeaStatus.UNDER_REVIEW])
    names = await UserRepository(session).display_names({i.author_id for i in ideas})
    blind = await blind_categories(session)
    return [
        serialize_idea(idea, *_author_view(idea, names.get(idea.author_id), viewer, blind, flags))
        for idea in ideas
    ]
