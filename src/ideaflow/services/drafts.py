"""Draft lifecycle: save, submit, delete, list and the maintenance sweep.

A draft is an idea in status DRAFT with a sliding 90-day expiry that every
save renews. Expiry is evaluated lazily on each read; the sweep only
tidies storage and nothing depends on it having run.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.config import FeatureFlags
from ideaflow.db.base import utcnow
from ideaflow.db.models.idea import IdeaRow
from ideaflow.errors.exceptions import (
    DraftExpiredError,
    FeatureDisabledError,
    NotFoundError,
    ValidationError,
)
from ideaflow.models.common import Actor
from ideaflow.models.enums import AuditAction, IdeaStatus, ReviewAction, Visibility
from ideaflow.models.idea import DraftSave, DraftSubmit, IdeaSubmission
from ideaflow.repositories.idea_repo import IdeaRepository
from ideaflow.repositories.user_repo import UserRepository
from ideaflow.services.audit import record_audit
from ideaflow.services.blind_review import UNKNOWN
from ideaflow.services.id_generator import IDEA, generate_id
from ideaflow.services.ideas import is_draft_expired, serialize_idea
from ideaflow.services.transactions import atomic
from ideaflow.services.validation import validate_input
from ideaflow.services.workflow.state_machine import transition

logger = logging.getLogger(__name__)

DRAFT_TTL = timedelta(days=90)
MAX_ACTIVE_DRAFTS = 10
PURGE_GRACE = timedelta(days=7)

DRAFT_FIELDS = ("title", "description", "category", "visibility")


async def _owned_draft(ideas: IdeaRepository, actor: Actor, draft_id: str) -> IdeaRow:
    # Someone else's draft, or a former draft, is reported exactly like a missing one.
    draft = await ideas.get_for_update(draft_id)
    if draft is None or draft.author_id != actor.user_id or draft.status != IdeaStatus.DRAFT:
        raise NotFoundError("Draft", draft_id)
    return draft


async def save_draft(session: AsyncSession, actor: Actor, flags: FeatureFlags, data: dict | DraftSave) -> str:
    """Create a draft, or update one the caller owns. Returns the draft id."""
    if not flags.drafts:
        raise FeatureDisabledError("Draft saving")
    request = validate_input(DraftSave, data)

    ideas = IdeaRepository(session)
    now = utcnow()
    values = {
        field: (value.value if isinstance(value, Visibility) else value)
        for field, value in request.model_dump(include=set(DRAFT_FIELDS), exclude_unset=True).items()
    }

    async with atomic(session, operation="save_draft", draft_id=request.draft_id, actor_id=actor.user_id):
        if request.draft_id is None:
            # One writer per author at a time, so the cap cannot be raced past.
            await UserRepository(session).lock(actor.user_id)
            active = await ideas.count_active_drafts(actor.user_id, now)
            if active >= MAX_ACTIVE_DRAFTS:
                raise ValidationError(
                    f"You can keep at most {MAX_ACTIVE_DRAFTS} active drafts.",
                    details={"active_drafts": active, "limit": MAX_ACTIVE_DRAFTS},
                    code="DRAFT_LIMIT_EXCEEDED",
                )
            draft_id = generate_id(IDEA)
            await ideas.create(
                idea_id=draft_id,
                author_id=actor.user_id,
                status=IdeaStatus.DRAFT.value,
                draft_expires_at=now + DRAFT_TTL,
                is_expired_draft=False,
                **values,
            )
            created = True
        else:
            draft = await _owned_draft(ideas, actor, request.draft_id)
            if is_draft_expired(draft, now):
                raise DraftExpiredError(request.draft_id)
            draft_id = draft.idea_id
            await ideas.update(draft, draft_expires_at=now + DRAFT_TTL, **values)
            created = False

        await record_audit(
            session,
            actor.user_id,
            AuditAction.DRAFT_SAVED,
            draft_id,
            {"draft_id": draft_id, "created": created},
        )

    logger.info("Draft saved", extra={"draft_id": draft_id, "is_new": created})
    return draft_id


async def submit_draft(
    session: AsyncSession,
    actor: Actor,
    draft_id: str,
    data: dict | DraftSubmit | None = None,
) -> str:
    """Turn an owned, unexpired draft into a SUBMITTED idea.

    Final edits in ``data`` are merged over the stored draft and the result
    must pass the full submission rules. Allowed even while the draft
    feature is switched off, so nobody's work gets stranded.
    """
    edits = validate_input(DraftSubmit, data or {})
    ideas = IdeaRepository(session)

    async with atomic(session, operation="submit_draft", draft_id=draft_id, actor_id=actor.user_id):
        draft = await _owned_draft(ideas, actor, draft_id)
        if is_draft_expired(draft):
            raise DraftExpiredError(draft_id)

        merged = {field: getattr(draft, field) for field in DRAFT_FIELDS}
        merged.update(edits.model_dump(exclude_unset=True, exclude_none=True))
        submission = validate_input(IdeaSubmission, merged)

        await ideas.update(
            draft,
            title=submission.title,
            description=submission.description,
            category=submission.category.value,
            visibility=submission.visibility.value,
            status=transition(draft.status, ReviewAction.SUBMIT, actor.role).value,
            draft_expires_at=None,
            is_expired_draft=False,
        )
        await record_audit(
            session,
            actor.user_id,
            AuditAction.DRAFT_SUBMITTED,
            draft_id,
            {"draft_id": draft_id, "category": submission.category.value},
        )

    logger.info("Draft submitted", extra={"idea_id": draft_id, "author_id": actor.user_id})
    return draft_id


async def delete_draft(session: AsyncSession, actor: Actor, draft_id: str) -> None:
    ideas = IdeaRepository(session)
    async with atomic(session, operation="delete_draft", draft_id=draft_id, actor_id=actor.user_id):
        draft = await _owned_draft(ideas, actor, draft_id)
        await ideas.delete(draft)
        await record_audit(session, actor.user_id, AuditAction.DRAFT_DELETED, draft_id, {"draft_id": draft_id})

    logger.info("Draft deleted", extra={"draft_id": draft_id})


async def list_drafts(session: AsyncSession, actor: Actor) -> list[dict]:
    """The caller's drafts, newest first. Past-due drafts get flagged on the way."""
    ideas = IdeaRepository(session)
    me = await UserRepository(session).get(actor.user_id)
    author_name = me.display_name if me and me.display_name else UNKNOWN
    now = utcnow()
    async with atomic(session, operation="list_drafts", actor_id=actor.user_id):
        drafts = await ideas.list_drafts(actor.user_id)
        for draft in drafts:
            if not draft.is_expired_draft and is_draft_expired(draft, now):
                draft.is_expired_draft = True
    return [serialize_idea(d, author_name, now=now) for d in drafts]


async def expire_drafts(session: AsyncSession, now: datetime | None = None) -> dict[str, int]:
    """Soft-expire past-due drafts, then purge those expired beyond the grace period."""
    now = now or utcnow()
    ideas = IdeaRepository(session)
    async with atomic(session, operation="expire_drafts"):
        soft_expired = await ideas.mark_expired_drafts(now)
        hard_deleted = await ideas.purge_expired_drafts(now - PURGE_GRACE)

    logger.info("Draft sweep finished", extra={"soft_expired": soft_expired, "hard_deleted": hard_deleted})
    return {"soft_expired": soft_expired, "hard_deleted": hard_deleted}
