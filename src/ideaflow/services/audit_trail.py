"""Audit trail reads for reviewers.

While an idea is masked for the viewer, events its author performed on it
would name the author through ``actor_id``. Target listings redact that id
and actor listings leave those events out.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.config import FeatureFlags
from ideaflow.db.models.audit import AuditLogRow
from ideaflow.errors.exceptions import InsufficientRoleError
from ideaflow.models.common import Actor
from ideaflow.models.enums import REVIEWER_ROLES, UserRole
from ideaflow.repositories.audit_repo import AuditLogRepository
from ideaflow.repositories.idea_repo import IdeaRepository
from ideaflow.services.blind_review import ANONYMOUS, mask_author_if_blind
from ideaflow.services.ideas import blind_categories

logger = logging.getLogger(__name__)


def _idea_ids(event: AuditLogRow) -> set[str]:
    ids = {event.target_id}
    idea_id = (event.details or {}).get("idea_id")
    if idea_id:
        ids.add(idea_id)
    return ids


async def _masked_authors(
    session: AsyncSession, viewer: Actor, flags: FeatureFlags, events: list[AuditLogRow]
) -> dict[str, str]:
    """Map idea id to author id for every referenced idea masked for ``viewer``."""
    if not flags.blind_review or viewer.role == UserRole.SUPERADMIN or not events:
        return {}

    referenced = set().union(*(_idea_ids(e) for e in events))
    ideas = await IdeaRepository(session).list_by_ids(referenced)
    blind = await blind_categories(session)
    return {
        idea.idea_id: idea.author_id
        for idea in ideas
        if mask_author_if_blind(
            author_id=idea.author_id,
            author_display_name=None,
            requester_id=viewer.user_id,
            requester_role=viewer.role,
            pipeline_blind_review=idea.category in blind,
            idea_status=idea.status,
            feature_flag_enabled=flags.blind_review,
        )
        == ANONYMOUS
    }


def serialize_event(event: AuditLogRow, hide_actor: bool = False) -> dict:
    return {
        "audit_id": event.audit_id,
        "actor_id": None if hide_actor else event.actor_id,
        "action": event.action,
        "target_id": event.target_id,
        "metadata": event.details,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


async def list_audit_events(
    session: AsyncSession,
    viewer: Actor,
    flags: FeatureFlags,
    target_id: str | None = None,
    actor_id: str | None = None,
    action: str | None = None,
) -> list[dict]:
    """Events for one target or one actor, oldest first. Reviewers only."""
    if viewer.role not in REVIEWER_ROLES:
        raise InsufficientRoleError("ADMIN or SUPERADMIN", viewer.role)

    repo = AuditLogRepository(session)
    if target_id:
        events = await repo.list_by_target(target_id)
    elif actor_id:
        events = await repo.list_by_actor(actor_id)
    else:
        # No unbounded list-all
        events = []

    if action:
        events = [e for e in events if e.action == action]

    masked = await _masked_authors(session, viewer, flags, events)

    def by_masked_author(event: AuditLogRow) -> bool:
        return any(masked.get(idea_id) == event.actor_id for idea_id in _idea_ids(event))

    if target_id:
        return [serialize_event(e, hide_actor=by_masked_author(e)) for e in events]

    visible = [e for e in events if not by_masked_author(e)]
    if len(visible) < len(events):
        logger.info(
            "Audit events withheld under blind review",
            extra={"viewer_id": viewer.user_id, "withheld": len(events) - len(visible)},
        )
    return [serialize_event(e) for e in visible]
