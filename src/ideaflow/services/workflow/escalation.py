"""Escalation resolver.

An escalation is a completed progress row with outcome ESCALATE whose
idea is still UNDER_REVIEW and which has not been resolved yet. A
SUPERADMIN either passes the idea on to the next stage (accepting it
when there is none) or rejects it outright.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.config import FeatureFlags
from ideaflow.db.base import utcnow
from ideaflow.errors.exceptions import (
    AuthorizationError,
    ConflictError,
    FeatureDisabledError,
    NotFoundError,
)
from ideaflow.models.common import Actor
from ideaflow.models.enums import (
    AuditAction,
    EscalationAction,
    IdeaStatus,
    ReviewAction,
    ReviewDecision,
    StageOutcome,
    UserRole,
)
from ideaflow.models.review import ResolveEscalationRequest
from ideaflow.repositories.idea_repo import IdeaRepository
from ideaflow.repositories.pipeline_repo import ReviewPipelineRepository
from ideaflow.repositories.stage_progress_repo import StageProgressRepository
from ideaflow.repositories.user_repo import UserRepository
from ideaflow.services.audit import record_audit
from ideaflow.services.blind_review import mask_author_if_blind
from ideaflow.services.transactions import atomic
from ideaflow.services.validation import validate_input
from ideaflow.services.workflow.stage_pipeline import start_next_stage
from ideaflow.services.workflow.state_machine import transition

logger = logging.getLogger(__name__)

VIA_ESCALATION = "escalation-resolution"


def _require_superadmin(actor: Actor) -> None:
    if actor.role is not UserRole.SUPERADMIN:
        raise AuthorizationError("Only SUPERADMIN can handle escalations.")


async def resolve_escalation(
    session: AsyncSession,
    actor: Actor,
    flags: FeatureFlags,
    progress_id: str,
    action: EscalationAction | str,
    comment: str,
) -> IdeaStatus:
    """Resolve an escalated stage. Returns the idea's status afterwards."""
    if not flags.multi_stage_review:
        raise FeatureDisabledError("Multi-stage review")
    request = validate_input(ResolveEscalationRequest, {"action": action, "comment": comment})
    _require_superadmin(actor)

    progress = StageProgressRepository(session)

    async with atomic(session, operation="resolve_escalation", stage_progress_id=progress_id, actor_id=actor.user_id):
        row = await progress.get(progress_id)
        if row is None:
            raise NotFoundError("Stage progress", progress_id, code="PROGRESS_NOT_FOUND")
        if row.outcome != StageOutcome.ESCALATE:
            raise ConflictError("NOT_ESCALATED", "This stage was not escalated.")
        if row.completed_at is None:
            raise ConflictError("STAGE_INCOMPLETE", "This stage has not been completed.")

        idea = await IdeaRepository(session).get_for_update(row.idea_id)
        if idea.status != IdeaStatus.UNDER_REVIEW:
            raise ConflictError(
                "INVALID_STATUS",
                f"Escalations can only be resolved while the idea is UNDER_REVIEW (status: '{idea.status}').",
                details={"current": idea.status},
            )
        if row.resolved_at is not None or not await progress.mark_resolved(
            progress_id, actor.user_id, request.action.value, utcnow()
        ):
            raise ConflictError("NOT_ESCALATED", "This escalation has already been resolved.")

        decision: ReviewDecision | None = None
        if request.action is EscalationAction.PASS:
            successor = await start_next_stage(session, actor, row, escalation_resolution=request.action.value)
            if successor is None:
                idea.status = transition(idea.status, ReviewAction.ACCEPT, actor.role)
                decision = ReviewDecision.ACCEPTED
        else:
            idea.status = transition(idea.status, ReviewAction.REJECT, actor.role)
            decision = ReviewDecision.REJECTED

        if decision is not None:
            await record_audit(
                session,
                actor.user_id,
                AuditAction.IDEA_REVIEWED,
                idea.idea_id,
                {
                    "idea_id": idea.idea_id,
                    "decision": decision.value,
                    "stage_progress_id": progress_id,
                    "via": VIA_ESCALATION,
                },
            )

        await record_audit(
            session,
            actor.user_id,
            AuditAction.ESCALATION_RESOLVED,
            idea.idea_id,
            {
                "stage_progress_id": progress_id,
                "stage_name": row.stage_name,
                "resolution": request.action.value,
                "resolved_by": actor.user_id,
                "comment": request.comment,
            },
        )
        new_status = IdeaStatus(idea.status)

    logger.info(
        "Escalation resolved",
        extra={"stage_progress_id": progress_id, "resolution": request.action.value, "status": new_status.value},
    )
    return new_status


async def list_pending_escalations(session: AsyncSession, actor: Actor, flags: FeatureFlags) -> list[dict]:
    """Unresolved escalations, oldest first, for the SUPERADMIN queue."""
    if not flags.multi_stage_review:
        raise FeatureDisabledError("Multi-stage review")
    _require_superadmin(actor)

    pending = await StageProgressRepository(session).list_pending_escalations()
    names = await UserRepository(session).display_names({idea.author_id for _, idea in pending})
    pipelines = {p.category_slug: p for p in await ReviewPipelineRepository(session).list_all()}

    items = []
    for row, idea in pending:
        pipeline = pipelines.get(idea.category)
        items.append({
            "stage_progress_id": row.progress_id,
            "idea_id": idea.idea_id,
            "idea_title": idea.title,
            "author_name": mask_author_if_blind(
                author_id=idea.author_id,
                author_display_name=names.get(idea.author_id),
                requester_id=actor.user_id,
                requester_role=actor.role,
                pipeline_blind_review=bool(pipeline and pipeline.blind_review),
                idea_status=idea.status,
                feature_flag_enabled=flags.blind_review,
            ),
            "stage_name": row.stage_name,
            "stage_order": row.stage_order,
            "escalated_by": row.reviewer_id,
            "escalated_at": row.completed_at.isoformat() if row.completed_at else None,
            "comment": row.comment,
        })
    return items
