"""Multi-stage review pipeline: claim an idea, claim a stage, complete a stage.

Claiming snapshots the category's pipeline into one progress row per
stage. From then on the progress rows alone decide what happens next:
edits to the pipeline never reshape a review already in flight.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.config import FeatureFlags
from ideaflow.db.base import utcnow
from ideaflow.db.models.pipeline import IdeaStageProgressRow
from ideaflow.errors.exceptions import (
    AuthorizationError,
    ConflictError,
    FeatureDisabledError,
    NotFoundError,
    PipelineConfigurationError,
    ValidationError,
)
from ideaflow.models.common import Actor
from ideaflow.models.enums import (
    DECISION_OUTCOMES,
    NON_DECISION_OUTCOMES,
    REVIEWER_ROLES,
    AuditAction,
    IdeaStatus,
    ReviewAction,
    StageOutcome,
)
from ideaflow.models.review import CompleteStageRequest
from ideaflow.repositories.idea_repo import IdeaRepository
from ideaflow.repositories.pipeline_repo import ReviewPipelineRepository
from ideaflow.repositories.score_repo import IdeaScoreRepository
from ideaflow.repositories.stage_progress_repo import StageProgressRepository
from ideaflow.services.audit import record_audit
from ideaflow.services.id_generator import SCORE, STAGE_PROGRESS, generate_id
from ideaflow.services.transactions import atomic
from ideaflow.services.validation import validate_input
from ideaflow.services.workflow.state_machine import transition

logger = logging.getLogger(__name__)

VIA_MULTI_STAGE = "multi-stage-review"


def _require_flag(flags: FeatureFlags) -> None:
    if not flags.multi_stage_review:
        raise FeatureDisabledError("Multi-stage review")


def _require_reviewer(actor: Actor, what: str) -> None:
    if actor.role not in REVIEWER_ROLES:
        raise AuthorizationError(f"Only ADMIN or SUPERADMIN can {what}.")


def _already_claimed(idea_id: str) -> ConflictError:
    return ConflictError(
        "ALREADY_CLAIMED",
        "This idea has already been claimed for review.",
        details={"idea_id": idea_id},
    )


def serialize_progress(row: IdeaStageProgressRow) -> dict:
    return {
        "progress_id": row.progress_id,
        "idea_id": row.idea_id,
        "stage_id": row.stage_id,
        "pipeline_id": row.pipeline_id,
        "stage_order": row.stage_order,
        "stage_name": row.stage_name,
        "is_decision_stage": row.is_decision_stage,
        "reviewer_id": row.reviewer_id,
        "started_at": row.started_at.isoformat() if row.started_at else None,
        "completed_at": row.completed_at.isoformat() if row.completed_at else None,
        "outcome": row.outcome,
        "comment": row.comment,
        "resolved_at": row.resolved_at.isoformat() if row.resolved_at else None,
        "resolved_by": row.resolved_by,
        "resolution": row.resolution,
    }


async def start_next_stage(
    session: AsyncSession,
    actor: Actor,
    current: IdeaStageProgressRow,
    **audit_extra,
) -> IdeaStageProgressRow | None:
    """Activate the row after ``current`` in snapshot order.

    Returns None when ``current`` is the last stage. The caller decides
    whether that is an error.
    """
    progress = StageProgressRepository(session)
    successor = await progress.get_by_order(current.idea_id, current.stage_order + 1)
    if successor is None:
        return None

    await progress.start_stage(current.idea_id, successor.stage_order, utcnow())
    await record_audit(
        session,
        actor.user_id,
        AuditAction.STAGE_STARTED,
        current.idea_id,
        {
            "stage_progress_id": successor.progress_id,
            "stage_id": successor.stage_id,
            "stage_name": successor.stage_name,
            "stage_order": successor.stage_order,
            "previous_stage_progress_id": current.progress_id,
            **audit_extra,
        },
    )
    return successor


async def claim_stage(session: AsyncSession, actor: Actor, flags: FeatureFlags, idea_id: str) -> str:
    """Begin multi-stage review of a SUBMITTED idea.

    Creates one progress row per pipeline stage, starts the first with the
    caller as reviewer, and moves the idea to UNDER_REVIEW. Returns the id
    of the first stage's progress row.
    """
    _require_flag(flags)
    _require_reviewer(actor, "claim ideas for review")

    ideas = IdeaRepository(session)
    progress = StageProgressRepository(session)

    async with atomic(
        session,
        operation="claim_stage",
        on_conflict=_already_claimed(idea_id),
        idea_id=idea_id,
        actor_id=actor.user_id,
    ):
        idea = await ideas.get_for_update(idea_id)
        if idea is None:
            raise NotFoundError("Idea", idea_id, code="IDEA_NOT_FOUND")
        if idea.status != IdeaStatus.SUBMITTED:
            raise ConflictError(
                "INVALID_STATUS",
                f"Only SUBMITTED ideas can be claimed (status: '{idea.status}').",
                details={"current": idea.status},
            )

        pipeline = await ReviewPipelineRepository(session).get_for_category(idea.category)
        if pipeline is None or not pipeline.stages:
            raise NotFoundError("Review pipeline for category", idea.category or "", code="PIPELINE_NOT_FOUND")

        if await progress.exists_for_idea(idea_id):
            raise _already_claimed(idea_id)

        next_status = transition(idea.status, ReviewAction.START_REVIEW, actor.role)

        now = utcnow()
        first: IdeaStageProgressRow | None = None
        for stage in sorted(pipeline.stages, key=lambda s: s.order):
            is_first = first is None
            row = await progress.create(
                progress_id=generate_id(STAGE_PROGRESS),
                idea_id=idea_id,
                stage_id=stage.stage_id,
                pipeline_id=pipeline.pipeline_id,
                stage_order=stage.order,
                stage_name=stage.name,
                is_decision_stage=stage.is_decision_stage,
                reviewer_id=actor.user_id if is_first else None,
                started_at=now if is_first else None,
            )
            if is_first:
                first = row

        idea.status = next_status

        await record_audit(
            session,
            actor.user_id,
            AuditAction.STAGE_STARTED,
            idea_id,
            {
                "stage_progress_id": first.progress_id,
                "stage_id": first.stage_id,
                "stage_name": first.stage_name,
                "stage_order": first.stage_order,
                "pipeline_id": pipeline.pipeline_id,
            },
        )
        await record_audit(
            session,
            actor.user_id,
            AuditAction.IDEA_REVIEW_STARTED,
            idea_id,
            {"idea_id": idea_id, "reviewer_id": actor.user_id, "via": VIA_MULTI_STAGE, "pipeline_id": pipeline.pipeline_id},
        )
        first_progress_id = first.progress_id

    logger.info(
        "Idea claimed for multi-stage review",
        extra={"idea_id": idea_id, "pipeline_id": pipeline.pipeline_id, "stage_progress_id": first_progress_id},
    )
    return first_progress_id


async def claim_active_stage(session: AsyncSession, actor: Actor, flags: FeatureFlags, progress_id: str) -> None:
    """Take ownership of a started stage that has no reviewer yet."""
    _require_flag(flags)
    _require_reviewer(actor, "claim review stages")

    progress = StageProgressRepository(session)

    async with atomic(session, operation="claim_active_stage", stage_progress_id=progress_id, actor_id=actor.user_id):
        row = await progress.get(progress_id)
        if row is None:
            raise NotFoundError("Stage progress", progress_id, code="PROGRESS_NOT_FOUND")
        if row.completed_at is not None:
            raise ConflictError("ALREADY_COMPLETED", "This stage has already been completed.")
        if row.started_at is None:
            raise ConflictError("STAGE_NOT_STARTED", "This stage has not started yet.")
        if row.reviewer_id is not None or not await progress.assign_reviewer(progress_id, actor.user_id):
            raise ConflictError("ALREADY_CLAIMED", "This stage already has a reviewer.")

        await record_audit(
            session,
            actor.user_id,
            AuditAction.STAGE_CLAIMED,
            row.idea_id,
            {"stage_progress_id": progress_id, "stage_name": row.stage_name, "stage_order": row.stage_order},
        )

    logger.info("Stage claimed", extra={"stage_progress_id": progress_id, "reviewer_id": actor.user_id})


async def complete_stage(
    session: AsyncSession,
    actor: Actor,
    flags: FeatureFlags,
    progress_id: str,
    outcome: StageOutcome | str,
    comment: str,
    score: int | None = None,
    criteria: list[str] | None = None,
) -> None:
    """Record the outcome of the caller's stage and advance the review.

    PASS starts the next stage, ESCALATE parks the idea for a SUPERADMIN,
    ACCEPTED or REJECTED on the decision stage finalizes the idea. With
    scoring enabled the decision also needs a 1-5 score, stored once per idea.
    """
    _require_flag(flags)
    request = validate_input(
        CompleteStageRequest,
        {"outcome": outcome, "comment": comment, "score": score, "criteria": criteria},
    )

    progress = StageProgressRepository(session)
    scores = IdeaScoreRepository(session)
    score_conflict = ConflictError("SCORE_CONFLICT", "A score has already been recorded for this idea.")

    async with atomic(
        session,
        operation="complete_stage",
        on_conflict=score_conflict if flags.scoring and request.score is not None else None,
        stage_progress_id=progress_id,
        actor_id=actor.user_id,
    ):
        row = await progress.get(progress_id)
        if row is None:
            raise NotFoundError("Stage progress", progress_id, code="PROGRESS_NOT_FOUND")
        if row.reviewer_id != actor.user_id:
            raise AuthorizationError("You are not the assigned reviewer for this stage.")
        if row.completed_at is not None:
            raise ConflictError("ALREADY_COMPLETED", "This stage has already been completed.")
        if row.started_at is None:
            raise ConflictError("STAGE_NOT_STARTED", "This stage has not started yet.")

        allowed = DECISION_OUTCOMES if row.is_decision_stage else NON_DECISION_OUTCOMES
        if request.outcome not in allowed:
            kind = "Decision" if row.is_decision_stage else "Non-decision"
            raise ConflictError(
                "INVALID_OUTCOME",
                f"{kind} stages only accept {' or '.join(sorted(allowed))}.",
                details={"outcome": request.outcome.value, "allowed": sorted(allowed)},
            )

        scored = flags.scoring and row.is_decision_stage
        if scored:
            if request.score is None:
                raise ValidationError("A score (1-5) is required to finalize the decision.", code="SCORE_REQUIRED")
            if await scores.get_for_idea(row.idea_id) is not None:
                raise score_conflict

        if not await progress.mark_completed(progress_id, request.outcome.value, request.comment, utcnow()):
            raise ConflictError("ALREADY_COMPLETED", "This stage has already been completed.")

        await record_audit(
            session,
            actor.user_id,
            AuditAction.STAGE_COMPLETED,
            row.idea_id,
            {
                "stage_progress_id": progress_id,
                "stage_id": row.stage_id,
                "stage_name": row.stage_name,
                "outcome": request.outcome.value,
                "pipeline_id": row.pipeline_id,
            },
        )

        if request.outcome is StageOutcome.PASS:
            if await start_next_stage(session, actor, row) is None:
                raise PipelineConfigurationError(
                    "PASS on the last stage: the pipeline has no stage to advance to.",
                    details={"stage_progress_id": progress_id, "stage_order": row.stage_order},
                )
        elif request.outcome in DECISION_OUTCOMES:
            action = ReviewAction.ACCEPT if request.outcome is StageOutcome.ACCEPTED else ReviewAction.REJECT
            idea = await IdeaRepository(session).get_for_update(row.idea_id)
            idea.status = transition(idea.status, action, actor.role)
            await record_audit(
                session,
                actor.user_id,
                AuditAction.IDEA_REVIEWED,
                row.idea_id,
                {
                    "idea_id": row.idea_id,
                    "decision": request.outcome.value,
                    "stage_progress_id": progress_id,
                    "via": VIA_MULTI_STAGE,
                },
            )
            if scored:
                criteria_values = [c.value for c in request.criteria or []]
                await scores.create(
                    score_id=generate_id(SCORE),
                    idea_id=row.idea_id,
                    reviewer_id=actor.user_id,
                    score=request.score,
                    criteria=criteria_values,
                )
                await record_audit(
                    session,
                    actor.user_id,
                    AuditAction.IDEA_SCORED,
                    row.idea_id,
                    {"idea_id": row.idea_id, "score": request.score, "criteria": criteria_values},
                )
        # ESCALATE: the completed row itself is the pending escalation.

    logger.info("Stage completed", extra={"stage_progress_id": progress_id, "outcome": request.outcome.value})


async def list_stage_progress(session: AsyncSession, actor: Actor, idea_id: str) -> list[dict]:
    """Progress rows for one idea, in stage order. Reviewers only."""
    _require_reviewer(actor, "view stage progress")
    if await IdeaRepository(session).get(idea_id) is None:
        raise NotFoundError("Idea", idea_id, code="IDEA_NOT_FOUND")
    rows = await StageProgressRepository(session).list_for_idea(idea_id)
    return [serialize_progress(r) for r in rows]
