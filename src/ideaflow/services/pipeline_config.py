"""Review pipeline configuration: CRUD plus the default pipeline seed.

Writes are SUPERADMIN-only. A stage cannot be removed, and a pipeline
cannot be deleted, while an idea under review still has an open progress
row pointing at it.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.db.models.pipeline import ReviewPipelineRow, ReviewPipelineStageRow
from ideaflow.errors.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ideaflow.models.common import Actor
from ideaflow.models.enums import REVIEWER_ROLES, AuditAction, IdeaCategory, UserRole
from ideaflow.models.pipeline import PipelineCreate, PipelineUpdate, StageInput
from ideaflow.repositories.pipeline_repo import ReviewPipelineRepository
from ideaflow.repositories.stage_progress_repo import StageProgressRepository
from ideaflow.services.audit import record_audit
from ideaflow.services.id_generator import PIPELINE, STAGE, generate_id
from ideaflow.services.transactions import atomic
from ideaflow.services.validation import validate_input

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"

CATEGORY_LABELS = {
    IdeaCategory.PROCESS_IMPROVEMENT: "Process Improvement",
    IdeaCategory.NEW_PRODUCT_SERVICE: "New Product/Service",
    IdeaCategory.COST_REDUCTION: "Cost Reduction",
    IdeaCategory.EMPLOYEE_EXPERIENCE: "Employee Experience",
    IdeaCategory.TECHNICAL_INNOVATION: "Technical Innovation",
}

DEFAULT_STAGES = [
    {"name": "Initial Screening", "description": "Check completeness and fit.", "order": 1, "is_decision_stage": False},
    {"name": "Final Decision", "description": "Accept or reject the idea.", "order": 2, "is_decision_stage": True},
]


def _require_superadmin(actor: Actor) -> None:
    if actor.role is not UserRole.SUPERADMIN:
        raise AuthorizationError("Only SUPERADMIN can manage review pipelines.")


def _pipeline_not_found(pipeline_id: str) -> NotFoundError:
    return NotFoundError("Review pipeline", pipeline_id, code="PIPELINE_NOT_FOUND")


def serialize_pipeline(row: ReviewPipelineRow) -> dict:
    return {
        "pipeline_id": row.pipeline_id,
        "name": row.name,
        "category_slug": row.category_slug,
        "is_default": row.is_default,
        "blind_review": row.blind_review,
        "stages": [
            {
                "stage_id": s.stage_id,
                "name": s.name,
                "description": s.description,
                "order": s.order,
                "is_decision_stage": s.is_decision_stage,
            }
            for s in sorted(row.stages, key=lambda s: s.order)
        ],
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def _new_stage(stage: StageInput) -> ReviewPipelineStageRow:
    return ReviewPipelineStageRow(
        stage_id=generate_id(STAGE),
        name=stage.name,
        description=stage.description,
        order=stage.order,
        is_decision_stage=stage.is_decision_stage,
    )


async def list_pipelines(session: AsyncSession, actor: Actor) -> list[dict]:
    if actor.role not in REVIEWER_ROLES:
        raise AuthorizationError("Only ADMIN or SUPERADMIN can view review pipelines.")
    return [serialize_pipeline(p) for p in await ReviewPipelineRepository(session).list_all()]


async def get_pipeline(session: AsyncSession, actor: Actor, pipeline_id: str) -> dict:
    if actor.role not in REVIEWER_ROLES:
        raise AuthorizationError("Only ADMIN or SUPERADMIN can view review pipelines.")
    pipeline = await ReviewPipelineRepository(session).get(pipeline_id)
    if pipeline is None:
        raise _pipeline_not_found(pipeline_id)
    return serialize_pipeline(pipeline)


async def create_pipeline(session: AsyncSession, actor: Actor, data: dict | PipelineCreate) -> str:
    """Create the pipeline for a category that has none yet. Returns its id."""
    _require_superadmin(actor)
    request = validate_input(PipelineCreate, data)
    if any(s.stage_id for s in request.stages):
        raise ValidationError("New pipelines cannot reference existing stages.", details=[{"field": "stages.stage_id"}])

    exists = ConflictError(
        "PIPELINE_EXISTS",
        f"A pipeline already exists for category '{request.category_slug.value}'.",
        details={"category_slug": request.category_slug.value},
    )
    repo = ReviewPipelineRepository(session)

    async with atomic(session, operation="create_pipeline", on_conflict=exists, actor_id=actor.user_id):
        if await repo.get_for_category(request.category_slug.value) is not None:
            raise exists

        pipeline_id = generate_id(PIPELINE)
        session.add(
            ReviewPipelineRow(
                pipeline_id=pipeline_id,
                name=request.name,
                category_slug=request.category_slug.value,
                is_default=request.is_default,
                blind_review=request.blind_review,
                stages=[_new_stage(s) for s in request.stages],
            )
        )
        await session.flush()

        await record_audit(
            session,
            actor.user_id,
            AuditAction.PIPELINE_CREATED,
            pipeline_id,
            {
                "pipeline_id": pipeline_id,
                "category_slug": request.category_slug.value,
                "stage_count": len(request.stages),
                "blind_review": request.blind_review,
            },
        )

    logger.info("Pipeline created", extra={"pipeline_id": pipeline_id, "category_slug": request.category_slug.value})
    return pipeline_id


async def update_pipeline(session: AsyncSession, actor: Actor, pipeline_id: str, data: dict | PipelineUpdate) -> None:
    """Rename, toggle blind review, or replace the stage list.

    Stages carrying a ``stage_id`` are edited in place; stages without one
    are added; stored stages missing from the list are removed, unless an
    idea under review still has one of them open (STAGE_IN_USE).
    """
    _require_superadmin(actor)
    request = validate_input(PipelineUpdate, data)
    repo = ReviewPipelineRepository(session)

    async with atomic(session, operation="update_pipeline", pipeline_id=pipeline_id, actor_id=actor.user_id):
        pipeline = await repo.get(pipeline_id)
        if pipeline is None:
            raise _pipeline_not_found(pipeline_id)

        removed_ids: list[str] = []
        if request.stages is not None:
            current = {s.stage_id: s for s in pipeline.stages}
            unknown = [s.stage_id for s in request.stages if s.stage_id and s.stage_id not in current]
            if unknown:
                raise ValidationError(
                    "Stages must belong to this pipeline.",
                    details=[{"field": "stages.stage_id", "message": f"Unknown stage '{sid}'"} for sid in unknown],
                )

            kept = {s.stage_id for s in request.stages if s.stage_id}
            removed_ids = [sid for sid in current if sid not in kept]
            in_flight = await StageProgressRepository(session).count_in_flight(removed_ids)
            if in_flight:
                raise ConflictError(
                    "STAGE_IN_USE",
                    "Cannot remove a stage that ideas under review are still in.",
                    details={"stage_ids": removed_ids, "open_reviews": in_flight},
                )

            stages = []
            for stage in request.stages:
                if stage.stage_id:
                    row = current[stage.stage_id]
                    row.name = stage.name
                    row.description = stage.description
                    row.order = stage.order
                    row.is_decision_stage = stage.is_decision_stage
                    stages.append(row)
                else:
                    stages.append(_new_stage(stage))
            pipeline.stages = stages

        if request.name is not None:
            pipeline.name = request.name
        if request.blind_review is not None:
            pipeline.blind_review = request.blind_review
        await session.flush()

        await record_audit(
            session,
            actor.user_id,
            AuditAction.PIPELINE_UPDATED,
            pipeline_id,
            {
                "pipeline_id": pipeline_id,
                "fields": sorted(request.model_fields_set),
                "removed_stage_ids": removed_ids,
            },
        )

    logger.info("Pipeline updated", extra={"pipeline_id": pipeline_id})


async def delete_pipeline(session: AsyncSession, actor: Actor, pipeline_id: str) -> None:
    _require_superadmin(actor)
    repo = ReviewPipelineRepository(session)

    async with atomic(session, operation="delete_pipeline", pipeline_id=pipeline_id, actor_id=actor.user_id):
        pipeline = await repo.get(pipeline_id)
        if pipeline is None:
            raise _pipeline_not_found(pipeline_id)
        if pipeline.is_default:
            raise ConflictError("CANNOT_DELETE_DEFAULT", "Default pipelines cannot be deleted.")

        in_flight = await StageProgressRepository(session).count_in_flight([s.stage_id for s in pipeline.stages])
        if in_flight:
            raise ConflictError(
                "PIPELINE_IN_USE",
                "Cannot delete a pipeline that ideas under review are still in.",
                details={"open_reviews": in_flight},
            )

        category_slug = pipeline.category_slug
        await repo.delete(pipeline)
        await record_audit(
            session,
            actor.user_id,
            AuditAction.PIPELINE_DELETED,
            pipeline_id,
            {"pipeline_id": pipeline_id, "category_slug": category_slug},
        )

    logger.info("Pipeline deleted", extra={"pipeline_id": pipeline_id})


async def seed_default_pipelines(session: AsyncSession) -> int:
    """Create the default two-stage pipeline for every category lacking one.

    Idempotent: categories that already have a pipeline are left alone.
    Returns the number of pipelines created.
    """
    repo = ReviewPipelineRepository(session)
    created = 0
    async with atomic(session, operation="seed_default_pipelines"):
        for category in IdeaCategory:
            if await repo.get_for_category(category.value) is not None:
                continue
            pipeline_id = f"pipe_default_{category.value.replace('-', '_')}"
            session.add(
                ReviewPipelineRow(
                    pipeline_id=pipeline_id,
                    name=f"{CATEGORY_LABELS[category]} Review",
                    category_slug=category.value,
                    is_default=True,
                    blind_review=False,
                    stages=[
                        ReviewPipelineStageRow(stage_id=f"{pipeline_id}_s{stage['order']}", **stage)
                        for stage in DEFAULT_STAGES
                    ],
                )
            )
            await record_audit(
                session,
                SYSTEM_ACTOR_ID,
                AuditAction.PIPELINE_CREATED,
                pipeline_id,
                {"pipeline_id": pipeline_id, "category_slug": category.value, "seeded": True},
            )
            created += 1

    if created:
        logger.info("Seeded %d default review pipelines", created)
    return created
