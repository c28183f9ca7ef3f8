"""Multi-stage pipeline routes.

Bodies are passed through as plain dicts: the service checks the feature
flag before it validates input, and the error codes depend on that order.
"""

from typing import Any

from fastapi import APIRouter, Body

from ideaflow.dependencies import CurrentActor, DBSession, Flags
from ideaflow.services.workflow import stage_pipeline

router = APIRouter(tags=["Stages"])


@router.post("/ideas/{idea_id}/stages/claim", status_code=201)
async def claim_stage(idea_id: str, actor: CurrentActor, flags: Flags, db: DBSession) -> dict:
    progress_id = await stage_pipeline.claim_stage(db, actor, flags, idea_id)
    return {"idea_id": idea_id, "stage_progress_id": progress_id}


@router.get("/ideas/{idea_id}/stages")
async def list_stages(idea_id: str, actor: CurrentActor, db: DBSession) -> list[dict]:
    return await stage_pipeline.list_stage_progress(db, actor, idea_id)


@router.post("/stage-progress/{progress_id}/claim")
async def claim_active_stage(progress_id: str, actor: CurrentActor, flags: Flags, db: DBSession) -> dict:
    await stage_pipeline.claim_active_stage(db, actor, flags, progress_id)
    return {"success": True, "stage_progress_id": progress_id}


@router.post("/stage-progress/{progress_id}/complete")
async def complete_stage(
    progress_id: str,
    actor: CurrentActor,
    flags: Flags,
    db: DBSession,
    payload: dict[str, Any] = Body(...),
) -> dict:
    await stage_pipeline.complete_stage(
        db,
        actor,
        flags,
        progress_id,
        payload.get("outcome"),
        payload.get("comment"),
        score=payload.get("score"),
        criteria=payload.get("criteria"),
    )
    return {"success": True, "stage_progress_id": progress_id}
