"""Escalation queue and resolution routes (SUPERADMIN)."""

from typing import Any

from fastapi import APIRouter, Body

from ideaflow.dependencies import CurrentActor, DBSession, Flags
from ideaflow.services.workflow import escalation

router = APIRouter(tags=["Escalations"])


@router.get("/escalations")
async def list_escalations(actor: CurrentActor, flags: Flags, db: DBSession) -> list[dict]:
    return await escalation.list_pending_escalations(db, actor, flags)


@router.post("/escalations/{progress_id}/resolve")
async def resolve_escalation(
    progress_id: str,
    actor: CurrentActor,
    flags: Flags,
    db: DBSession,
    payload: dict[str, Any] = Body(...),
) -> dict:
    status = await escalation.resolve_escalation(
        db, actor, flags, progress_id, payload.get("action"), payload.get("comment")
    )
    return {"success": True, "stage_progress_id": progress_id, "status": status}
