"""Audit event routes."""

from fastapi import APIRouter

from ideaflow.dependencies import CurrentActor, DBSession, Flags
from ideaflow.services import audit_trail

router = APIRouter(tags=["Audit"])


@router.get("/audit/events")
async def list_audit_events(
    actor: CurrentActor,
    flags: Flags,
    db: DBSession,
    target_id: str | None = None,
    actor_id: str | None = None,
    action: str | None = None,
) -> list[dict]:
    return await audit_trail.list_audit_events(db, actor, flags, target_id=target_id, actor_id=actor_id, action=action)
