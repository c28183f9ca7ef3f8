"""Single-stage review routes."""

from typing import Any

from fastapi import APIRouter, Body

from ideaflow.dependencies import CurrentActor, DBSession
from ideaflow.models.enums import IdeaStatus
from ideaflow.services.workflow import single_review

router = APIRouter(tags=["Reviews"])


@router.post("/ideas/{idea_id}/review/start", status_code=201)
async def start_review(idea_id: str, actor: CurrentActor, db: DBSession) -> dict:
    review_id = await single_review.start_review(db, actor, idea_id)
    return {"idea_id": idea_id, "review_id": review_id, "status": IdeaStatus.UNDER_REVIEW}


@router.post("/ideas/{idea_id}/review/finalize")
async def finalize_review(
    idea_id: str,
    actor: CurrentActor,
    db: DBSession,
    payload: dict[str, Any] = Body(...),
) -> dict:
    status = await single_review.finalize_review(
        db, actor, idea_id, payload.get("decision"), payload.get("comment")
    )
    return {"idea_id": idea_id, "status": status}


@router.post("/ideas/{idea_id}/review/abandon")
async def abandon_review(idea_id: str, actor: CurrentActor, db: DBSession) -> dict:
    await single_review.abandon_review(db, actor, idea_id)
    return {"idea_id": idea_id, "status": IdeaStatus.SUBMITTED}
