"""Idea submission and read routes."""

from fastapi import APIRouter

from ideaflow.dependencies import CurrentActor, DBSession, Flags
from ideaflow.models.idea import IdeaSubmission
from ideaflow.services import ideas

router = APIRouter(tags=["Ideas"])


@router.post("/ideas", status_code=201)
async def create_idea(body: IdeaSubmission, actor: CurrentActor, db: DBSession) -> dict:
    idea_id = await ideas.create_idea(db, actor, body)
    return {"idea_id": idea_id, "status": "SUBMITTED"}


@router.get("/ideas/{idea_id}")
async def get_idea(idea_id: str, actor: CurrentActor, flags: Flags, db: DBSession) -> dict:
    return await ideas.get_idea(db, actor, flags, idea_id)


@router.get("/review-queue")
async def review_queue(actor: CurrentActor, flags: Flags, db: DBSession) -> list[dict]:
    """Ideas awaiting or undergoing review, author names masked where blind."""
    return await ideas.list_review_queue(db, actor, flags)
