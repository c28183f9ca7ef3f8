"""Draft routes, including the externally triggered maintenance sweep."""

import hmac
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, Request, Response

from ideaflow.config import settings
from ideaflow.api.middleware.rate_limit import limiter
from ideaflow.dependencies import CurrentActor, DBSession, Flags
from ideaflow.errors.exceptions import AuthenticationError, FeatureDisabledError
from ideaflow.services import drafts

router = APIRouter(tags=["Drafts"])


@router.get("/drafts")
async def list_drafts(actor: CurrentActor, db: DBSession) -> list[dict]:
    return await drafts.list_drafts(db, actor)


def _drafts_enabled(actor: CurrentActor, flags: Flags) -> None:
    # Dependencies resolve before the limiter counts the call, so a disabled
    # feature answers FEATURE_DISABLED rather than spending the rate budget.
    if not flags.drafts:
        raise FeatureDisabledError("Draft saving")


@router.post("/drafts", dependencies=[Depends(_drafts_enabled)])
@limiter.limit(settings.draft_save_rate_limit)
async def save_draft(
    request: Request,
    actor: CurrentActor,
    flags: Flags,
    db: DBSession,
    payload: dict[str, Any] = Body(...),
) -> dict:
    draft_id = await drafts.save_draft(db, actor, flags, payload)
    return {"draft_id": draft_id}


@router.post("/drafts/expire")
async def expire_drafts(db: DBSession, x_cron_secret: str = Header("")) -> dict:
    """Storage cleanup for a scheduler outside the app. Reads never rely on it."""
    if not settings.cron_secret or not hmac.compare_digest(x_cron_secret, settings.cron_secret):
        raise AuthenticationError("Invalid cron secret")
    return await drafts.expire_drafts(db)


@router.post("/drafts/{draft_id}/submit")
async def submit_draft(
    draft_id: str,
    actor: CurrentActor,
    db: DBSession,
    payload: dict[str, Any] | None = Body(None),
) -> dict:
    idea_id = await drafts.submit_draft(db, actor, draft_id, payload)
    return {"idea_id": idea_id, "status": "SUBMITTED"}


@router.delete("/drafts/{draft_id}", status_code=204)
async def delete_draft(draft_id: str, actor: CurrentActor, db: DBSession) -> Response:
    await drafts.delete_draft(db, actor, draft_id)
    return Response(status_code=204)
