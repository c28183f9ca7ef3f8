"""Draft lifecycle: save, cap, lazy expiry, submit, delete, sweep."""

import logging
from datetime import timedelta

import pytest
from sqlalchemy import update

from ideaflow.config import FeatureFlags
from ideaflow.db.base import as_utc, utcnow
from ideaflow.db.models.idea import IdeaRow
from ideaflow.errors.exceptions import IdeaFlowError
from ideaflow.models.enums import IdeaStatus, UserRole
from ideaflow.repositories.audit_repo import AuditLogRepository
from ideaflow.services.drafts import (
    DRAFT_TTL,
    MAX_ACTIVE_DRAFTS,
    delete_draft,
    expire_drafts,
    list_drafts,
    save_draft,
    submit_draft,
)
from ideaflow.services.ideas import get_idea

FLAGS = FeatureFlags(multi_stage_review=True, drafts=True, blind_review=True)


@pytest.fixture
async def author(make_user):
    return await make_user(UserRole.SUBMITTER, "Dana Drafter")


@pytest.fixture
async def expired_draft(author, make_idea):
    return await make_idea(
        author,
        status=IdeaStatus.DRAFT,
        draft_expires_at=utcnow() - timedelta(days=1),
    )


def _close_to(value, expected, tolerance=timedelta(minutes=1)):
    return abs(as_utc(value) - expected) < tolerance


@pytest.mark.asyncio
async def test_save_creates_draft_with_expiry(db_session, author, reload):
    draft_id = await save_draft(db_session, author, FLAGS, {"title": "Half an idea"})

    draft = await reload(IdeaRow, draft_id)
    assert draft.status == IdeaStatus.DRAFT
    assert draft.title == "Half an idea"
    assert draft.description is None
    assert _close_to(draft.draft_expires_at, utcnow() + DRAFT_TTL)

    events = await AuditLogRepository(db_session).list_by_target(draft_id)
    assert [e.action for e in events] == ["DRAFT_SAVED"]
    assert events[0].details["created"] is True


@pytest.mark.asyncio
async def test_save_logs_draft_saved(db_session, author, caplog):
    caplog.set_level(logging.INFO, logger="ideaflow")

    draft_id = await save_draft(db_session, author, FLAGS, {"title": "Logged idea"})
    await save_draft(db_session, author, FLAGS, {"draft_id": draft_id, "title": "Logged idea v2"})

    saved = [r for r in caplog.records if r.getMessage() == "Draft saved"]
    assert [(r.draft_id, r.is_new) for r in saved] == [(draft_id, True), (draft_id, False)]


@pytest.mark.asyncio
async def test_save_update_resets_clock_and_keeps_fields(db_session, author, reload):
    draft_id = await save_draft(db_session, author, FLAGS, {"title": "Half an idea"})
    await db_session.execute(
        update(IdeaRow).where(IdeaRow.idea_id == draft_id).values(draft_expires_at=utcnow() + timedelta(days=1))
    )
    await db_session.commit()

    await save_draft(db_session, author, FLAGS, {"draft_id": draft_id, "description": "Now with detail."})

    draft = await reload(IdeaRow, draft_id)
    assert draft.title == "Half an idea"
    assert draft.description == "Now with detail."
    assert _close_to(draft.draft_expires_at, utcnow() + DRAFT_TTL)


@pytest.mark.asyncio
async def test_eleventh_draft_is_rejected(db_session, author):
    for i in range(MAX_ACTIVE_DRAFTS):
        await save_draft(db_session, author, FLAGS, {"title": f"Draft {i}"})

    with pytest.raises(IdeaFlowError) as exc_info:
        await save_draft(db_session, author, FLAGS, {"title": "One too many"})
    assert exc_info.value.code == "DRAFT_LIMIT_EXCEEDED"
    assert exc_info.value.category == "validation"
    assert len(await list_drafts(db_session, author)) == MAX_ACTIVE_DRAFTS


@pytest.mark.asyncio
async def test_expired_drafts_do_not_count_toward_cap(db_session, author, expired_draft, make_user):
    for i in range(MAX_ACTIVE_DRAFTS):
        await save_draft(db_session, author, FLAGS, {"title": f"Draft {i}"})
    with pytest.raises(IdeaFlowError):
        await save_draft(db_session, author, FLAGS, {"title": "Still too many"})

    # The cap is per author.
    other = await make_user(UserRole.SUBMITTER)
    await save_draft(db_session, other, FLAGS, {"title": "Someone else's"})


@pytest.mark.asyncio
async def test_scenario_e_expired_draft(db_session, author, expired_draft, reload):
    with pytest.raises(IdeaFlowError) as exc_info:
        await save_draft(db_session, author, FLAGS, {"draft_id": expired_draft, "title": "Revived?"})
    assert exc_info.value.code == "EXPIRED"

    with pytest.raises(IdeaFlowError) as exc_info:
        await submit_draft(db_session, author, expired_draft)
    assert exc_info.value.code == "EXPIRED"

    # Read paths see it as expired even though nothing swept it.
    assert (await reload(IdeaRow, expired_draft)).is_expired_draft is False
    view = await get_idea(db_session, author, FLAGS, expired_draft)
    assert view["is_expired_draft"] is True

    drafts = await list_drafts(db_session, author)
    assert [d["is_expired_draft"] for d in drafts] == [True]
    assert (await reload(IdeaRow, expired_draft)).is_expired_draft is True


@pytest.mark.asyncio
async def test_save_requires_feature_flag(db_session, author):
    with pytest.raises(IdeaFlowError) as exc_info:
        await save_draft(db_session, author, FeatureFlags(), {"title": "Nope"})
    assert exc_info.value.code == "FEATURE_DISABLED"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"title": "x" * 151},
        {"description": "x" * 5001},
        {"visibility": "SECRET"},
        {"title": "ok", "status": "ACCEPTED"},
    ],
)
async def test_save_validation(db_session, author, payload):
    with pytest.raises(IdeaFlowError) as exc_info:
        await save_draft(db_session, author, FLAGS, payload)
    assert exc_info.value.code == "VALIDATION_ERROR"
    assert exc_info.value.details


@pytest.mark.asyncio
async def test_foreign_or_submitted_drafts_are_not_found(db_session, author, make_user, make_idea):
    draft_id = await save_draft(db_session, author, FLAGS, {"title": "Mine"})
    stranger = await make_user(UserRole.SUBMITTER)
    with pytest.raises(IdeaFlowError) as exc_info:
        await save_draft(db_session, stranger, FLAGS, {"draft_id": draft_id, "title": "Theirs now"})
    assert exc_info.value.code == "NOT_FOUND"

    submitted_id = await make_idea(author, status=IdeaStatus.SUBMITTED)
    with pytest.raises(IdeaFlowError) as exc_info:
        await save_draft(db_session, author, FLAGS, {"draft_id": submitted_id, "title": "Edit after submit"})
    assert exc_info.value.code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_submit_applies_full_rules(db_session, author):
    draft_id = await save_draft(db_session, author, FLAGS, {"description": "Only a description so far."})

    with pytest.raises(IdeaFlowError) as exc_info:
        await submit_draft(db_session, author, draft_id)
    assert exc_info.value.code == "VALIDATION_ERROR"
    fields = {d["field"] for d in exc_info.value.details}
    assert {"title", "category"} <= fields

    with pytest.raises(IdeaFlowError) as exc_info:
        await submit_draft(db_session, author, draft_id, {"title": "A title", "category": "not-a-category"})
    assert exc_info.value.code == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_submit_transitions_and_clears_expiry(db_session, author, reload):
    draft_id = await save_draft(db_session, author, FLAGS, {"title": "Quiet hours", "description": "No meetings before ten."})

    idea_id = await submit_draft(db_session, author, draft_id, {"category": "employee-experience"})

    assert idea_id == draft_id
    idea = await reload(IdeaRow, idea_id)
    assert idea.status == IdeaStatus.SUBMITTED
    assert idea.category == "employee-experience"
    assert idea.draft_expires_at is None
    actions = [e.action for e in await AuditLogRepository(db_session).list_by_target(idea_id)]
    assert "DRAFT_SUBMITTED" in actions

    with pytest.raises(IdeaFlowError) as exc_info:
        await submit_draft(db_session, author, draft_id)
    assert exc_info.value.code == "NOT_FOUND"


@pytest.mark.asyncio
async def test_delete_draft(db_session, author, make_user, reload):
    draft_id = await save_draft(db_session, author, FLAGS, {"title": "Throwaway"})

    stranger = await make_user(UserRole.SUBMITTER)
    with pytest.raises(IdeaFlowError) as exc_info:
        await delete_draft(db_session, stranger, draft_id)
    assert exc_info.value.code == "NOT_FOUND"

    await delete_draft(db_session, author, draft_id)
    assert await reload(IdeaRow, draft_id) is None
    actions = [e.action for e in await AuditLogRepository(db_session).list_by_target(draft_id)]
    assert sorted(actions) == ["DRAFT_DELETED", "DRAFT_SAVED"]


@pytest.mark.asyncio
async def test_sweep_soft_expires_then_purges(db_session, author, make_idea, reload):
    now = utcnow()
    recent = await make_idea(author, status=IdeaStatus.DRAFT, draft_expires_at=now - timedelta(days=2))
    ancient = await make_idea(author, status=IdeaStatus.DRAFT, draft_expires_at=now - timedelta(days=10))
    live = await make_idea(author, status=IdeaStatus.DRAFT, draft_expires_at=now + timedelta(days=30))

    result = await expire_drafts(db_session, now)

    assert result == {"soft_expired": 2, "hard_deleted": 1}
    assert (await reload(IdeaRow, recent)).is_expired_draft is True
    assert await reload(IdeaRow, ancient) is None
    assert (await reload(IdeaRow, live)).is_expired_draft is False
