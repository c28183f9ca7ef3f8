"""Escalation resolver and the pending-escalation queue."""

import pytest
from sqlalchemy import delete, update

from ideaflow.config import FeatureFlags
from ideaflow.db.models.idea import IdeaRow
from ideaflow.db.models.pipeline import IdeaStageProgressRow
from ideaflow.errors.exceptions import IdeaFlowError
from ideaflow.models.enums import IdeaStatus, UserRole
from ideaflow.repositories.audit_repo import AuditLogRepository
from ideaflow.repositories.stage_progress_repo import StageProgressRepository
from ideaflow.services.workflow.escalation import list_pending_escalations, resolve_escalation
from ideaflow.services.workflow.stage_pipeline import claim_stage, complete_stage

FLAGS = FeatureFlags(multi_stage_review=True, drafts=True, blind_review=True)

ESCALATE_COMMENT = "Out of my depth on the budget side."
RESOLVE_COMMENT = "Budget confirmed with finance, continue."


@pytest.fixture
async def people(make_user):
    return {
        "author": await make_user(UserRole.SUBMITTER, "Sam Submitter"),
        "admin": await make_user(UserRole.ADMIN, "Alex Admin"),
        "superadmin": await make_user(UserRole.SUPERADMIN, "Casey Super"),
    }


@pytest.fixture
async def escalated(db_session, people, make_idea):
    """Stage 1 of a two-stage review completed with ESCALATE. Returns (idea_id, stage1_id, stage2_id)."""
    idea_id = await make_idea(people["author"])
    stage1_id = await claim_stage(db_session, people["admin"], FLAGS, idea_id)
    await complete_stage(db_session, people["admin"], FLAGS, stage1_id, "ESCALATE", ESCALATE_COMMENT)
    stage2 = await StageProgressRepository(db_session).get_by_order(idea_id, 2)
    return idea_id, stage1_id, stage2.progress_id


@pytest.mark.asyncio
async def test_pass_starts_next_stage(db_session, people, escalated, reload):
    idea_id, stage1_id, stage2_id = escalated

    status = await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)

    assert status is IdeaStatus.UNDER_REVIEW
    assert (await reload(IdeaStageProgressRow, stage2_id)).started_at is not None
    stage1 = await reload(IdeaStageProgressRow, stage1_id)
    assert stage1.resolution == "PASS"
    assert stage1.resolved_by == people["superadmin"].user_id
    assert stage1.resolved_at is not None

    events = await AuditLogRepository(db_session).list_by_target(idea_id)
    resolved = [e for e in events if e.action == "ESCALATION_RESOLVED"]
    assert len(resolved) == 1
    assert resolved[0].actor_id == people["superadmin"].user_id
    assert resolved[0].details["comment"] == RESOLVE_COMMENT
    assert resolved[0].details["resolution"] == "PASS"

    assert await list_pending_escalations(db_session, people["superadmin"], FLAGS) == []


@pytest.mark.asyncio
async def test_resolving_twice_after_pass(db_session, people, escalated):
    _, stage1_id, _ = escalated
    await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)
    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)
    assert exc_info.value.code == "NOT_ESCALATED"


@pytest.mark.asyncio
async def test_scenario_d_reject_finalizes_idea(db_session, people, escalated, reload):
    idea_id, stage1_id, _ = escalated

    status = await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "REJECT", "out of scope")

    assert status is IdeaStatus.REJECTED
    assert (await reload(IdeaRow, idea_id)).status == IdeaStatus.REJECTED
    actions = [e.action for e in await AuditLogRepository(db_session).list_by_target(idea_id)]
    assert "IDEA_REVIEWED" in actions
    assert "ESCALATION_RESOLVED" in actions

    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "REJECT", RESOLVE_COMMENT)
    assert exc_info.value.code == "INVALID_STATUS"


@pytest.mark.asyncio
async def test_pass_on_last_stage_accepts(db_session, people, escalated, reload):
    idea_id, stage1_id, stage2_id = escalated
    await db_session.execute(delete(IdeaStageProgressRow).where(IdeaStageProgressRow.progress_id == stage2_id))
    await db_session.commit()

    status = await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)

    assert status is IdeaStatus.ACCEPTED
    assert (await reload(IdeaRow, idea_id)).status == IdeaStatus.ACCEPTED
    reviewed = [
        e for e in await AuditLogRepository(db_session).list_by_target(idea_id) if e.action == "IDEA_REVIEWED"
    ]
    assert reviewed[0].details["via"] == "escalation-resolution"


@pytest.mark.asyncio
async def test_only_superadmin_resolves(db_session, people, escalated):
    _, stage1_id, _ = escalated
    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, people["admin"], FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)
    assert exc_info.value.code == "FORBIDDEN"


@pytest.mark.asyncio
async def test_resolve_preconditions(db_session, people, make_idea):
    idea_id = await make_idea(people["author"])
    stage1_id = await claim_stage(db_session, people["admin"], FLAGS, idea_id)
    superadmin = people["superadmin"]

    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, superadmin, FeatureFlags(), stage1_id, "PASS", RESOLVE_COMMENT)
    assert exc_info.value.code == "FEATURE_DISABLED"

    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, superadmin, FLAGS, stage1_id, "PASS", "short")
    assert exc_info.value.code == "VALIDATION_ERROR"

    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, superadmin, FLAGS, stage1_id, "ESCALATE", RESOLVE_COMMENT)
    assert exc_info.value.code == "VALIDATION_ERROR"

    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, superadmin, FLAGS, "prog_missing", "PASS", RESOLVE_COMMENT)
    assert exc_info.value.code == "PROGRESS_NOT_FOUND"

    # Open, never escalated.
    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, superadmin, FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)
    assert exc_info.value.code == "NOT_ESCALATED"

    # Marked ESCALATE but not completed.
    await db_session.execute(
        update(IdeaStageProgressRow).where(IdeaStageProgressRow.progress_id == stage1_id).values(outcome="ESCALATE")
    )
    await db_session.commit()
    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, superadmin, FLAGS, stage1_id, "PASS", RESOLVE_COMMENT)
    assert exc_info.value.code == "STAGE_INCOMPLETE"


@pytest.mark.asyncio
async def test_pass_completed_stage_is_not_an_escalation(db_session, people, make_idea):
    idea_id = await make_idea(people["author"])
    stage1_id = await claim_stage(db_session, people["admin"], FLAGS, idea_id)
    await complete_stage(db_session, people["admin"], FLAGS, stage1_id, "PASS", "Fine, next stage please.")
    with pytest.raises(IdeaFlowError) as exc_info:
        await resolve_escalation(db_session, people["superadmin"], FLAGS, stage1_id, "REJECT", RESOLVE_COMMENT)
    assert exc_info.value.code == "NOT_ESCALATED"


@pytest.mark.asyncio
async def test_pending_queue_is_superadmin_only(db_session, people, escalated):
    with pytest.raises(IdeaFlowError) as exc_info:
        await list_pending_escalations(db_session, people["admin"], FLAGS)
    assert exc_info.value.code == "FORBIDDEN"
