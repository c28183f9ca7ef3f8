"""Repository for IdeaStageProgress rows."""

from datetime import datetime

from sqlalchemy import func, select, update

from ideaflow.db.models.idea import IdeaRow
from ideaflow.db.models.pipeline import IdeaStageProgressRow
from ideaflow.models.enums import IdeaStatus, StageOutcome
from ideaflow.repositories.base import BaseRepository


class StageProgressRepository(BaseRepository[IdeaStageProgressRow]):
    model = IdeaStageProgressRow

    async def get(self, progress_id: str) -> IdeaStageProgressRow | None:
        return await self.first(self.model.progress_id == progress_id)

    async def exists_for_idea(self, idea_id: str) -> bool:
        stmt = select(IdeaStageProgressRow.progress_id).where(IdeaStageProgressRow.idea_id == idea_id).limit(1)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def list_for_idea(self, idea_id: str) -> list[IdeaStageProgressRow]:
        stmt = (
            select(IdeaStageProgressRow)
            .where(IdeaStageProgressRow.idea_id == idea_id)
            .order_by(IdeaStageProgressRow.stage_order)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_order(self, idea_id: str, stage_order: int) -> IdeaStageProgressRow | None:
        stmt = select(IdeaStageProgressRow).where(
            IdeaStageProgressRow.idea_id == idea_id,
            IdeaStageProgressRow.stage_order == stage_order,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def mark_completed(
        self, progress_id: str, outcome: str, comment: str, completed_at: datetime
    ) -> bool:
        """Complete an open row. Returns False when another writer completed it first."""
        stmt = (
            update(IdeaStageProgressRow)
            .where(
                IdeaStageProgressRow.progress_id == progress_id,
                IdeaStageProgressRow.completed_at.is_(None),
            )
            .values(outcome=outcome, comment=comment, completed_at=completed_at)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def assign_reviewer(self, progress_id: str, reviewer_id: str) -> bool:
        """Assign a reviewer to an unowned row. Returns False when already owned."""
        stmt = (
            update(IdeaStageProgressRow)
            .where(
                IdeaStageProgressRow.progress_id == progress_id,
                IdeaStageProgressRow.reviewer_id.is_(None),
            )
            .values(reviewer_id=reviewer_id)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def start_stage(self, idea_id: str, stage_order: int, started_at: datetime) -> int:
        """Activate every not-yet-started progress row for the given stage position."""
        stmt = (
            update(IdeaStageProgressRow)
            .where(
                IdeaStageProgressRow.idea_id == idea_id,
                IdeaStageProgressRow.stage_order == stage_order,
                IdeaStageProgressRow.started_at.is_(None),
            )
            .values(started_at=started_at)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def mark_resolved(self, progress_id: str, resolved_by: str, resolution: str, resolved_at: datetime) -> bool:
        stmt = (
            update(IdeaStageProgressRow)
            .where(
                IdeaStageProgressRow.progress_id == progress_id,
                IdeaStageProgressRow.resolved_at.is_(None),
            )
            .values(resolved_by=resolved_by, resolution=resolution, resolved_at=resolved_at)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count_in_flight(self, stage_ids: list[str]) -> int:
        """Count open rows on ideas still under review for any of the given stages."""
        if not stage_ids:
            return 0
        stmt = (
            select(func.count())
            .select_from(IdeaStageProgressRow)
            .join(IdeaRow, IdeaRow.idea_id == IdeaStageProgressRow.idea_id)
            .where(
                IdeaStageProgressRow.stage_id.in_(stage_ids),
                IdeaStageProgressRow.completed_at.is_(None),
                IdeaRow.status == IdeaStatus.UNDER_REVIEW,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_pending_escalations(self) -> list[tuple[IdeaStageProgressRow, IdeaRow]]:
        stmt = (
            select(IdeaStageProgressRow, IdeaRow)
            .join(IdeaRow, IdeaRow.idea_id == IdeaStageProgressRow.idea_id)
            .where(
                IdeaStageProgressRow.outcome == StageOutcome.ESCALATE,
                IdeaStageProgressRow.completed_at.is_not(None),
                IdeaStageProgressRow.resolved_at.is_(None),
                IdeaRow.status == IdeaStatus.UNDER_REVIEW,
            )
            .order_by(IdeaStageProgressRow.completed_at)
        )
        result = await self.session.execute(stmt)
        return [(progress, idea) for progress, idea in result.all()]
