"""Idea and draft repository."""

from datetime import datetime

from sqlalchemy import delete, func, select, update

from ideaflow.db.models.idea import IdeaRow
from ideaflow.models.enums import IdeaStatus
from ideaflow.repositories.base import BaseRepository


class IdeaRepository(BaseRepository[IdeaRow]):
    model = IdeaRow

    async def get(self, idea_id: str) -> IdeaRow | None:
        return await self.first(self.model.idea_id == idea_id)

    async def count_active_drafts(self, author_id: str, now: datetime) -> int:
        """Count drafts that are neither flagged nor past their expiry."""
        stmt = select(func.count()).select_from(IdeaRow).where(
            IdeaRow.author_id == author_id,
            IdeaRow.status == IdeaStatus.DRAFT,
            IdeaRow.is_expired_draft.is_(False),
            IdeaRow.draft_expires_at > now,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_drafts(self, author_id: str) -> list[IdeaRow]:
        stmt = (
            select(IdeaRow)
            .where(IdeaRow.author_id == author_id, IdeaRow.status == IdeaStatus.DRAFT)
            .order_by(IdeaRow.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_expired_drafts(self, now: datetime) -> int:
        stmt = (
            update(IdeaRow)
            .where(
                IdeaRow.status == IdeaStatus.DRAFT,
                IdeaRow.is_expired_draft.is_(False),
                IdeaRow.draft_expires_at <= now,
            )
            .values(is_expired_draft=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def purge_expired_drafts(self, expired_before: datetime) -> int:
        stmt = (
            delete(IdeaRow)
            .where(
                IdeaRow.status == IdeaStatus.DRAFT,
                IdeaRow.is_expired_draft.is_(True),
                IdeaRow.draft_expires_at <= expired_before,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_for_update(self, idea_id: str) -> IdeaRow | None:
        """Load an idea and lock its row until the surrounding transaction ends."""
        stmt = select(IdeaRow).where(IdeaRow.idea_id == idea_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_statuses(self, statuses: list[str]) -> list[IdeaRow]:
        stmt = (
            select(IdeaRow)
            .where(IdeaRow.status.in_(statuses))
            .order_by(IdeaRow.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_ids(self, idea_ids: set[str]) -> list[IdeaRow]:
        if not idea_ids:
            return []
        result = await self.session.execute(select(IdeaRow).where(IdeaRow.idea_id.in_(idea_ids)))
        return list(result.scalars().all())
