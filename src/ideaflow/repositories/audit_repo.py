"""Audit log repository. Insert-only."""

from sqlalchemy import select

from ideaflow.db.models.audit import AuditLogRow
from ideaflow.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLogRow]):
    model = AuditLogRow

    async def append(self, **kwargs) -> AuditLogRow:
        return await self.create(**kwargs)

    async def update(self, row, **kwargs):
        raise TypeError("audit log entries are immutable")

    async def delete(self, row) -> None:
        raise TypeError("audit log entries are immutable")

    async def list_by_target(self, target_id: str) -> list[AuditLogRow]:
        stmt = (
            select(AuditLogRow)
            .where(AuditLogRow.target_id == target_id)
            .order_by(AuditLogRow.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_actor(self, actor_id: str) -> list[AuditLogRow]:
        stmt = (
            select(AuditLogRow)
            .where(AuditLogRow.actor_id == actor_id)
            .order_by(AuditLogRow.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
