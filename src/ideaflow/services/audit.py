"""Audit log writer."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.db.base import utcnow
from ideaflow.db.models.audit import AuditLogRow
from ideaflow.models.enums import AuditAction
from ideaflow.repositories.audit_repo import AuditLogRepository
from ideaflow.services.id_generator import AUDIT, generate_id


async def record_audit(
    session: AsyncSession,
    actor_id: str,
    action: AuditAction,
    target_id: str,
    metadata: dict[str, Any] | None = None,
) -> AuditLogRow:
    """Append one audit entry inside the caller's transaction."""
    return await AuditLogRepository(session).append(
        audit_id=generate_id(AUDIT),
        actor_id=actor_id,
        action=action.value,
        target_id=target_id,
        details=metadata or {},
        created_at=utcnow(),
    )
