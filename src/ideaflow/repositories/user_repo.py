"""Repository for User records."""

from sqlalchemy import select

from ideaflow.db.models.user import UserRow
from ideaflow.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserRow]):
    model = UserRow

    async def get(self, user_id: str) -> UserRow | None:
        return await self.first(self.model.user_id == user_id)

    async def display_names(self, user_ids: set[str]) -> dict[str, str | None]:
        """Map user ids to display names in one query."""
        if not user_ids:
            return {}
        stmt = select(UserRow.user_id, UserRow.display_name).where(UserRow.user_id.in_(user_ids))
        result = await self.session.execute(stmt)
        return {user_id: name for user_id, name in result.all()}

    async def lock(self, user_id: str) -> UserRow | None:
        """Serialize per-user writers (e.g. the draft cap) on the user's row."""
        stmt = select(UserRow).where(UserRow.user_id == user_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
