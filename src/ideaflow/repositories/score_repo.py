"""Idea score repository."""

from ideaflow.db.models.score import IdeaScoreRow
from ideaflow.repositories.base import BaseRepository


class IdeaScoreRepository(BaseRepository[IdeaScoreRow]):
    model = IdeaScoreRow

    async def get_for_idea(self, idea_id: str) -> IdeaScoreRow | None:
        return await self.first(self.model.idea_id == idea_id)
