"""Single-stage review repository."""

from ideaflow.db.models.review import SingleStageReviewRow
from ideaflow.repositories.base import BaseRepository


class SingleStageReviewRepository(BaseRepository[SingleStageReviewRow]):
    model = SingleStageReviewRow

    async def get_for_idea(self, idea_id: str) -> SingleStageReviewRow | None:
        return await self.first(self.model.idea_id == idea_id)
