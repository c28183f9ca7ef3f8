"""Repository for review pipelines."""

from sqlalchemy import select

from ideaflow.db.models.pipeline import ReviewPipelineRow
from ideaflow.repositories.base import BaseRepository


class ReviewPipelineRepository(BaseRepository[ReviewPipelineRow]):
    model = ReviewPipelineRow

    async def get(self, pipeline_id: str) -> ReviewPipelineRow | None:
        return await self.first(self.model.pipeline_id == pipeline_id)

    async def get_for_category(self, category_slug: str | None) -> ReviewPipelineRow | None:
        if not category_slug:
            return None
        return await self.first(self.model.category_slug == category_slug)

    async def list_all(self) -> list[ReviewPipelineRow]:
        """List all pipelines ordered by category."""
        stmt = select(ReviewPipelineRow).order_by(ReviewPipelineRow.category_slug)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
