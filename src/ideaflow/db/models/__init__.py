"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from ideaflow.db.models.user import UserRow
from ideaflow.db.models.idea import IdeaRow
from ideaflow.db.models.review import SingleStageReviewRow
from ideaflow.db.models.score import IdeaScoreRow
from ideaflow.db.models.pipeline import (
    IdeaStageProgressRow,
    ReviewPipelineRow,
    ReviewPipelineStageRow,
)
from ideaflow.db.models.audit import AuditLogRow

__all__ = [
    "UserRow",
    "IdeaRow",
    "SingleStageReviewRow",
    "IdeaScoreRow",
    "ReviewPipelineRow",
    "ReviewPipelineStageRow",
    "IdeaStageProgressRow",
    "AuditLogRow",
]
