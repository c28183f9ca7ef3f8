"""Single-stage (legacy) review table."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ideaflow.db.base import Base


class SingleStageReviewRow(Base):
    __tablename__ = "idea_reviews"

    review_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    # unique: the storage-level guard against two concurrent start_review calls
    idea_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("ideas.idea_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    reviewer_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    decision: Mapped[str | None] = mapped_column(String(20), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
