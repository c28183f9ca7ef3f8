"""Decision-stage score table."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ideaflow.db.base import Base, utcnow


class IdeaScoreRow(Base):
    __tablename__ = "idea_scores"

    score_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    # unique: one score per idea, whoever finalizes it first
    idea_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("ideas.idea_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    reviewer_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    criteria: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
