"""Idea table. Drafts are ideas in status DRAFT."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ideaflow.db.base import Base, TimestampMixin


class IdeaRow(Base, TimestampMixin):
    __tablename__ = "ideas"

    idea_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    author_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(150), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    visibility: Mapped[str] = mapped_column(String(10), nullable=False, default="PUBLIC")
    draft_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_expired_draft: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
