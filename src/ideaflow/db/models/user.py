"""User table."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from ideaflow.db.base import Base, TimestampMixin


class UserRow(Base, TimestampMixin):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="SUBMITTER")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
