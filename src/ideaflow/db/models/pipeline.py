"""Review pipeline, stage and per-idea stage progress tables."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideaflow.db.base import Base, TimestampMixin


class ReviewPipelineRow(Base, TimestampMixin):
    __tablename__ = "review_pipelines"

    pipeline_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    category_slug: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    blind_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    stages: Mapped[list["ReviewPipelineStageRow"]] = relationship(
        back_populates="pipeline",
        cascade="all, delete-orphan",
        order_by="ReviewPipelineStageRow.order",
        lazy="selectin",
    )


class ReviewPipelineStageRow(Base, TimestampMixin):
    __tablename__ = "review_pipeline_stages"

    stage_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    pipeline_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("review_pipelines.pipeline_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_decision_stage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    pipeline: Mapped[ReviewPipelineRow] = relationship(back_populates="stages")


class IdeaStageProgressRow(Base):
    """Execution record of one stage for one idea.

    Stage order, name and kind are copied at claim time so the shape of an
    in-flight review does not move when the pipeline is edited afterwards.
    """

    __tablename__ = "idea_stage_progress"
    __table_args__ = (
        UniqueConstraint("idea_id", "stage_id", name="uq_stage_progress_idea_stage"),
        UniqueConstraint("idea_id", "stage_order", name="uq_stage_progress_idea_order"),
    )

    progress_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    idea_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("ideas.idea_id", ondelete="CASCADE"), nullable=False, index=True
    )
    stage_id: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("review_pipeline_stages.stage_id", ondelete="SET NULL"), nullable=True, index=True
    )
    pipeline_id: Mapped[str] = mapped_column(String(128), nullable=False)
    stage_order: Mapped[int] = mapped_column(Integer, nullable=False)
    stage_name: Mapped[str] = mapped_column(String(60), nullable=False)
    is_decision_stage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reviewer_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    outcome: Mapped[str | None] = mapped_column(String(20), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resolution: Mapped[str | None] = mapped_column(String(20), nullable=True)
