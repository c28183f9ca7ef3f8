"""Pydantic models for review, stage and escalation requests."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from ideaflow.models.enums import EscalationAction, ReviewDecision, ScoringCriterion, StageOutcome

ReviewComment = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=2000)]


class FinalizeReviewRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    decision: ReviewDecision
    comment: ReviewComment


class CompleteStageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: StageOutcome
    comment: ReviewComment
    # Only read on the decision stage while scoring is enabled.
    score: int | None = Field(None, ge=1, le=5, strict=True)
    criteria: list[ScoringCriterion] | None = Field(None, max_length=5)


class ResolveEscalationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: EscalationAction
    comment: ReviewComment
