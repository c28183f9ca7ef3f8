"""Pydantic models for review pipeline configuration."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ideaflow.models.enums import IdeaCategory


class StageInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    stage_id: str | None = None  # omit for new stages
    name: str = Field(..., min_length=1, max_length=60)
    description: str | None = Field(None, max_length=500)
    order: int = Field(..., gt=0)
    is_decision_stage: bool = False


def _check_stage_set(stages: list[StageInput]) -> list[StageInput]:
    decision_count = sum(1 for s in stages if s.is_decision_stage)
    if decision_count != 1:
        raise ValueError(
            f"Exactly one stage must be marked as the decision stage (found {decision_count})."
        )
    if sorted(s.order for s in stages) != list(range(1, len(stages) + 1)):
        raise ValueError("Stage orders must be contiguous starting at 1.")
    return stages


class PipelineCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=80)
    category_slug: IdeaCategory
    is_default: bool = False
    blind_review: bool = False
    stages: list[StageInput] = Field(..., min_length=2)

    @field_validator("stages")
    @classmethod
    def validate_stages(cls, v: list[StageInput]) -> list[StageInput]:
        return _check_stage_set(v)


class PipelineUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=80)
    blind_review: bool | None = None
    stages: list[StageInput] | None = Field(None, min_length=2)

    @field_validator("stages")
    @classmethod
    def validate_stages(cls, v: list[StageInput] | None) -> list[StageInput] | None:
        if v is None:
            return v
        return _check_stage_set(v)
