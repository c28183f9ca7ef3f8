"""Pydantic models for ideas and drafts."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from ideaflow.models.enums import IdeaCategory, Visibility


class DraftSave(BaseModel):
    """Relaxed draft rules: every field optional, only length caps apply."""

    model_config = ConfigDict(extra="forbid")

    draft_id: str | None = None
    title: str | None = Field(None, max_length=150)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=64)
    visibility: Visibility | None = None


class IdeaSubmission(BaseModel):
    """Full required-field rules applied on direct submission and draft submit."""

    model_config = ConfigDict(extra="forbid")

    title: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    description: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)]
    category: IdeaCategory
    visibility: Visibility = Visibility.PUBLIC


class DraftSubmit(BaseModel):
    """Optional final edits sent with a draft submission."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    category: str | None = None
    visibility: Visibility | None = None
