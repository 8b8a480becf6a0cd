"""Request/response schemas for the skills suggestions endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SkillsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_title: str | None = Field(default=None, alias="jobTitle")


class SkillsResponse(BaseModel):
    skills: list[str]
    error: str | None = None  # omitted from successful responses
