from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CityLookupItem(BaseModel):
    """LLM structured output: one person's lookup answer."""

    id: int
    city: str
    job_title: str = Field(default="", alias="jobTitle")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CityLookupResponse(BaseModel):
    """LLM structured output: strict envelope expected from JSON-mode providers."""

    results: list[CityLookupItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
