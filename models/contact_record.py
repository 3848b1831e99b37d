from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EnrichmentStatus(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


class ContactRecord(BaseModel):
    """Working-set record shape: one imported contact plus its enrichment state.

    `id` is the record's zero-based position among emitted rows at import time;
    it is only stable within one import.
    """

    id: int
    first_name: str = ""
    last_name: str = ""
    job_title: str = ""
    company: str = ""
    city: str = ""
    status: EnrichmentStatus = EnrichmentStatus.IDLE

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @property
    def is_eligible(self) -> bool:
        """True when the record lacks a confirmed city or holds a stale error/not-found."""
        return not self.city or self.status in (EnrichmentStatus.ERROR, EnrichmentStatus.NOT_FOUND)

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
