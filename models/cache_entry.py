from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .contact_record import EnrichmentStatus


class CacheEntry(BaseModel):
    """Last-known enrichment for one identity key, as persisted."""

    city: str = ""
    status: EnrichmentStatus = EnrichmentStatus.IDLE

    model_config = ConfigDict(extra="ignore")
