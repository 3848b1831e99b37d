from __future__ import annotations

from typing import Dict, Sequence

from models import ContactRecord, Found, NotFound, Outcome
from services.providers.base import BaseCityLookup


class StubCityLookup(BaseCityLookup):
    """Offline provider for RUN_ENV=test: contacts with a company resolve, others do not."""

    name = "stub"
    operation = "city_lookup.stub"

    def _credential(self) -> str:
        return "stub"

    def build_prompt(self, batch: Sequence[ContactRecord]) -> str:
        return ",".join(str(r.id) for r in batch)

    def _lookup(self, api_key: str, batch: Sequence[ContactRecord], prompt: str) -> Dict[int, Outcome]:
        return {
            r.id: Found(city="Springfield, US") if r.company else NotFound()
            for r in batch
        }
