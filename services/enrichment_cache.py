from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List

from pydantic import ValidationError

from config.session import CACHE_KEY
from models import CacheEntry, ContactRecord, EnrichmentStatus
from ports.store import KeyValueStorePort
from services.identity import identity_key


logger = logging.getLogger(__name__)

CacheMapping = Dict[str, CacheEntry]


class EnrichmentCache:
    """Durable identity-key -> (city, status) mapping stored as one JSON blob."""

    def __init__(self, store: KeyValueStorePort, key: str = CACHE_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> CacheMapping:
        raw = self.store.get(self.key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored enrichment cache is not valid JSON; starting empty")
            return {}
        if not isinstance(data, dict):
            return {}
        mapping: CacheMapping = {}
        for key, value in data.items():
            try:
                mapping[str(key)] = CacheEntry.model_validate(value)
            except ValidationError:
                logger.warning(f"Dropping unreadable cache entry for key={key!r}")
        return mapping

    def save(self, mapping: CacheMapping) -> None:
        payload = {key: entry.model_dump(mode="json") for key, entry in mapping.items()}
        self.store.set(self.key, json.dumps(payload, ensure_ascii=False))

    def clear(self) -> None:
        self.store.remove(self.key)

    @staticmethod
    def merge(records: Iterable[ContactRecord], mapping: CacheMapping) -> List[ContactRecord]:
        """Overlay cached city/status onto freshly imported records; identity fields untouched."""
        merged: List[ContactRecord] = []
        for record in records:
            entry = mapping.get(identity_key(record))
            if entry is None:
                merged.append(record)
                continue
            city, status = entry.city, entry.status
            # An interrupted run must not leave records stuck in flight
            if status == EnrichmentStatus.IN_PROGRESS:
                status = EnrichmentStatus.ERROR
            # found always carries a city
            elif status == EnrichmentStatus.FOUND and not city.strip():
                city, status = "", EnrichmentStatus.IDLE
            merged.append(record.model_copy(update={"city": city, "status": status}))
        return merged

    @staticmethod
    def snapshot(records: Iterable[ContactRecord], previous: CacheMapping) -> CacheMapping:
        """Fold the working set into a copy of `previous`.

        Records never enriched are not written (and drop any stale entry);
        records currently in flight keep whatever was last persisted for them.
        """
        mapping: CacheMapping = dict(previous)
        for record in records:
            key = identity_key(record)
            if record.status == EnrichmentStatus.IN_PROGRESS:
                continue
            if record.status == EnrichmentStatus.IDLE and not record.city:
                mapping.pop(key, None)
                continue
            mapping[key] = CacheEntry(city=record.city, status=record.status)
        return mapping

    def refresh(self, records: Iterable[ContactRecord]) -> CacheMapping:
        mapping = self.snapshot(records, self.load())
        self.save(mapping)
        return mapping
