from __future__ import annotations

from pipelines.runner import RunContext
from ports.source import SourcePort
from services.csv_import import parse_contacts
from services.enrichment_cache import EnrichmentCache
from services.errors import SourceUnavailable


class FetchSource:
    def __init__(self, source: SourcePort) -> None:
        self.source = source

    def run(self, ctx: RunContext) -> RunContext:
        if not ctx.locator:
            raise SourceUnavailable("No source locator configured")
        ctx.raw_text = self.source.fetch(ctx.locator)
        ctx.meta["source_name"] = getattr(self.source, "source_name", "unknown")
        return ctx


class ImportContacts:
    def run(self, ctx: RunContext) -> RunContext:
        ctx.contacts = parse_contacts(ctx.raw_text or "")
        ctx.meta["imported_contacts"] = len(ctx.contacts)
        return ctx


class MergeCachedEnrichment:
    def __init__(self, cache: EnrichmentCache) -> None:
        self.cache = cache

    def run(self, ctx: RunContext) -> RunContext:
        mapping = self.cache.load()
        ctx.contacts = self.cache.merge(ctx.contacts, mapping)
        ctx.meta["cache_entries"] = len(mapping)
        # Persist right after the merge so the cache reflects this import
        self.cache.refresh(ctx.contacts)
        return ctx
