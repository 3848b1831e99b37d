from __future__ import annotations

import pytest

from config.session import SessionConfig
from models import EnrichmentStatus, Found
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import EnrichContacts, FetchSource, ImportContacts, MergeCachedEnrichment
from services.enrichment_cache import EnrichmentCache
from services.errors import SourceUnavailable
from services.scheduler import BatchScheduler


class _Source:
    source_name = "memory"

    def fetch(self, locator):
        return "Client first name,Client second name,Company\nAnn,Lee,Acme\nBob,Ray,Globex\n"


def test_load_steps_fill_context_and_merge_cache(memory_store):
    cache = EnrichmentCache(memory_store)
    cache.save({"bob|ray|globex": {"city": "Lima, PE", "status": "found"}})
    ctx = Pipeline([FetchSource(_Source()), ImportContacts(), MergeCachedEnrichment(cache)]).run(
        RunContext(locator="sheet")
    )
    assert ctx.raw_text.startswith("Client first name")
    assert ctx.meta["imported_contacts"] == 2
    assert [(c.city, c.status) for c in ctx.contacts] == [
        ("", EnrichmentStatus.IDLE),
        ("Lima, PE", EnrichmentStatus.FOUND),
    ]


def test_fetch_requires_locator():
    with pytest.raises(SourceUnavailable):
        FetchSource(_Source()).run(RunContext())


def test_enrich_step_records_report(memory_store, make_contacts, fake_gateway):
    contacts = make_contacts(3)
    gw = fake_gateway(responder=lambda i, b: {r.id: Found(city="Oslo, NO") for r in b})
    scheduler = BatchScheduler(gw, EnrichmentCache(memory_store), SessionConfig(batch_size=2, pacing_seconds=0), sleep=lambda s: None)
    ctx = EnrichContacts(scheduler).run(RunContext(contacts=contacts))
    assert ctx.meta["contacts_found"] == 3
    assert ctx.meta["run_report"].calls_made == 2


def test_pipeline_logs_failing_step_and_reraises(caplog):
    with caplog.at_level("ERROR", logger="pipelines.runner"):
        with pytest.raises(SourceUnavailable):
            Pipeline([FetchSource(_Source()), ImportContacts()], name="load").run(RunContext())
    record = caplog.records[-1]
    assert record.step == "FetchSource"
    assert record.error == "SourceUnavailable"
    assert "load: FetchSource failed" in record.getMessage()
