from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from config.session import CACHE_KEY, CREDENTIAL_KEY, RATE_LIMIT_HISTORY_KEY, SOURCE_LOCATOR_KEY, SessionConfig
from config.settings import Settings, get_settings
from models import ContactRecord, EnrichmentStatus, ErrorKind
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import EnrichContacts, FetchSource, ImportContacts, MergeCachedEnrichment
from ports.lookup import LookupGatewayPort
from ports.source import SourcePort
from ports.store import KeyValueStorePort
from services.csv_export import format_contacts
from services.enrichment_cache import EnrichmentCache
from services.errors import ConfigurationError, RecordInProgress, UnknownRecord
from services.providers import provider_for_role
from services.rate_limit_monitor import RateLimitMonitor
from services.scheduler import BatchScheduler, RunReport


logger = logging.getLogger(__name__)


class ContactWorkspace:
    """Owns the working contact set for one session.

    Loads contacts from the source and overlays cached enrichment, runs bulk or
    single-record lookups through the scheduler, applies manual edits and
    exports. Not safe for concurrent use; edits during a run are refused for
    records that are in flight.
    """

    def __init__(
        self,
        store: KeyValueStorePort,
        session: SessionConfig,
        source: Optional[SourcePort] = None,
        *,
        settings: Optional[Settings] = None,
        gateway_resolver: Optional[Callable[[str], LookupGatewayPort]] = None,
        monitor: Optional[RateLimitMonitor] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.session = session
        self.source = source
        self.settings = settings or get_settings()
        self.cache = EnrichmentCache(store, CACHE_KEY)
        self.monitor = monitor or RateLimitMonitor(session.quota_window_seconds, store=store)
        self.gateway_resolver = gateway_resolver or (lambda role: provider_for_role(role, self.session, self.settings))
        self.sleep = sleep
        self.clock = clock
        self.contacts: List[ContactRecord] = []

    # Settings

    def configure(self, api_key: str, locator: str) -> None:
        api_key, locator = (api_key or "").strip(), (locator or "").strip()
        if not api_key or not locator:
            raise ConfigurationError("Both an API key and a source locator are required")
        self.store.set(CREDENTIAL_KEY, api_key)
        self.store.set(SOURCE_LOCATOR_KEY, locator)
        self.session.credential = api_key
        self.session.source_locator = locator

    def reset_settings(self) -> None:
        for key in (CREDENTIAL_KEY, SOURCE_LOCATOR_KEY, CACHE_KEY, RATE_LIMIT_HISTORY_KEY):
            self.store.remove(key)
        self.monitor.reset()
        self.session.credential = None
        self.session.source_locator = None
        self.contacts = []
        logger.info("Settings reset", extra={"step": "reset"})

    # Loading

    def load(self) -> List[ContactRecord]:
        if self.source is None:
            raise ConfigurationError("No source configured for this workspace")
        ctx = RunContext(locator=self.session.source_locator)
        pipeline = Pipeline([
            FetchSource(self.source),
            ImportContacts(),
            MergeCachedEnrichment(self.cache),
        ])
        ctx = pipeline.run(ctx)
        self.contacts = list(ctx.contacts)
        return self.contacts

    @property
    def pending_count(self) -> int:
        return sum(1 for c in self.contacts if c.is_eligible)

    def get(self, record_id: int) -> ContactRecord:
        for contact in self.contacts:
            if contact.id == record_id:
                return contact
        raise UnknownRecord(f"No record with id {record_id}")

    # Lookups

    def _scheduler(self, role: str, on_progress=None) -> BatchScheduler:
        return BatchScheduler(
            self.gateway_resolver(role),
            self.cache,
            self.session,
            self.monitor,
            sleep=self.sleep,
            clock=self.clock,
            on_progress=on_progress,
        )

    def find_all(self, role: str = "primary", on_progress=None) -> RunReport:
        scheduler = self._scheduler(role, on_progress)
        ctx = Pipeline([EnrichContacts(scheduler)]).run(RunContext(contacts=self.contacts))
        report = ctx.meta["run_report"]
        self._after_run(report, scheduler.gateway)
        return report

    def find_one(self, record_id: int, role: str = "primary") -> RunReport:
        scheduler = self._scheduler(role)
        report = scheduler.run_single(self.contacts, record_id)
        self._after_run(report, scheduler.gateway)
        return report

    def _after_run(self, report: RunReport, gateway: LookupGatewayPort) -> None:
        if report.stop_kind != ErrorKind.INVALID_CREDENTIAL:
            return
        if gateway.name == self.session.primary_provider:
            # User must re-enter the key
            self.store.remove(CREDENTIAL_KEY)
        logger.warning(
            "Stored credential cleared after invalid key response",
            extra={"provider": gateway.name, "error": ErrorKind.INVALID_CREDENTIAL.value},
        )

    # Edits and export

    def set_city(self, record_id: int, city: str) -> ContactRecord:
        contact = self.get(record_id)
        if contact.status == EnrichmentStatus.IN_PROGRESS:
            raise RecordInProgress(f"Record {record_id} is being looked up")
        city = (city or "").strip()
        contact.city = city
        contact.status = EnrichmentStatus.FOUND if city else EnrichmentStatus.IDLE
        self.cache.refresh(self.contacts)
        return contact

    def export_csv(self) -> str:
        return format_contacts(self.contacts)

    def dismiss_quota_warning(self) -> None:
        self.monitor.dismiss()
