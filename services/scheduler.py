from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from config.session import SessionConfig
from models import Classified, ContactRecord, EnrichmentStatus, ErrorKind, Outcome
from ports.lookup import LookupGatewayPort
from services.enrichment_cache import EnrichmentCache
from services.errors import UnknownRecord
from services.outcomes import BatchVerdict, apply_outcomes, mark_not_processed
from services.rate_limit_monitor import RateLimitMonitor


logger = logging.getLogger(__name__)


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    STOPPED_FATAL = "stopped_fatal"


@dataclass
class RunReport:
    outcome: RunOutcome = RunOutcome.COMPLETED
    selected: int = 0
    batches_total: int = 0
    calls_made: int = 0
    found: int = 0
    not_found: int = 0
    errors: int = 0
    not_processed: int = 0
    stop_kind: Optional[ErrorKind] = None
    quota_exhausted: bool = False
    messages: List[str] = field(default_factory=list)

    @property
    def pause_message(self) -> Optional[str]:
        if self.stop_kind == ErrorKind.RATE_LIMITED:
            return "API rate limit reached. Paused processing. Please wait a minute and try again."
        if self.stop_kind == ErrorKind.INVALID_CREDENTIAL:
            return "The provided API key is invalid. Please enter a new key."
        return None


def partition(records: Sequence[ContactRecord], size: int) -> List[List[ContactRecord]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(records[i:i + size]) for i in range(0, len(records), size)]


class BatchScheduler:
    """Drives the lookup gateway over the working set in paced, fixed-size batches.

    One gateway call is in flight at a time. After each batch the outcomes are
    applied and the cache refreshed. A fatal classification (invalid credential
    or rate limit) stops the run: nothing further is dispatched and every record
    still waiting is marked not processed. Between batches the run sleeps for a
    fixed pacing interval; that delay is the only thing keeping calls under the
    provider's requests-per-minute ceiling.
    """

    def __init__(
        self,
        gateway: LookupGatewayPort,
        cache: EnrichmentCache,
        session: SessionConfig,
        monitor: Optional[RateLimitMonitor] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        on_progress: Optional[Callable[[int, int, List[ContactRecord]], None]] = None,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.session = session
        self.monitor = monitor or RateLimitMonitor(session.quota_window_seconds)
        self.sleep = sleep
        self.clock = clock
        self.on_progress = on_progress

    def run(self, records: Sequence[ContactRecord]) -> RunReport:
        """Enrich every eligible record in `records` (mutated in place)."""
        eligible = [r for r in records if r.is_eligible and r.status != EnrichmentStatus.IN_PROGRESS]
        return self._run_batches(records, eligible)

    def run_single(self, records: Sequence[ContactRecord], record_id: int) -> RunReport:
        """Look up one record through the same apply path as a bulk run."""
        target = [r for r in records if r.id == record_id]
        if not target:
            raise UnknownRecord(f"No record with id {record_id}")
        return self._run_batches(records, target)

    def _run_batches(self, records: Sequence[ContactRecord], selected: List[ContactRecord]) -> RunReport:
        report = RunReport(selected=len(selected))
        if not selected:
            logger.info("Nothing to enrich", extra={"step": "schedule", "status": "noop"})
            return report

        previous = {r.id: r.status for r in selected}
        # Observable before any network activity
        for record in selected:
            record.status = EnrichmentStatus.IN_PROGRESS

        try:
            return self._run_marked(records, selected, report)
        except Exception:
            # e.g. MissingCredential raised before the first call
            for record in selected:
                if record.status == EnrichmentStatus.IN_PROGRESS:
                    record.status = previous[record.id]
            raise

    def _run_marked(self, records: Sequence[ContactRecord], selected: List[ContactRecord], report: RunReport) -> RunReport:
        batches = partition(selected, self.session.batch_size)
        report.batches_total = len(batches)
        logger.info(
            f"Starting run: {len(selected)} records in {len(batches)} batches via {self.gateway.name}",
            extra={"step": "schedule", "provider": self.gateway.name},
        )

        for index, batch in enumerate(batches):
            verdict = self._dispatch(index, batch, report)
            self.cache.refresh(records)
            if self.on_progress:
                self.on_progress(index + 1, len(batches), batch)

            if verdict.fatal is not None:
                remaining = [r for later in batches[index:] for r in later]
                report.not_processed = mark_not_processed(remaining)
                report.outcome = RunOutcome.STOPPED_FATAL
                report.stop_kind = verdict.fatal.kind
                self.cache.refresh(records)
                logger.warning(
                    f"Run stopped after batch {index + 1}/{len(batches)}; {report.not_processed} records not processed",
                    extra={"step": "schedule", "status": "stopped", "error": verdict.fatal.kind.value, "batch": index + 1},
                )
                return report

            if index + 1 < len(batches):
                self.sleep(self.session.pacing_seconds)

        logger.info(
            f"Run completed: found={report.found} not_found={report.not_found} errors={report.errors}",
            extra={"step": "schedule", "status": "completed", "provider": self.gateway.name},
        )
        return report

    def _dispatch(self, index: int, batch: List[ContactRecord], report: RunReport) -> BatchVerdict:
        t0 = time.time()
        outcomes: Dict[int, Outcome] = dict(self.gateway.lookup(batch))
        report.calls_made += 1
        for record in batch:
            if record.id not in outcomes:
                outcomes[record.id] = Classified(ErrorKind.SERVICE_ERROR, "No result from AI")

        verdict = apply_outcomes({r.id: r for r in batch}, outcomes)
        report.found += verdict.found
        report.not_found += verdict.not_found
        report.errors += verdict.errors
        report.messages.extend(verdict.messages)

        if verdict.fatal is not None:
            self._handle_fatal(verdict.fatal, report)
        elif verdict.had_success:
            self.monitor.record_success()

        logger.info(
            f"Batch {index + 1} applied: found={verdict.found} not_found={verdict.not_found} errors={verdict.errors}",
            extra={
                "step": "apply",
                "status": "fatal" if verdict.fatal else "ok",
                "provider": self.gateway.name,
                "duration_ms": int((time.time() - t0) * 1000),
                "batch": index + 1,
            },
        )
        return verdict

    def _handle_fatal(self, fatal: Classified, report: RunReport) -> None:
        if fatal.kind == ErrorKind.RATE_LIMITED:
            if self.monitor.record_rate_limit(self.clock()):
                report.quota_exhausted = True
        elif fatal.kind == ErrorKind.INVALID_CREDENTIAL:
            self.session.invalidate_credential(self.gateway.name)
