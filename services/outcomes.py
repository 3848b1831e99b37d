from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from models import Classified, ContactRecord, EnrichmentStatus, ErrorKind, Found, NotFound, Outcome
from ports.lookup import NOT_FOUND_TOKEN, is_not_found_token


RATE_LIMITED_MARKER = "Rate Limited"
NOT_PROCESSED_MARKER = "Not Processed"


@dataclass
class BatchVerdict:
    """Summary of one applied batch."""

    found: int = 0
    not_found: int = 0
    errors: int = 0
    fatal: Optional[Classified] = None
    messages: list = field(default_factory=list)

    @property
    def had_success(self) -> bool:
        return (self.found + self.not_found) > 0


def _apply_one(record: ContactRecord, outcome: Outcome, verdict: BatchVerdict) -> None:
    if isinstance(outcome, Found):
        city = outcome.city.strip()
        if not city or is_not_found_token(city):
            record.city = NOT_FOUND_TOKEN
            record.status = EnrichmentStatus.NOT_FOUND
            verdict.not_found += 1
            return
        record.city = city
        if outcome.job_title.strip():
            record.job_title = outcome.job_title.strip()
        record.status = EnrichmentStatus.FOUND
        verdict.found += 1
        return

    if isinstance(outcome, NotFound):
        record.city = NOT_FOUND_TOKEN
        record.status = EnrichmentStatus.NOT_FOUND
        verdict.not_found += 1
        return

    verdict.errors += 1
    if outcome.message:
        verdict.messages.append(outcome.message)
    if outcome.kind == ErrorKind.RATE_LIMITED:
        record.city = RATE_LIMITED_MARKER
    elif outcome.kind == ErrorKind.INVALID_CREDENTIAL:
        record.city = NOT_PROCESSED_MARKER
    else:
        record.city = record.city or f"Error: {outcome.message or 'Lookup failed'}"
    record.status = EnrichmentStatus.ERROR
    if outcome.is_fatal and verdict.fatal is None:
        verdict.fatal = outcome


def apply_outcomes(records_by_id: Mapping[int, ContactRecord], outcomes: Mapping[int, Outcome]) -> BatchVerdict:
    """Apply a gateway outcome map onto the working set in place.

    Shared by bulk runs and single-record lookups. Outcomes for ids that are not
    in the working set are ignored.
    """
    verdict = BatchVerdict()
    for record_id, outcome in outcomes.items():
        record = records_by_id.get(record_id)
        if record is None:
            continue
        _apply_one(record, outcome, verdict)
    return verdict


def mark_not_processed(records: Iterable[ContactRecord]) -> int:
    """Flag records a fatal stop left in flight so they read as not processed."""
    count = 0
    for record in records:
        if record.status != EnrichmentStatus.IN_PROGRESS:
            continue
        record.status = EnrichmentStatus.ERROR
        record.city = NOT_PROCESSED_MARKER
        count += 1
    return count
