from __future__ import annotations

import os
from typing import Dict, Optional, Sequence

from config.settings import get_settings
from models import ContactRecord, EnrichmentStatus
from services.scheduler import RunReport
from utils.llm_logger import iter_calls


def _llm_usage_for_run(run_id: str) -> Dict[str, Dict[str, int]]:
    """Aggregate provider calls from the LLM trace for the given run_id.

    Returns dict like { 'gemini': {'calls': N, 'errors': E, 'tokens': T}, ... }
    """
    result: Dict[str, Dict[str, int]] = {}
    for rec in iter_calls(run_id):
        provider = rec.get("provider") or "unknown"
        bucket = result.setdefault(provider, {"calls": 0, "errors": 0, "tokens": 0})
        bucket["calls"] += 1
        if rec.get("status") != "ok":
            bucket["errors"] += 1
        usage = rec.get("usage") or {}
        bucket["tokens"] += int(usage.get("total_tokens") or 0)
    return result


def status_counts(contacts: Sequence[ContactRecord]) -> Dict[str, int]:
    counts = {status.value: 0 for status in EnrichmentStatus}
    for contact in contacts:
        counts[contact.status.value] += 1
    return counts


def print_summary(report: RunReport, contacts: Sequence[ContactRecord], provider: Optional[str] = None) -> None:
    """Print summary of an enrichment run."""
    print("\n" + "=" * 60)
    print("CONTACT CITY ENRICHMENT - SUMMARY")
    print("=" * 60)
    if provider:
        print(f"Provider: {provider}")
    print(f"Outcome: {report.outcome.value}")
    print(f"Records Selected: {report.selected}")
    print(f"Lookup Calls: {report.calls_made}/{report.batches_total}")
    print()
    print("This Run:")
    print(f"  Found: {report.found}")
    print(f"  Not Found: {report.not_found}")
    print(f"  Errors: {report.errors}")
    print(f"  Not Processed: {report.not_processed}")
    print()
    print("Working Set:")
    for status, count in status_counts(contacts).items():
        print(f"  {status}: {count}")
    if report.pause_message:
        print()
        print(f"Processing Paused: {report.pause_message}")
    if report.quota_exhausted:
        print(
            "Daily API Limit Likely Reached: rate limit errors recurred more than a minute apart. "
            "Try again tomorrow or check your provider account."
        )
    run_id = os.getenv("RUN_ID")
    if run_id and get_settings().llm_trace:
        usage = _llm_usage_for_run(run_id)
        if usage:
            print("LLM Usage:")
            for name, stats in usage.items():
                print(f"  {name}: calls={stats.get('calls', 0)}, errors={stats.get('errors', 0)}, tokens={stats.get('tokens', 0)}")
    print("=" * 60)
