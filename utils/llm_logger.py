from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from config.settings import get_settings


def _trace_path() -> Path:
    return Path(get_settings().llm_log_path)


def sha256_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def log_call(
    *,
    caller: str,
    provider: str,
    model: Optional[str],
    operation: str,
    prompt_name: Optional[str] = None,
    prompt_hash: Optional[str] = None,
    duration_ms: Optional[int] = None,
    status: str = "ok",
    error: Optional[str] = None,
    usage: Optional[Dict[str, Any]] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Append one JSON line per lookup provider call when LLM_TRACE is on.

    `status` is "ok" or the ErrorKind value when every record in the batch
    was classified as a failure. Lines carry RUN_ID so reporting can total a
    single CLI run. Extras (batch ids, batch size) go under their own key.
    """
    if not get_settings().llm_trace:
        return

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "caller": caller,
        "provider": provider,
        "model": model,
        "operation": operation,
        "prompt_name": prompt_name,
        "prompt_hash": prompt_hash,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
        "usage": usage or {},
    }
    run_id = os.getenv("RUN_ID")
    if run_id:
        payload["run_id"] = run_id
    if extras:
        payload["extras"] = extras

    path = _trace_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except OSError:
        # Never break a run on trace failures
        return


def iter_calls(run_id: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Yield traced calls, optionally only those of one run; unreadable lines are skipped."""
    path = _trace_path()
    if not path.exists():
        return
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except ValueError:
                continue
            if not isinstance(rec, dict):
                continue
            if run_id is not None and rec.get("run_id") != run_id:
                continue
            yield rec
