from __future__ import annotations

import json
import logging
from typing import Callable, List, Optional

from config.session import RATE_LIMIT_HISTORY_KEY
from ports.store import KeyValueStorePort


logger = logging.getLogger(__name__)


class RateLimitMonitor:
    """Watches rate-limit stops and flags a likely exhausted daily quota.

    Timestamps accumulate across runs and are cleared only when a batch
    succeeds. With a `store` they are persisted under `key`, so the history
    outlives a single CLI invocation. When the two most recent stops are more
    than `window_seconds` apart, per-minute pacing is evidently not the cause,
    so the advisory is raised. It fires once per monitor until dismissed and
    never changes scheduling.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        on_quota_exhausted: Optional[Callable[[], None]] = None,
        store: Optional[KeyValueStorePort] = None,
        key: str = RATE_LIMIT_HISTORY_KEY,
    ) -> None:
        self.window_seconds = window_seconds
        self.on_quota_exhausted = on_quota_exhausted
        self.store = store
        self.key = key
        self.timestamps: List[float] = self._load()
        self.quota_exhausted = False

    def _load(self) -> List[float]:
        if self.store is None:
            return []
        raw = self.store.get(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            return [float(ts) for ts in data]
        except (ValueError, TypeError):
            logger.warning("Stored rate-limit history is unreadable; starting empty")
            return []

    def _save(self) -> None:
        if self.store is None:
            return
        if self.timestamps:
            self.store.set(self.key, json.dumps(self.timestamps))
        else:
            self.store.remove(self.key)

    def record_rate_limit(self, at: float) -> bool:
        """Append a stop timestamp; returns True only when the advisory is newly raised."""
        self.timestamps.append(at)
        self._save()
        if len(self.timestamps) < 2 or self.quota_exhausted:
            return False
        previous, latest = self.timestamps[-2], self.timestamps[-1]
        if latest - previous <= self.window_seconds:
            return False
        self.quota_exhausted = True
        logger.warning(
            "Rate limit errors recurred more than a minute apart; the daily API quota is likely exhausted",
            extra={"status": "quota_exhausted"},
        )
        if self.on_quota_exhausted:
            self.on_quota_exhausted()
        return True

    def record_success(self) -> None:
        if self.timestamps:
            self.timestamps.clear()
            self._save()

    def reset(self) -> None:
        self.timestamps.clear()
        self.quota_exhausted = False
        self._save()

    def dismiss(self) -> None:
        self.quota_exhausted = False
