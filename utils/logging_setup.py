from __future__ import annotations

import logging
import os
import sys
from typing import Any, Optional, TextIO

from config.settings import get_settings


_INITIALIZED: bool = False

# SDK transports log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "google_genai", "urllib3")


class SafeExtraFormatter(logging.Formatter):
    """Formatter that fills lookup fields (step, batch, provider...) a record did not set."""

    DEFAULTS: dict[str, Any] = {
        "step": "-",
        "status": "-",
        "batch": "-",
        "duration_ms": "-",
        "provider": "-",
        "error": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


class RunIdFilter(logging.Filter):
    """Stamp each record with RUN_ID so log lines join up with the provider call trace."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = os.getenv("RUN_ID") or "-"
        return True


def init_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        # stderr keeps exported CSV on stdout clean
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(log_level)
        handler.addFilter(RunIdFilter())
        handler.setFormatter(
            SafeExtraFormatter(
                fmt=(
                    "%(asctime)s %(levelname)s %(name)s %(message)s "
                    "step=%(step)s status=%(status)s batch=%(batch)s duration_ms=%(duration_ms)s "
                    "provider=%(provider)s error=%(error)s run_id=%(run_id)s"
                )
            )
        )
        root_logger.addHandler(handler)

    if log_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _INITIALIZED = True
