from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from models import ContactRecord
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """State handed from step to step: source locator, raw sheet text, the working set."""

    locator: Optional[str] = None
    raw_text: Optional[str] = None
    contacts: List[ContactRecord] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step], name: str = "contacts"):
        self.steps = steps
        self.name = name

    def run(self, ctx: RunContext) -> RunContext:
        init_logging()
        for step in self.steps:
            step_name = type(step).__name__
            t0 = time.time()
            try:
                ctx = step.run(ctx)
            except Exception as e:
                logger.error(
                    f"{self.name}: {step_name} failed: {e}",
                    extra={"step": step_name, "status": "failed", "error": type(e).__name__},
                )
                raise
            logger.debug(
                f"{self.name}: {step_name} done ({len(ctx.contacts)} contacts)",
                extra={"step": step_name, "status": "ok", "duration_ms": int((time.time() - t0) * 1000)},
            )
        return ctx
