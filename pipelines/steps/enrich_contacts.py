from __future__ import annotations

from pipelines.runner import RunContext
from services.scheduler import BatchScheduler


class EnrichContacts:
    def __init__(self, scheduler: BatchScheduler) -> None:
        self.scheduler = scheduler

    def run(self, ctx: RunContext) -> RunContext:
        report = self.scheduler.run(ctx.contacts)
        ctx.meta["run_report"] = report
        ctx.meta["contacts_found"] = report.found
        return ctx
