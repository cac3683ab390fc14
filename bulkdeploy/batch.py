"""
Batch driver.

Runs units 1..N one after another, pacing between them, and persists the
report once every unit has been attempted. A unit's failure never stops the
batch; only an error outside unit execution does, and then nothing is
written.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .events import BATCH_FINISHED, BATCH_PACED, BATCH_STARTED, EventBus
from .ledger import write_ledger
from .models import BatchReport
from .orchestrator import UnitOrchestrator


class BatchRunner:
    def __init__(
        self,
        orchestrator: UnitOrchestrator,
        *,
        output_path: Path,
        pacing_s: float = 2.0,
        events: EventBus | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.orchestrator = orchestrator
        self.output_path = output_path
        self.pacing_s = pacing_s
        self.events = events or orchestrator.events
        self._sleep = sleep
        self._monotonic = monotonic

    def run(self, n: int) -> BatchReport:
        n = max(0, int(n))
        report = BatchReport(requested=n, started_at=datetime.now(timezone.utc).isoformat())
        self.events.publish(
            BATCH_STARTED,
            payload={"requested": n, "output": str(self.output_path), "chain_id": self.orchestrator.config.chain.chain_id},
        )

        start = self._monotonic()
        for unit_id in range(1, n + 1):
            outcome = self.orchestrator.run(unit_id)
            report.records.append(outcome.record)

            if unit_id < n and self.pacing_s > 0:
                self.events.publish(BATCH_PACED, unit_id=unit_id, payload={"seconds": self.pacing_s})
                self._sleep(self.pacing_s)

        report.duration_s = round(self._monotonic() - start, 2)
        write_ledger(self.output_path, report)

        self.events.publish(
            BATCH_FINISHED,
            payload={
                "requested": n,
                "succeeded": report.succeeded,
                "failed": report.failed,
                "duration_s": report.duration_s,
                "output": str(self.output_path),
            },
        )
        return report
