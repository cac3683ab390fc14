"""Console presentation of batch progress and ledgers."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from .events import (
    BATCH_FINISHED,
    BATCH_PACED,
    BATCH_STARTED,
    DIAGNOSTIC,
    STAGE_LOGGED,
    UNIT_FINISHED,
    UNIT_STARTED,
    Event,
)
from .models import DeploymentRecord, FailureRecord, Stage, UnitRecord

STAGE_LABELS: dict[Stage, str] = {
    Stage.IDENTITY_CREATED: "1. wallet",
    Stage.APP_REGISTERED: "2. app",
    Stage.APP_SECRET_PUSHED: "3. app secret",
    Stage.CONTENT_PUBLISHED: "4. dataset content",
    Stage.DATASET_REGISTERED: "5. dataset",
    Stage.DATASET_SECRET_PUSHED: "6. dataset secret",
}

STATUS_STYLES = {
    "completed": "green",
    "degraded": "yellow",
    "failed": "bold red",
}


class ConsoleReporter:
    """Event sink narrating a batch on the console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(stderr=True)
        self._requested = 0

    def emit(self, event: Event) -> None:
        handler = {
            BATCH_STARTED: self._batch_started,
            UNIT_STARTED: self._unit_started,
            STAGE_LOGGED: self._stage_logged,
            DIAGNOSTIC: self._diagnostic,
            UNIT_FINISHED: self._unit_finished,
            BATCH_PACED: self._paced,
            BATCH_FINISHED: self._batch_finished,
        }.get(event.event_type)
        if handler is not None:
            handler(event)

    def _batch_started(self, event: Event) -> None:
        self._requested = int(event.payload.get("requested", 0))
        self.console.print(Rule("bulk deployment"))
        self.console.print(f"units: {self._requested}", style="dim")
        self.console.print(f"chain: {event.payload.get('chain_id')}", style="dim")
        self.console.print(f"ledger: {event.payload.get('output')}", style="dim")

    def _unit_started(self, event: Event) -> None:
        self.console.print(Rule(f"unit {event.unit_id}/{self._requested}", style="cyan"))

    def _stage_logged(self, event: Event) -> None:
        if event.stage is None or event.status == "started":
            return
        label = STAGE_LABELS.get(event.stage, event.stage.value)
        style = STATUS_STYLES.get(event.status or "", "")
        p = event.payload
        if event.status == "failed":
            self.console.print(f"  {label}: failed - {escape(str(p.get('error', '')))}", style=style)
            return
        summary = p.get("address") or p.get("outcome") or p.get("locator") or ""
        self.console.print(f"  {label}: {event.status} {summary}".rstrip(), style=style)
        if event.status == "degraded" and p.get("error"):
            self.console.print(f"     placeholder used: {escape(str(p['error']))}", style="yellow")

    def _diagnostic(self, event: Event) -> None:
        session = event.payload.get("session")
        if isinstance(session, dict):
            for key, value in session.items():
                self.console.print(f"     {key}: {value}", style="dim")
        if "sms_url" in event.payload:
            self.console.print(f"     sms: {event.payload['sms_url']}", style="dim")

    def _unit_finished(self, event: Event) -> None:
        if event.status == "failed":
            self.console.print(
                f"unit {event.unit_id} failed at {event.payload.get('failed_stage')}; continuing",
                style="bold red",
            )
        else:
            self.console.print(f"unit {event.unit_id} complete", style="bold green")

    def _paced(self, event: Event) -> None:
        self.console.print(f"pausing {event.payload.get('seconds')}s before next unit", style="dim")

    def _batch_finished(self, event: Event) -> None:
        p = event.payload
        requested = p.get("requested", 0)
        self.console.print(Rule("report"))
        self.console.print(f"succeeded: {p.get('succeeded')}/{requested}", style="green")
        self.console.print(f"failed: {p.get('failed')}/{requested}", style="red" if p.get("failed") else "dim")
        self.console.print(f"duration: {float(p.get('duration_s', 0.0)):.2f}s")
        self.console.print(f"ledger: {p.get('output')}")


def ledger_table(records: list[UnitRecord], title: str = "ledger") -> Table:
    """Tabulate ledger records. Key material is never shown."""
    table = Table(title=title)
    table.add_column("unit", justify="right")
    table.add_column("status")
    table.add_column("wallet")
    table.add_column("app")
    table.add_column("dataset")
    table.add_column("content")

    for r in records:
        if isinstance(r, FailureRecord):
            table.add_row(str(r.unit_id), "[red]failed[/red]", "", "", "", escape(f"{r.failed_stage}: {r.error}"))
        elif isinstance(r, DeploymentRecord):
            content = "[green]verified[/green]" if r.dataset_verified else "[yellow]placeholder[/yellow]"
            table.add_row(str(r.unit_id), "deployed", r.identity_address, r.app_address, r.dataset_address, content)
    return table
