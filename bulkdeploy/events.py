"""
Structured progress events.

The orchestrator and batch runner report progress only through events; how
they are presented (console narration, a JSON Lines log, a test collector) is
up to the sinks. Events never carry key material: payloads hold addresses,
names, locators and error messages only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Protocol

from .models import Stage

# Event type constants
BATCH_STARTED = "batch.started"
BATCH_PACED = "batch.paced"
BATCH_FINISHED = "batch.finished"
UNIT_STARTED = "unit.started"
UNIT_FINISHED = "unit.finished"
STAGE_LOGGED = "stage.logged"
DIAGNOSTIC = "diagnostic"

EVENT_TYPES = frozenset({
    BATCH_STARTED,
    BATCH_PACED,
    BATCH_FINISHED,
    UNIT_STARTED,
    UNIT_FINISHED,
    STAGE_LOGGED,
    DIAGNOSTIC,
})

StageStatus = Literal["started", "completed", "degraded", "failed"]

MAX_ERROR_CHARS = 500


@dataclass(frozen=True)
class Event:
    """One progress event. Stage and status are set for stage.logged events."""

    event_type: str
    timestamp: datetime
    unit_id: int | None = None
    stage: Stage | None = None
    status: StageStatus | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {self.event_type}")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.unit_id is not None:
            result["unit_id"] = self.unit_id
        if self.stage is not None:
            result["stage"] = self.stage.value
        if self.status is not None:
            result["status"] = self.status
        if self.payload:
            result["payload"] = self.payload
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        stage = data.get("stage")
        return cls(
            event_type=data["event_type"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            unit_id=data.get("unit_id"),
            stage=Stage(stage) if stage else None,
            status=data.get("status"),
            payload=dict(data.get("payload", {})),
        )


def create_event(
    event_type: str,
    *,
    unit_id: int | None = None,
    stage: Stage | None = None,
    status: StageStatus | None = None,
    payload: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> Event:
    """Create an event, truncating error text to keep logs bounded."""
    payload = dict(payload or {})
    error = payload.get("error")
    if isinstance(error, str) and len(error) > MAX_ERROR_CHARS:
        payload["error"] = error[:MAX_ERROR_CHARS]
    return Event(
        event_type=event_type,
        timestamp=timestamp or datetime.now(timezone.utc),
        unit_id=unit_id,
        stage=stage,
        status=status,
        payload=payload,
    )


class EventSink(Protocol):
    def emit(self, event: Event) -> None:
        ...


class MemorySink:
    """Collects events in memory."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def stages(self, unit_id: int, status: str | None = None) -> list[Stage]:
        """Stages logged for a unit, in order, optionally filtered by status."""
        return [
            e.stage
            for e in self.events
            if e.event_type == STAGE_LOGGED
            and e.unit_id == unit_id
            and e.stage is not None
            and (status is None or e.status == status)
        ]


class EventLog:
    """
    Append-only JSON Lines event log.

    One event per line; lines are never rewritten. Lives beside the ledger
    as <ledger>.events.jsonl.
    """

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def beside(cls, ledger_path: Path) -> EventLog:
        return cls(ledger_path.with_name(ledger_path.name + ".events.jsonl"))

    def emit(self, event: Event) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_dict(), separators=(",", ":")) + "\n")

    def read_all(self) -> list[Event]:
        if not self.path.exists():
            return []
        events = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    try:
                        events.append(Event.from_dict(json.loads(line)))
                    except (json.JSONDecodeError, KeyError, ValueError):
                        continue  # Skip malformed lines
        return events


class EventBus:
    """Fans events out to every registered sink."""

    def __init__(self, sinks: list[EventSink] | None = None):
        self.sinks: list[EventSink] = list(sinks or [])

    def add(self, sink: EventSink) -> None:
        self.sinks.append(sink)

    def emit(self, event: Event) -> None:
        for sink in self.sinks:
            sink.emit(event)

    def publish(self, event_type: str, **kwargs: Any) -> Event:
        event = create_event(event_type, **kwargs)
        self.emit(event)
        return event
