"""
Batch ledger file.

The ledger is one indented JSON array, one object per requested unit in
request order. It is written once per batch, after every unit has been
attempted, and holds the only copy of each unit's key material.
"""

from __future__ import annotations

import json
from pathlib import Path

from .models import BatchReport, UnitRecord, record_from_dict


def write_ledger(path: Path, report: BatchReport) -> Path:
    """Persist the report. Written to a temp file then renamed into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")
    temp_path.write_text(json.dumps(report.to_list(), indent=2) + "\n", encoding="utf-8")
    temp_path.replace(path)
    return path


def read_ledger(path: Path) -> list[UnitRecord]:
    """
    Load a ledger written by write_ledger.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the file is not a ledger array
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} is not a ledger (expected a JSON array)")
    records: list[UnitRecord] = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict) or "app_id" not in entry:
            raise ValueError(f"{path}: entry {i} is not a unit record")
        records.append(record_from_dict(entry))
    return records
