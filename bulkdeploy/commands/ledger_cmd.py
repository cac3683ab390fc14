"""Ledger command implementation - inspect a written ledger."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..ledger import read_ledger
from ..models import DeploymentRecord
from ..reporting import ledger_table


def run_ledger_show(path: Path, *, console: Console | None = None) -> int:
    """Print a ledger's units without key material.

    Returns:
        Exit code (0 = shown, 1 = missing or not a ledger)
    """
    console = console or Console()

    try:
        records = read_ledger(path)
    except FileNotFoundError:
        console.print(f"Error: ledger not found: {path}", style="bold red")
        return 1
    except (ValueError, json.JSONDecodeError) as e:
        console.print(f"Error: {escape(str(e))}", style="bold red")
        return 1

    console.print(ledger_table(records, title=str(path)))

    deployed = [r for r in records if isinstance(r, DeploymentRecord)]
    unverified = sum(1 for r in deployed if not r.dataset_verified)
    console.print(
        f"{len(deployed)}/{len(records)} deployed, "
        f"{len(records) - len(deployed)} failed, "
        f"{unverified} with placeholder content"
    )
    return 0
