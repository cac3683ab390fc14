"""Run command implementation - provision a batch of units."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..batch import BatchRunner
from ..config import DeployConfig, load_config
from ..errors import BulkDeployError
from ..events import EventBus, EventLog
from ..marketplace import resolve_marketplace
from ..orchestrator import UnitOrchestrator
from ..publisher import ContentPublisher
from ..reporting import ConsoleReporter
from ..storage import IpfsHttpConfig, IpfsHttpStorage, LocalContentStore, StorageClient

logger = logging.getLogger(__name__)


def parse_count(value: str | None, default: int) -> int:
    """Unit count from the command line; absent, non-numeric or negative -> default."""
    if value is None:
        return default
    try:
        n = int(str(value).strip())
    except ValueError:
        return default
    return n if n >= 0 else default


def build_storage(cfg: DeployConfig, local_storage: Path | None) -> StorageClient:
    if local_storage is not None:
        return LocalContentStore(local_storage)
    return IpfsHttpStorage(
        IpfsHttpConfig(
            api_url=cfg.chain.storage_api_url,
            gateway_url=cfg.chain.ipfs_gateway_url,
            timeout_s=cfg.storage.timeout_s,
        )
    )


def run_batch(
    *,
    count: str | None,
    config_path: Path | None = None,
    output: Path | None = None,
    pacing_s: float | None = None,
    marketplace: str = "local",
    local_storage: Path | None = None,
    console: Console | None = None,
) -> int:
    """Provision `count` units and write the ledger.

    Returns:
        Exit code (0 = batch ran to the end, whatever the unit outcomes;
        1 = the batch could not start or was interrupted by an error
        outside unit execution)
    """
    console = console or Console(stderr=True)

    try:
        cfg = load_config(config_path).with_overrides(
            output_file=str(output) if output is not None else None,
            pacing_s=pacing_s,
        )
        n = parse_count(count, cfg.default_count)
        output_path = Path(cfg.output_file).resolve()

        binding = resolve_marketplace(marketplace)
        factory = binding(output_path.parent)
        publisher = ContentPublisher(
            build_storage(cfg, local_storage),
            placeholder_cid=cfg.storage.placeholder_cid,
            placeholder_gateway_url=cfg.chain.ipfs_gateway_url,
            retry=cfg.storage.retry,
        )
        events = EventBus([ConsoleReporter(console), EventLog.beside(output_path)])
        orchestrator = UnitOrchestrator(cfg, factory, publisher, events=events)
        runner = BatchRunner(orchestrator, output_path=output_path, pacing_s=cfg.pacing_s, events=events)
        runner.run(n)
    except BulkDeployError as e:
        console.print(f"Error: {escape(str(e))}", style="bold red")
        return 1
    except Exception as e:
        logger.exception("Batch aborted by an unhandled error")
        console.print(f"Fatal: {escape(str(e))}", style="bold red")
        return 1

    return 0
