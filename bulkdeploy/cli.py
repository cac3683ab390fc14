"""CLI entrypoint for bulkdeploy."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="bulkdeploy")
@click.option("--verbose", is_flag=True, help="Log HTTP requests and retries (DEBUG)")
def cli(verbose: bool) -> None:
    """bulkdeploy - Provision app/dataset pairs on the marketplace, one wallet per unit.

    Every run writes a JSON ledger holding each unit's addresses and wallet
    keys. Keep it private.
    """
    _configure_logging(verbose)


@cli.command()
@click.argument("count", required=False)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file (defaults to built-in staging settings)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Ledger file to write [default: deployed_apps.json]",
)
@click.option("--pacing", type=float, default=None, help="Seconds to wait between units [default: 2.0]")
@click.option(
    "--marketplace",
    type=str,
    default="local",
    show_default=True,
    help='Marketplace binding: a registered name or "module:attr"',
)
@click.option(
    "--local-storage",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Publish ciphertext to a local content-addressed directory instead of IPFS",
)
def run(
    count: str | None,
    config_path: Path | None,
    output: Path | None,
    pacing: float | None,
    marketplace: str,
    local_storage: Path | None,
) -> None:
    """Provision COUNT units (default 10).

    Each unit gets a fresh wallet, an app with its secret, and an encrypted
    dataset with its key. Failed units are recorded and the batch moves on.

    Examples:

        bulkdeploy run 3 --local-storage ./cas

        bulkdeploy run 50 --config staging.yml --marketplace mypkg.iexec:binding
    """
    from .commands.run_cmd import run_batch

    exit_code = run_batch(
        count=count,
        config_path=config_path,
        output=output,
        pacing_s=pacing,
        marketplace=marketplace,
        local_storage=local_storage,
    )
    sys.exit(exit_code)


@cli.group()
def ledger() -> None:
    """Inspect batch ledgers."""
    pass


@ledger.command("show")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
def ledger_show(path: Path) -> None:
    """Summarize a ledger's units (wallet keys are never printed)."""
    from .commands.ledger_cmd import run_ledger_show

    sys.exit(run_ledger_show(path))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
