"""Marketplace client contract, bindings, and the local simulation."""

from __future__ import annotations

from pathlib import Path

from .contracts import MarketplaceBinding, MarketplaceFactory, MarketplaceSession
from .local import LocalMarketplace, LocalSession
from .registry import (
    clear_marketplaces,
    get_marketplace,
    list_marketplaces,
    register_marketplace,
    resolve_marketplace,
)


def local_binding(workdir: Path) -> LocalMarketplace:
    """Built-in "local" binding: state kept beside the ledger."""
    return LocalMarketplace(workdir / ".bulkdeploy" / "marketplace.json")


register_marketplace("local", local_binding)

__all__ = [
    "LocalMarketplace",
    "LocalSession",
    "MarketplaceBinding",
    "MarketplaceFactory",
    "MarketplaceSession",
    "clear_marketplaces",
    "get_marketplace",
    "list_marketplaces",
    "local_binding",
    "register_marketplace",
    "resolve_marketplace",
]
