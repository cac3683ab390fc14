"""
Marketplace client contract.

The marketplace itself (transaction signing, registries, the secret
management service) is an external collaborator. This module fixes the narrow
surface the pipeline consumes; concrete clients are plugged in through
bindings (see registry.py).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

from ..config import ChainConfig
from ..models import Identity


@runtime_checkable
class MarketplaceSession(Protocol):
    """A marketplace client bound to one identity and one set of endpoints."""

    def deploy_app(self, app: dict[str, Any]) -> dict[str, str]:
        """Register an app. Returns {"address": ..., "txHash": ...}."""
        ...

    def deploy_dataset(self, dataset: dict[str, Any]) -> dict[str, str]:
        """Register a dataset. Returns {"address": ..., "txHash": ...}."""
        ...

    def push_app_secret(self, app_address: str, secret: str) -> bool:
        """True if pushed, False if a secret already exists. Raises on any other failure."""
        ...

    def push_dataset_secret(self, dataset_address: str, encryption_key: str) -> bool:
        """True if pushed, False if a secret already exists. Raises on any other failure."""
        ...

    def resolve_sms_url(self) -> str:
        """Secret management endpoint this session talks to."""
        ...


# Opens a session for one unit's identity.
MarketplaceFactory = Callable[[Identity, ChainConfig], MarketplaceSession]

# Builds a factory for a run; receives the directory the ledger is written to.
MarketplaceBinding = Callable[[Path], MarketplaceFactory]
