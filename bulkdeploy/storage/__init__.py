"""Content-addressed storage clients for dataset ciphertext."""

from __future__ import annotations

from .contracts import GatewayFetcher, StorageClient
from .ipfs import IpfsHttpConfig, IpfsHttpStorage
from .local import LocalContentStore

__all__ = [
    "GatewayFetcher",
    "IpfsHttpConfig",
    "IpfsHttpStorage",
    "LocalContentStore",
    "StorageClient",
]
