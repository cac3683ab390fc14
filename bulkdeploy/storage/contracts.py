from __future__ import annotations

from typing import Protocol


class StorageClient(Protocol):
    """Content-addressed store the dataset ciphertext is published to."""

    def add(self, data: bytes) -> str:
        """Store bytes and return their content id. Raises StorageError."""
        ...

    def public_url(self, cid: str) -> str:
        """URL a worker (or the publisher's read-back) fetches the content from."""
        ...

    def multiaddr(self, cid: str) -> str:
        """Locator registered with the dataset."""
        ...


class GatewayFetcher(Protocol):
    """Plain read-back of a published URL, independent of the store's own API."""

    def fetch(self, url: str) -> bytes:
        """Return the body of a successful response. Raises StorageError otherwise."""
        ...
