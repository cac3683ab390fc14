"""
Dataset content publication.

encrypt -> checksum -> publish -> read-back verification -> fallback

Publication never fails a unit: when the store or the gateway misbehaves the
artifact points at a fixed placeholder and is marked unverified, while the
real key, checksum and ciphertext are kept so publication can be retried
later.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from .crypto import compute_checksum, encrypt, generate_encryption_key
from .errors import PublicationDegraded, VerificationMismatch
from .models import ContentArtifact
from .retry import RetryPolicy, call_with_retry
from .storage.contracts import GatewayFetcher, StorageClient

logger = logging.getLogger(__name__)


class ContentPublisher:
    """Encrypts content and publishes the ciphertext to a content-addressed store."""

    def __init__(
        self,
        storage: StorageClient,
        *,
        placeholder_cid: str,
        placeholder_gateway_url: str,
        fetcher: GatewayFetcher | None = None,
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.storage = storage
        self.fetcher = fetcher if fetcher is not None else storage
        self.placeholder_cid = placeholder_cid
        self.placeholder_gateway_url = placeholder_gateway_url.rstrip("/")
        self.retry = retry or RetryPolicy()
        self._sleep = sleep

    @property
    def placeholder_locator(self) -> str:
        return f"/ipfs/{self.placeholder_cid}"

    @property
    def placeholder_url(self) -> str:
        return f"{self.placeholder_gateway_url}{self.placeholder_locator}"

    def publish(self, content: bytes, name: str) -> ContentArtifact:
        key = generate_encryption_key()
        ciphertext = encrypt(content, key)
        checksum = compute_checksum(ciphertext)

        try:
            cid, locator, url = self._publish_verified(ciphertext)
        except Exception as e:
            # Third-party storage clients may raise anything; all of it degrades.
            if not isinstance(e, PublicationDegraded):
                e = PublicationDegraded(f"{type(e).__name__}: {e}")
            logger.warning("Publication of %s degraded, using placeholder: %s", name, e)
            return ContentArtifact(
                name=name,
                plaintext=content,
                encryption_key=key,
                ciphertext=ciphertext,
                checksum=checksum,
                cid=self.placeholder_cid,
                locator=self.placeholder_locator,
                public_url=self.placeholder_url,
                verified=False,
                publish_error=str(e) or type(e).__name__,
            )

        return ContentArtifact(
            name=name,
            plaintext=content,
            encryption_key=key,
            ciphertext=ciphertext,
            checksum=checksum,
            cid=cid,
            locator=locator,
            public_url=url,
            verified=True,
        )

    def _publish_verified(self, ciphertext: bytes) -> tuple[str, str, str]:
        """Publish and read back. Returns (cid, locator, public url)."""
        cid = call_with_retry(
            lambda: self.storage.add(ciphertext),
            self.retry,
            what="Storage add",
            sleep=self._sleep,
        )
        url = self.storage.public_url(cid)
        fetched = call_with_retry(
            lambda: self.fetcher.fetch(url),
            self.retry,
            what="Gateway read-back",
            sleep=self._sleep,
        )
        if fetched != ciphertext:
            raise VerificationMismatch(
                f"Fetched content does not match published ciphertext "
                f"({len(fetched)} bytes fetched, {len(ciphertext)} published)"
            )
        return cid, self.storage.multiaddr(cid), url
