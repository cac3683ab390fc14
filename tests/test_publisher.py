"""
Tests for dataset content publication.

Publication must never raise: every storage or gateway failure ends in a
placeholder artifact that still carries the real key, checksum and
ciphertext.
"""

from __future__ import annotations

from bulkdeploy.crypto import compute_checksum, decrypt
from bulkdeploy.errors import StorageError
from bulkdeploy.publisher import ContentPublisher
from bulkdeploy.retry import RetryPolicy
from bulkdeploy.storage import LocalContentStore

from conftest import GATEWAY, StaticFetcher, UnreachableStorage


def make_publisher(storage, fetcher=None, sleeps=None) -> ContentPublisher:
    return ContentPublisher(
        storage,
        placeholder_cid="QmPlaceholder",
        placeholder_gateway_url=GATEWAY + "/",
        fetcher=fetcher,
        retry=RetryPolicy(max_attempts=3, base_delay_s=0.01, max_delay_s=0.02, jitter=False),
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
    )


class TestVerifiedPublication:
    def test_publish_verified(self, publisher: ContentPublisher, local_store: LocalContentStore):
        artifact = publisher.publish(b"test1 - now", "bulk-dataset-1-1")

        assert artifact.verified
        assert artifact.publish_error is None
        assert artifact.name == "bulk-dataset-1-1"
        assert artifact.checksum == compute_checksum(artifact.ciphertext)
        assert artifact.cid == LocalContentStore.compute_hash(artifact.ciphertext)
        assert artifact.locator == local_store.multiaddr(artifact.cid)
        assert artifact.public_url == local_store.public_url(artifact.cid)
        assert decrypt(artifact.ciphertext, artifact.encryption_key) == b"test1 - now"

    def test_plaintext_is_never_published(self, publisher: ContentPublisher, local_store: LocalContentStore):
        artifact = publisher.publish(b"secret plaintext", "ds")
        stored = (local_store.root / "content" / artifact.cid[:2] / f"{artifact.cid}.bin").read_bytes()
        assert stored == artifact.ciphertext
        assert b"secret plaintext" not in stored

    def test_separate_fetcher_reads_back(self, local_store: LocalContentStore):
        class ReadThrough:
            def __init__(self):
                self.urls = []

            def fetch(self, url):
                self.urls.append(url)
                return local_store.fetch(url)

        fetcher = ReadThrough()
        artifact = make_publisher(local_store, fetcher=fetcher).publish(b"content", "ds")
        assert artifact.verified
        assert fetcher.urls == [artifact.public_url]


class TestFallback:
    def test_unreachable_storage_uses_placeholder(self):
        storage = UnreachableStorage()
        sleeps: list[float] = []
        artifact = make_publisher(storage, sleeps=sleeps).publish(b"content", "ds")

        assert not artifact.verified
        assert artifact.cid == "QmPlaceholder"
        assert artifact.locator == "/ipfs/QmPlaceholder"
        assert artifact.public_url == f"{GATEWAY}/ipfs/QmPlaceholder"
        assert "Connection refused" in artifact.publish_error
        # retried, then gave up
        assert storage.add_calls == 3
        assert len(sleeps) == 2

    def test_fallback_keeps_real_key_and_checksum(self):
        artifact = make_publisher(UnreachableStorage()).publish(b"content", "ds")
        assert artifact.checksum == compute_checksum(artifact.ciphertext)
        assert decrypt(artifact.ciphertext, artifact.encryption_key) == b"content"

    def test_mismatched_read_back_uses_placeholder(self, local_store: LocalContentStore):
        fetcher = StaticFetcher(body=b"<html>gateway error page</html>")
        artifact = make_publisher(local_store, fetcher=fetcher).publish(b"content", "ds")

        assert not artifact.verified
        assert artifact.cid == "QmPlaceholder"
        assert "does not match" in artifact.publish_error
        assert len(fetcher.urls) == 1

    def test_gateway_not_found_uses_placeholder(self, local_store: LocalContentStore):
        fetcher = StaticFetcher(error=StorageError("Content fetch failed: HTTP 404", retryable=False))
        artifact = make_publisher(local_store, fetcher=fetcher).publish(b"content", "ds")

        assert not artifact.verified
        assert "404" in artifact.publish_error
        assert len(fetcher.urls) == 1

    def test_unexpected_client_errors_degrade(self):
        class BrokenStorage(UnreachableStorage):
            def add(self, data):
                raise RuntimeError("client bug")

        artifact = make_publisher(BrokenStorage()).publish(b"content", "ds")
        assert not artifact.verified
        assert artifact.publish_error == "RuntimeError: client bug"

    def test_locator_failure_degrades(self, local_store: LocalContentStore):
        class NoLocator(LocalContentStore):
            def multiaddr(self, cid):
                raise RuntimeError("no locator")

        artifact = make_publisher(NoLocator(local_store.root)).publish(b"content", "ds")
        assert not artifact.verified
        assert artifact.cid == "QmPlaceholder"
        assert artifact.locator == "/ipfs/QmPlaceholder"
        assert artifact.publish_error == "RuntimeError: no locator"
