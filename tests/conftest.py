"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from bulkdeploy.config import ChainConfig, DeployConfig, StorageSettings
from bulkdeploy.errors import StorageError
from bulkdeploy.events import EventBus, MemorySink
from bulkdeploy.marketplace import LocalMarketplace, LocalSession
from bulkdeploy.models import Identity
from bulkdeploy.orchestrator import UnitOrchestrator
from bulkdeploy.publisher import ContentPublisher
from bulkdeploy.retry import RetryPolicy
from bulkdeploy.storage import LocalContentStore

GATEWAY = "https://ipfs-gateway.test"


# -----------------------------------------------------------------------------
# Marketplace and storage doubles
# -----------------------------------------------------------------------------


class FaultySession:
    """Wraps a LocalSession, raising a scripted exception from chosen methods."""

    def __init__(self, inner: LocalSession, faults: dict[str, Exception] | None = None):
        self.inner = inner
        self.faults = faults or {}
        self.calls: list[str] = []

    def _call(self, method: str, *args: Any) -> Any:
        self.calls.append(method)
        fault = self.faults.get(method)
        if fault is not None:
            raise fault
        return getattr(self.inner, method)(*args)

    def deploy_app(self, app):
        return self._call("deploy_app", app)

    def deploy_dataset(self, dataset):
        return self._call("deploy_dataset", dataset)

    def push_app_secret(self, app_address, secret):
        return self._call("push_app_secret", app_address, secret)

    def push_dataset_secret(self, dataset_address, encryption_key):
        return self._call("push_dataset_secret", dataset_address, encryption_key)

    def resolve_sms_url(self):
        return self._call("resolve_sms_url")


class ScriptedMarketplace:
    """
    Session factory over a LocalMarketplace.

    `faults` maps the 1-based index of the opened session to the faults of
    that session. Units open exactly one session each, so with no identity
    failures the index equals the unit id.
    """

    def __init__(self, market: LocalMarketplace | None = None, faults: dict[int, dict[str, Exception]] | None = None):
        self.market = market or LocalMarketplace()
        self.faults = faults or {}
        self.sessions: list[FaultySession] = []

    def __call__(self, identity: Identity, chain: ChainConfig) -> FaultySession:
        session = FaultySession(self.market.open_session(identity, chain), self.faults.get(len(self.sessions) + 1))
        self.sessions.append(session)
        return session


class UnreachableStorage:
    """Storage whose RPC endpoint never answers."""

    def __init__(self) -> None:
        self.add_calls = 0

    def add(self, data: bytes) -> str:
        self.add_calls += 1
        raise StorageError("IPFS add connection error: [Errno 111] Connection refused", retryable=True)

    def public_url(self, cid: str) -> str:
        return f"{GATEWAY}/ipfs/{cid}"

    def multiaddr(self, cid: str) -> str:
        return f"/ipfs/{cid}"

    def fetch(self, url: str) -> bytes:
        raise AssertionError("fetch must not be reached when add fails")


class StaticFetcher:
    """Gateway returning a fixed body regardless of URL."""

    def __init__(self, body: bytes = b"", error: Exception | None = None):
        self.body = body
        self.error = error
        self.urls: list[str] = []

    def fetch(self, url: str) -> bytes:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.body


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def no_sleep() -> list[float]:
    """Records requested sleeps instead of sleeping; pass `.append` as `sleep`."""
    return []


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay_s=0.01, max_delay_s=0.02, jitter=False)


@pytest.fixture
def deploy_config(fast_retry: RetryPolicy, tmp_path: Path) -> DeployConfig:
    """Default configuration with fast retries, no pacing and a temp ledger."""
    return DeployConfig(
        chain=ChainConfig(ipfs_gateway_url=GATEWAY),
        storage=StorageSettings(timeout_s=1.0, retry=fast_retry),
        pacing_s=0.0,
        output_file=str(tmp_path / "deployed_apps.json"),
    )


@pytest.fixture
def local_store(tmp_path: Path) -> LocalContentStore:
    return LocalContentStore(tmp_path / "cas")


@pytest.fixture
def publisher(local_store: LocalContentStore, fast_retry: RetryPolicy, no_sleep: list[float]) -> ContentPublisher:
    return ContentPublisher(
        local_store,
        placeholder_cid="QmPlaceholder",
        placeholder_gateway_url=GATEWAY,
        retry=fast_retry,
        sleep=no_sleep.append,
    )


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def marketplace() -> ScriptedMarketplace:
    return ScriptedMarketplace()


@pytest.fixture
def orchestrator(
    deploy_config: DeployConfig,
    marketplace: ScriptedMarketplace,
    publisher: ContentPublisher,
    sink: MemorySink,
) -> UnitOrchestrator:
    return UnitOrchestrator(
        deploy_config,
        marketplace,
        publisher,
        events=EventBus([sink]),
        clock=lambda: 1700000000.5,
    )
