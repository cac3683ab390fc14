"""
Data models for provisioning units.

Records serialize to the ledger's flat JSON shape (snake_case keys, one
object per unit). Key material lives only on Identity, ContentArtifact and
DeploymentRecord, and is excluded from their reprs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Stage(str, Enum):
    """Pipeline states of one provisioning unit, in order."""

    START = "start"
    IDENTITY_CREATED = "identity_created"
    APP_REGISTERED = "app_registered"
    APP_SECRET_PUSHED = "app_secret_pushed"
    CONTENT_PUBLISHED = "content_published"
    DATASET_REGISTERED = "dataset_registered"
    DATASET_SECRET_PUSHED = "dataset_secret_pushed"
    COMPLETE = "complete"
    FAILED = "failed"


# Stages a unit passes through on the way to COMPLETE (excluding START).
PIPELINE: tuple[Stage, ...] = (
    Stage.IDENTITY_CREATED,
    Stage.APP_REGISTERED,
    Stage.APP_SECRET_PUSHED,
    Stage.CONTENT_PUBLISHED,
    Stage.DATASET_REGISTERED,
    Stage.DATASET_SECRET_PUSHED,
)


class SecretOutcome(str, Enum):
    """Result of pushing a secret. Failures surface as SecretError, never as a value here."""

    PUSHED = "pushed"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class Identity:
    """A freshly generated account owning one unit's resources."""

    address: str
    private_key: str = field(repr=False)
    mnemonic: str = field(repr=False)


@dataclass(frozen=True)
class ContentArtifact:
    """Encrypted dataset content and where it was published."""

    name: str
    plaintext: bytes = field(repr=False)
    encryption_key: str = field(repr=False)
    ciphertext: bytes = field(repr=False)
    checksum: str
    cid: str
    locator: str  # /ipfs/<cid>
    public_url: str
    verified: bool
    publish_error: str | None = None


@dataclass(frozen=True)
class Resource:
    """An app or dataset registered on the marketplace."""

    kind: str  # "app" | "dataset"
    address: str
    tx_hash: str
    name: str
    owner: str


@dataclass(frozen=True)
class StageFailure:
    """Tagged failure of a unit: which stage failed and why."""

    stage: Stage
    error_type: str
    message: str


@dataclass
class DeploymentRecord:
    """Ledger entry for a unit that reached COMPLETE."""

    unit_id: int
    app_address: str
    app_name: str
    dataset_address: str
    dataset_name: str
    dataset_url: str
    identity_address: str
    identity_private_key: str = field(repr=False)
    identity_mnemonic: str = field(repr=False)
    timestamp: str = ""
    app_tx_hash: str = ""
    dataset_tx_hash: str = ""
    dataset_multiaddr: str = ""
    dataset_checksum: str = ""
    dataset_verified: bool = False
    app_secret: SecretOutcome = SecretOutcome.PUSHED
    dataset_secret: SecretOutcome = SecretOutcome.PUSHED
    publish_error: str | None = None

    status = "deployed"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "app_id": self.unit_id,
            "app_address": self.app_address,
            "app_name": self.app_name,
            "app_tx_hash": self.app_tx_hash,
            "app_secret": self.app_secret.value,
            "dataset_address": self.dataset_address,
            "dataset_name": self.dataset_name,
            "dataset_ipfs": self.dataset_url,
            "dataset_multiaddr": self.dataset_multiaddr,
            "dataset_checksum": self.dataset_checksum,
            "dataset_tx_hash": self.dataset_tx_hash,
            "dataset_verified": self.dataset_verified,
            "dataset_secret": self.dataset_secret.value,
            "wallet_address": self.identity_address,
            "wallet_private_key": self.identity_private_key,
            "wallet_mnemonic": self.identity_mnemonic,
            "deployed_at": self.timestamp,
        }
        if self.publish_error:
            d["publish_error"] = self.publish_error
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeploymentRecord:
        return cls(
            unit_id=int(data["app_id"]),
            app_address=str(data.get("app_address", "")),
            app_name=str(data.get("app_name", "")),
            dataset_address=str(data.get("dataset_address", "")),
            dataset_name=str(data.get("dataset_name", "")),
            dataset_url=str(data.get("dataset_ipfs", "")),
            identity_address=str(data.get("wallet_address", "")),
            identity_private_key=str(data.get("wallet_private_key", "")),
            identity_mnemonic=str(data.get("wallet_mnemonic", "")),
            timestamp=str(data.get("deployed_at", "")),
            app_tx_hash=str(data.get("app_tx_hash", "")),
            dataset_tx_hash=str(data.get("dataset_tx_hash", "")),
            dataset_multiaddr=str(data.get("dataset_multiaddr", "")),
            dataset_checksum=str(data.get("dataset_checksum", "")),
            dataset_verified=bool(data.get("dataset_verified", False)),
            app_secret=SecretOutcome(data.get("app_secret", SecretOutcome.PUSHED.value)),
            dataset_secret=SecretOutcome(data.get("dataset_secret", SecretOutcome.PUSHED.value)),
            publish_error=data.get("publish_error"),
        )


@dataclass
class FailureRecord:
    """Ledger entry for a unit that ended in FAILED."""

    unit_id: int
    error: str
    timestamp: str = ""
    failed_stage: str = ""

    status = "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "app_id": self.unit_id,
            "status": self.status,
            "error": self.error,
            "failed_stage": self.failed_stage,
            "deployed_at": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FailureRecord:
        return cls(
            unit_id=int(data["app_id"]),
            error=str(data.get("error", "")),
            timestamp=str(data.get("deployed_at", "")),
            failed_stage=str(data.get("failed_stage", "")),
        )


UnitRecord = Union[DeploymentRecord, FailureRecord]


def record_from_dict(data: dict[str, Any]) -> UnitRecord:
    """Rebuild a ledger entry, dispatching on its status field."""
    if data.get("status") == FailureRecord.status:
        return FailureRecord.from_dict(data)
    return DeploymentRecord.from_dict(data)


@dataclass
class UnitOutcome:
    """What one orchestrator run produced: always a record, plus the failure tag if any."""

    record: UnitRecord
    failure: StageFailure | None = None
    artifact: ContentArtifact | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class BatchReport:
    """Ordered unit records for one batch run."""

    requested: int
    records: list[UnitRecord] = field(default_factory=list)
    started_at: str = ""
    duration_s: float = 0.0

    def __len__(self) -> int:
        return len(self.records)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.records if isinstance(r, DeploymentRecord))

    @property
    def failed(self) -> int:
        return sum(1 for r in self.records if isinstance(r, FailureRecord))

    def to_list(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self.records]
