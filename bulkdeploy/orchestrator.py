"""
Per-unit provisioning pipeline.

    identity -> app -> app secret -> content -> dataset -> dataset secret

Stages run strictly in order. Each stage either produces its result or a
tagged StageFailure; the first failure ends the unit and yields a failure
record. Content publication degrades instead of failing, so storage health
never decides a unit's outcome. No exception leaves run(): an error raised
outside a stage (a broken event sink, for one) is recorded as a failure at
the stage the unit had reached.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from .config import DeployConfig
from .distributor import SecretDistributor
from .events import DIAGNOSTIC, STAGE_LOGGED, UNIT_FINISHED, UNIT_STARTED, EventBus
from .identity import IdentityFactory
from .marketplace.contracts import MarketplaceFactory, MarketplaceSession
from .models import (
    ContentArtifact,
    DeploymentRecord,
    FailureRecord,
    Identity,
    Resource,
    SecretOutcome,
    Stage,
    StageFailure,
    UnitOutcome,
)
from .provisioner import ResourceProvisioner
from .publisher import ContentPublisher
from .secret_refs import resolve_secret

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require(value: T | None, what: str) -> T:
    if value is None:
        raise RuntimeError(f"{what} is missing; an earlier stage did not complete")
    return value


def _failure_from(stage: Stage, error: Exception) -> StageFailure:
    return StageFailure(stage=stage, error_type=type(error).__name__, message=str(error) or type(error).__name__)


@dataclass
class StageResult:
    """What one stage produced: an event status and payload, or a failure."""

    status: str = "completed"
    detail: dict[str, Any] | None = None
    failure: StageFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class _UnitState:
    """Everything one unit accumulates. Never shared across units."""

    unit_id: int
    stamp_ms: int
    stage: Stage = Stage.START
    identity: Identity | None = None
    session: MarketplaceSession | None = None
    app: Resource | None = None
    app_secret: SecretOutcome | None = None
    artifact: ContentArtifact | None = None
    dataset: Resource | None = None
    dataset_secret: SecretOutcome | None = None
    outcome: UnitOutcome | None = None


class UnitOrchestrator:
    """Runs the fixed six-stage pipeline for one provisioning unit at a time."""

    def __init__(
        self,
        config: DeployConfig,
        marketplace: MarketplaceFactory,
        publisher: ContentPublisher,
        *,
        identities: IdentityFactory | None = None,
        events: EventBus | None = None,
        app_secret: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.marketplace = marketplace
        self.publisher = publisher
        self.identities = identities or IdentityFactory()
        self.events = events or EventBus()
        # Resolved up front so a bad reference fails the batch, not every unit.
        self.app_secret = app_secret if app_secret is not None else resolve_secret(config.app_secret)
        self._clock = clock
        self._steps: tuple[tuple[Stage, Callable[[_UnitState], StageResult]], ...] = (
            (Stage.IDENTITY_CREATED, self._create_identity),
            (Stage.APP_REGISTERED, self._register_app),
            (Stage.APP_SECRET_PUSHED, self._push_app_secret),
            (Stage.CONTENT_PUBLISHED, self._publish_content),
            (Stage.DATASET_REGISTERED, self._register_dataset),
            (Stage.DATASET_SECRET_PUSHED, self._push_dataset_secret),
        )

    def run(self, unit_id: int) -> UnitOutcome:
        state = _UnitState(unit_id=unit_id, stamp_ms=int(self._clock() * 1000))
        try:
            return self._run_unit(state)
        except Exception as e:
            logger.exception("Unit %s aborted outside its stages (at %s)", unit_id, state.stage.value)
            # A record built before the error stands: a completed unit keeps its keys.
            if state.outcome is not None:
                return state.outcome
            failure = _failure_from(state.stage, e)
            return UnitOutcome(record=self._failure_record(state, failure), failure=failure, artifact=state.artifact)

    def _run_unit(self, state: _UnitState) -> UnitOutcome:
        self.events.publish(UNIT_STARTED, unit_id=state.unit_id, stage=Stage.START)

        for stage, step in self._steps:
            result = self._run_stage(state, stage, step)
            if not result.ok:
                return self._failed(state, result.failure)

        state.stage = Stage.COMPLETE
        record = self._success_record(state)
        state.outcome = UnitOutcome(record=record, artifact=state.artifact)
        self.events.publish(
            UNIT_FINISHED,
            unit_id=state.unit_id,
            stage=Stage.COMPLETE,
            status="completed",
            payload={
                "app": record.app_address,
                "dataset": record.dataset_address,
                "wallet": record.identity_address,
                "verified": record.dataset_verified,
            },
        )
        return state.outcome

    # -------------------------------------------------------------------------
    # Stage plumbing
    # -------------------------------------------------------------------------

    def _run_stage(
        self,
        state: _UnitState,
        stage: Stage,
        step: Callable[[_UnitState], StageResult],
    ) -> StageResult:
        state.stage = stage
        self.events.publish(STAGE_LOGGED, unit_id=state.unit_id, stage=stage, status="started")
        try:
            result = step(state)
        except Exception as e:
            result = StageResult(status="failed", failure=_failure_from(stage, e))
            self.events.publish(
                STAGE_LOGGED,
                unit_id=state.unit_id,
                stage=stage,
                status="failed",
                payload={"error_type": result.failure.error_type, "error": result.failure.message},
            )
            return result

        self.events.publish(
            STAGE_LOGGED,
            unit_id=state.unit_id,
            stage=stage,
            status=result.status,
            payload=result.detail or {},
        )
        return result

    def _failure_record(self, state: _UnitState, failure: StageFailure) -> FailureRecord:
        return FailureRecord(
            unit_id=state.unit_id,
            error=failure.message,
            timestamp=_utc_now(),
            failed_stage=failure.stage.value,
        )

    def _failed(self, state: _UnitState, failure: StageFailure) -> UnitOutcome:
        state.outcome = UnitOutcome(
            record=self._failure_record(state, failure),
            failure=failure,
            artifact=state.artifact,
        )
        self.events.publish(
            UNIT_FINISHED,
            unit_id=state.unit_id,
            stage=Stage.FAILED,
            status="failed",
            payload={"failed_stage": failure.stage.value, "error": failure.message},
        )
        return state.outcome

    def _success_record(self, state: _UnitState) -> DeploymentRecord:
        identity = _require(state.identity, "identity")
        app = _require(state.app, "app")
        dataset = _require(state.dataset, "dataset")
        artifact = _require(state.artifact, "content artifact")
        return DeploymentRecord(
            unit_id=state.unit_id,
            app_address=app.address,
            app_name=app.name,
            dataset_address=dataset.address,
            dataset_name=dataset.name,
            dataset_url=artifact.public_url,
            identity_address=identity.address,
            identity_private_key=identity.private_key,
            identity_mnemonic=identity.mnemonic,
            timestamp=_utc_now(),
            app_tx_hash=app.tx_hash,
            dataset_tx_hash=dataset.tx_hash,
            dataset_multiaddr=artifact.locator,
            dataset_checksum=artifact.checksum,
            dataset_verified=artifact.verified,
            app_secret=state.app_secret or SecretOutcome.PUSHED,
            dataset_secret=state.dataset_secret or SecretOutcome.PUSHED,
            publish_error=artifact.publish_error,
        )

    def _name(self, prefix: str, state: _UnitState) -> str:
        return f"{prefix}-{state.unit_id}-{state.stamp_ms}"

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _create_identity(self, state: _UnitState) -> StageResult:
        state.identity = self.identities.create()
        return StageResult(detail={"address": state.identity.address})

    def _register_app(self, state: _UnitState) -> StageResult:
        identity = _require(state.identity, "identity")
        state.session = self.marketplace(identity, self.config.chain)
        self.events.publish(
            DIAGNOSTIC,
            unit_id=state.unit_id,
            payload={"session": self.config.chain.describe()},
        )
        provisioner = ResourceProvisioner(state.session, self.config.app)
        state.app = provisioner.register_app(self._name(self.config.app.name_prefix, state), identity.address)
        return StageResult(detail={"name": state.app.name, "address": state.app.address, "tx_hash": state.app.tx_hash})

    def _push_app_secret(self, state: _UnitState) -> StageResult:
        app = _require(state.app, "app")
        distributor = SecretDistributor(_require(state.session, "marketplace session"))
        self.events.publish(DIAGNOSTIC, unit_id=state.unit_id, payload={"sms_url": distributor.sms_url()})
        state.app_secret = distributor.push_app_secret(app.address, self.app_secret)
        return StageResult(detail={"outcome": state.app_secret.value})

    def _publish_content(self, state: _UnitState) -> StageResult:
        name = self._name(self.config.dataset_name_prefix, state)
        content = self.config.dataset_content_template.format(unit_id=state.unit_id, timestamp=_utc_now())
        state.artifact = self.publisher.publish(content.encode("utf-8"), name)
        detail: dict[str, Any] = {
            "name": name,
            "checksum": state.artifact.checksum,
            "locator": state.artifact.locator,
            "url": state.artifact.public_url,
            "verified": state.artifact.verified,
        }
        if not state.artifact.verified:
            detail["error"] = state.artifact.publish_error or ""
            return StageResult(status="degraded", detail=detail)
        return StageResult(detail=detail)

    def _register_dataset(self, state: _UnitState) -> StageResult:
        identity = _require(state.identity, "identity")
        artifact = _require(state.artifact, "content artifact")
        provisioner = ResourceProvisioner(_require(state.session, "marketplace session"), self.config.app)
        state.dataset = provisioner.register_dataset(
            artifact.name,
            artifact.locator,
            artifact.checksum,
            identity.address,
        )
        return StageResult(
            detail={"name": state.dataset.name, "address": state.dataset.address, "tx_hash": state.dataset.tx_hash}
        )

    def _push_dataset_secret(self, state: _UnitState) -> StageResult:
        dataset = _require(state.dataset, "dataset")
        artifact = _require(state.artifact, "content artifact")
        distributor = SecretDistributor(_require(state.session, "marketplace session"))
        self.events.publish(DIAGNOSTIC, unit_id=state.unit_id, payload={"sms_url": distributor.sms_url()})
        state.dataset_secret = distributor.push_dataset_secret(dataset.address, artifact.encryption_key)
        return StageResult(detail={"outcome": state.dataset_secret.value})
