"""Secret distribution to the marketplace's secret management service (SMS)."""

from __future__ import annotations

import logging

from .errors import SecretError
from .marketplace.contracts import MarketplaceSession
from .models import SecretOutcome

logger = logging.getLogger(__name__)


class SecretDistributor:
    """
    Pushes resource secrets through one identity's marketplace session.

    "Already exists" is an outcome, not an error: the SMS holds a secret for
    the resource and will keep serving it. Anything else the session raises
    becomes SecretError.
    """

    def __init__(self, session: MarketplaceSession):
        self.session = session

    def sms_url(self) -> str:
        """Configured SMS endpoint, for diagnostics only."""
        try:
            return self.session.resolve_sms_url()
        except Exception as e:
            logger.warning("Could not resolve SMS URL: %s", e)
            return "unresolved"

    def push_app_secret(self, app_address: str, secret: str) -> SecretOutcome:
        try:
            pushed = self.session.push_app_secret(app_address, secret)
        except Exception as e:
            raise SecretError(f"App secret push failed for {app_address}: {e}") from e
        return _outcome(pushed, app_address)

    def push_dataset_secret(self, dataset_address: str, encryption_key: str) -> SecretOutcome:
        try:
            pushed = self.session.push_dataset_secret(dataset_address, encryption_key)
        except Exception as e:
            raise SecretError(f"Dataset secret push failed for {dataset_address}: {e}") from e
        return _outcome(pushed, dataset_address)


def _outcome(pushed: bool, address: str) -> SecretOutcome:
    if pushed:
        return SecretOutcome.PUSHED
    logger.info("Secret already exists for %s", address)
    return SecretOutcome.ALREADY_EXISTS
