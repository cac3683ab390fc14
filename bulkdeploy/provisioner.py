"""App and dataset registration on the marketplace."""

from __future__ import annotations

from typing import Any

from .config import AppTemplate
from .errors import ProvisionError
from .marketplace.contracts import MarketplaceSession
from .models import Resource


class ResourceProvisioner:
    """Registers resources through one identity's marketplace session."""

    def __init__(self, session: MarketplaceSession, template: AppTemplate):
        self.session = session
        self.template = template

    def register_app(self, name: str, owner: str) -> Resource:
        _require_owner(owner)
        payload = self.template.render(name, owner)
        try:
            response = self.session.deploy_app(payload)
        except Exception as e:
            raise ProvisionError(f"App registration rejected: {e}") from e
        return _resource("app", name, owner, response)

    def register_dataset(self, name: str, locator: str, checksum: str, owner: str) -> Resource:
        _require_owner(owner)
        payload = {
            "owner": owner,
            "name": name,
            "multiaddr": locator,
            "checksum": checksum,
        }
        try:
            response = self.session.deploy_dataset(payload)
        except Exception as e:
            raise ProvisionError(f"Dataset registration rejected: {e}") from e
        return _resource("dataset", name, owner, response)


def _require_owner(owner: str) -> None:
    if not str(owner or "").strip():
        raise ProvisionError("Registration requires an owner address")


def _resource(kind: str, name: str, owner: str, response: Any) -> Resource:
    if not isinstance(response, dict):
        raise ProvisionError(f"{kind} registration returned {type(response).__name__}, expected a mapping")
    address = str(response.get("address") or "").strip()
    if not address:
        raise ProvisionError(f"{kind} registration returned no address")
    return Resource(
        kind=kind,
        address=address,
        tx_hash=str(response.get("txHash") or ""),
        name=name,
        owner=owner,
    )
