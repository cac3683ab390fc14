"""
Local marketplace simulation.

Keeps registries and the secret store in one JSON state file so rehearsal
runs exercise the whole pipeline without a chain. It enforces the rules the
real marketplace enforces and that the pipeline depends on:

- the declared owner of a resource must be the session's signer
- resource addresses are unique and derived from (kind, owner, name, nonce)
- secrets are write-once per resource: a second push reports "already exists"
- only the resource owner may push its secret

Secret values are never written to the state file, only their sha256.
"""

from __future__ import annotations

import hashlib
import json
import re
from pathlib import Path
from typing import Any

from ..config import ChainConfig
from ..models import Identity

_CHECKSUM_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def _hex_digest(*parts: str) -> str:
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()


class LocalMarketplace:
    """In-process marketplace shared by all sessions of a run."""

    def __init__(self, state_path: Path | None = None):
        self.state_path = state_path
        self.state: dict[str, Any] = {"apps": {}, "datasets": {}, "secrets": {}, "nonce": 0}
        if state_path is not None and state_path.exists():
            loaded = json.loads(state_path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                self.state.update(loaded)

    def __call__(self, identity: Identity, chain: ChainConfig) -> LocalSession:
        return self.open_session(identity, chain)

    def open_session(self, identity: Identity, chain: ChainConfig) -> LocalSession:
        return LocalSession(self, identity, chain)

    def _save(self) -> None:
        if self.state_path is None:
            return
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.state_path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(self.state, indent=2, sort_keys=True), encoding="utf-8")
        temp_path.replace(self.state_path)

    def _register(self, table: str, kind: str, record: dict[str, Any]) -> dict[str, str]:
        self.state["nonce"] = int(self.state.get("nonce", 0)) + 1
        nonce = str(self.state["nonce"])
        address = "0x" + _hex_digest(kind, record["owner"], record["name"], nonce)[-40:]
        tx_hash = "0x" + _hex_digest("tx", address, nonce)
        self.state[table][address] = {**record, "txHash": tx_hash}
        self._save()
        return {"address": address, "txHash": tx_hash}

    def owner_of(self, address: str) -> str | None:
        for table in ("apps", "datasets"):
            entry = self.state[table].get(address)
            if entry is not None:
                return str(entry.get("owner", ""))
        return None

    def has_secret(self, address: str) -> bool:
        return address in self.state["secrets"]

    def _push_secret(self, signer: str, address: str, secret: str) -> bool:
        owner = self.owner_of(address)
        if owner is None:
            raise LookupError(f"No resource registered at {address}")
        if owner.lower() != signer.lower():
            raise PermissionError(f"{signer} is not the owner of {address}")
        if not secret:
            raise ValueError("secret must be non-empty")
        if self.has_secret(address):
            return False
        self.state["secrets"][address] = hashlib.sha256(secret.encode("utf-8")).hexdigest()
        self._save()
        return True


class LocalSession:
    """A LocalMarketplace session signing as one identity."""

    def __init__(self, market: LocalMarketplace, identity: Identity, chain: ChainConfig):
        self.market = market
        self.signer = identity.address
        self.chain = chain

    def _check_owner(self, payload: dict[str, Any]) -> None:
        owner = str(payload.get("owner") or "")
        if not owner:
            raise ValueError("owner is required")
        if owner.lower() != self.signer.lower():
            raise PermissionError(f"owner {owner} does not match signer {self.signer}")
        if not str(payload.get("name") or "").strip():
            raise ValueError("name is required")

    def deploy_app(self, app: dict[str, Any]) -> dict[str, str]:
        self._check_owner(app)
        if not app.get("multiaddr"):
            raise ValueError("app multiaddr is required")
        return self.market._register("apps", "app", dict(app))

    def deploy_dataset(self, dataset: dict[str, Any]) -> dict[str, str]:
        self._check_owner(dataset)
        if not dataset.get("multiaddr"):
            raise ValueError("dataset multiaddr is required")
        if not _CHECKSUM_RE.match(str(dataset.get("checksum") or "")):
            raise ValueError("dataset checksum must be a 0x-prefixed sha256")
        return self.market._register("datasets", "dataset", dict(dataset))

    def push_app_secret(self, app_address: str, secret: str) -> bool:
        return self.market._push_secret(self.signer, app_address, secret)

    def push_dataset_secret(self, dataset_address: str, encryption_key: str) -> bool:
        return self.market._push_secret(self.signer, dataset_address, encryption_key)

    def resolve_sms_url(self) -> str:
        return self.chain.sms_url
