"""
Deployment configuration.

Everything the pipeline needs that is not per-unit state: network endpoints,
the app template registered for every unit, the app secret reference, naming,
pacing, and storage transport settings. Values come from built-in defaults
(the staging network) optionally overridden by a YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .retry import RetryPolicy

PLACEHOLDER_CID = "QmTJ41EuPEwiPTGrYVPbXgMGvmgzsRYWWMmw6krVDN94nh"


@dataclass(frozen=True)
class ChainConfig:
    """Endpoints a marketplace session is bound to."""

    chain_id: str = "134"
    host: str = "https://bellecour.iex.ec"
    sms_url: str = "https://sms.staging.iex.ec"
    iexec_gateway_url: str = "https://api.market.stagingv8.iex.ec"
    ipfs_gateway_url: str = "https://ipfs-gateway.stagingv8.iex.ec"
    ipfs_api_url: str = ""  # defaults to ipfs_gateway_url
    result_proxy_url: str = "https://result.stagingv8.iex.ec"

    @property
    def storage_api_url(self) -> str:
        return (self.ipfs_api_url or self.ipfs_gateway_url).rstrip("/")

    def describe(self) -> dict[str, str]:
        """Endpoint summary for diagnostics (contains no secrets)."""
        return {
            "chain_id": self.chain_id,
            "host": self.host,
            "sms": self.sms_url,
            "gateway": self.iexec_gateway_url,
            "ipfs": self.ipfs_gateway_url,
        }


@dataclass(frozen=True)
class TeeDescriptor:
    """Trusted-execution descriptor of the app image. Passed through to the marketplace as-is."""

    framework: str = "SCONE"
    version: str = "v5.9"
    entrypoint: str = "python /app/app.py"
    heap_size: int = 1073741824
    fingerprint: str = "2d4b9efd066d0bb058b8da79bf8551be7d244779bc41d03a12201a4004779609"

    def to_dict(self) -> dict[str, Any]:
        return {
            "framework": self.framework,
            "version": self.version,
            "entrypoint": self.entrypoint,
            "heapSize": self.heap_size,
            "fingerprint": self.fingerprint,
        }


@dataclass(frozen=True)
class AppTemplate:
    """Static metadata shared by every registered app."""

    name_prefix: str = "bulk-app"
    type: str = "DOCKER"
    multiaddr: str = "docker.io/iexechub/python-hello-world:8.0.0-sconify-5.9.1-v15-production"
    checksum: str = "0x15de77fd7ac448028884256b3ab376e7d4560e9ef6acf0594ea0b3c031d5d395"
    mrenclave: TeeDescriptor = field(default_factory=TeeDescriptor)

    def render(self, name: str, owner: str) -> dict[str, Any]:
        """App registration payload for one unit."""
        return {
            "owner": owner,
            "name": name,
            "type": self.type,
            "multiaddr": self.multiaddr,
            "checksum": self.checksum,
            "mrenclave": self.mrenclave.to_dict(),
        }


@dataclass(frozen=True)
class StorageSettings:
    timeout_s: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    placeholder_cid: str = PLACEHOLDER_CID


@dataclass(frozen=True)
class DeployConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    app: AppTemplate = field(default_factory=AppTemplate)
    storage: StorageSettings = field(default_factory=StorageSettings)
    app_secret: str = "1234567890"  # secret reference; bare values are literals
    dataset_name_prefix: str = "bulk-dataset"
    dataset_content_template: str = "test{unit_id} - {timestamp}"
    pacing_s: float = 2.0
    output_file: str = "deployed_apps.json"
    default_count: int = 10

    def with_overrides(self, **changes: Any) -> DeployConfig:
        """Copy with the given top-level fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _coerce_dict(value: Any, section: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{section}' must be a mapping")
    return value


def _pick(data: dict[str, Any], cls: type, section: str) -> dict[str, Any]:
    """Keep only keys that are fields of `cls`, coerced to the default's type."""
    defaults = cls()
    out: dict[str, Any] = {}
    for name in cls.__dataclass_fields__:
        if name not in data:
            continue
        default = getattr(defaults, name)
        raw = data[name]
        if isinstance(default, (dict, list)) or hasattr(default, "__dataclass_fields__"):
            continue
        try:
            if isinstance(default, bool):
                out[name] = bool(raw)
            elif isinstance(default, int):
                out[name] = int(raw)
            elif isinstance(default, float):
                out[name] = float(raw)
            else:
                out[name] = str(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {section}.{name}: {raw!r}") from e
    return out


def parse_config(data: dict[str, Any]) -> DeployConfig:
    """Build a DeployConfig from a parsed mapping. Unknown keys are ignored."""
    data = _coerce_dict(data, "config")

    chain = ChainConfig(**_pick(_coerce_dict(data.get("chain"), "chain"), ChainConfig, "chain"))

    app_raw = _coerce_dict(data.get("app"), "app")
    tee = TeeDescriptor(**_pick(_coerce_dict(app_raw.get("mrenclave"), "app.mrenclave"), TeeDescriptor, "app.mrenclave"))
    app = AppTemplate(mrenclave=tee, **_pick(app_raw, AppTemplate, "app"))

    storage_raw = _coerce_dict(data.get("storage"), "storage")
    retry = RetryPolicy(**_pick(_coerce_dict(storage_raw.get("retry"), "storage.retry"), RetryPolicy, "storage.retry"))
    storage = StorageSettings(retry=retry, **_pick(storage_raw, StorageSettings, "storage"))

    cfg = DeployConfig(chain=chain, app=app, storage=storage, **_pick(data, DeployConfig, "config"))

    if cfg.pacing_s < 0:
        raise ConfigError("pacing_s must be >= 0")
    if cfg.default_count < 0:
        raise ConfigError("default_count must be >= 0")
    if cfg.storage.retry.max_attempts < 1:
        raise ConfigError("storage.retry.max_attempts must be >= 1")
    return cfg


def load_config(path: Path | None) -> DeployConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: YAML file, or None for built-in defaults

    Raises:
        ConfigError: if the file is unreadable or malformed
    """
    if path is None:
        return DeployConfig()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return parse_config(data)
