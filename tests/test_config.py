"""Tests for configuration loading and secret references."""

from __future__ import annotations

from pathlib import Path

import pytest

from bulkdeploy.config import PLACEHOLDER_CID, DeployConfig, load_config, parse_config
from bulkdeploy.errors import ConfigError
from bulkdeploy.secret_refs import (
    CompositeSecretsProvider,
    EnvSecretsProvider,
    LiteralSecretsProvider,
    resolve_secret,
)


class TestDefaults:
    """Built-in defaults target the staging network."""

    def test_defaults_without_file(self):
        cfg = load_config(None)
        assert cfg == DeployConfig()
        assert cfg.chain.chain_id == "134"
        assert cfg.default_count == 10
        assert cfg.pacing_s == 2.0
        assert cfg.output_file == "deployed_apps.json"
        assert cfg.storage.placeholder_cid == PLACEHOLDER_CID

    def test_storage_api_defaults_to_gateway(self):
        cfg = DeployConfig()
        assert cfg.chain.storage_api_url == cfg.chain.ipfs_gateway_url.rstrip("/")

    def test_app_template_renders_owner_and_name(self):
        payload = DeployConfig().app.render("bulk-app-1-1", "0xabc")
        assert payload["owner"] == "0xabc"
        assert payload["name"] == "bulk-app-1-1"
        assert payload["type"] == "DOCKER"
        assert payload["mrenclave"]["framework"] == "SCONE"
        assert payload["mrenclave"]["heapSize"] == 1073741824

    def test_with_overrides_ignores_none(self):
        cfg = DeployConfig().with_overrides(pacing_s=None, output_file="out.json")
        assert cfg.pacing_s == 2.0
        assert cfg.output_file == "out.json"


class TestLoadConfig:
    def test_yaml_overrides(self, tmp_path: Path):
        path = tmp_path / "cfg.yml"
        path.write_text(
            "\n".join(
                [
                    "pacing_s: 0.5",
                    "default_count: 3",
                    "app_secret: env:BULK_APP_SECRET",
                    "chain:",
                    "  chain_id: 65535",
                    "  ipfs_api_url: http://127.0.0.1:5001",
                    "app:",
                    "  name_prefix: rehearsal-app",
                    "  mrenclave:",
                    "    heap_size: 2048",
                    "storage:",
                    "  timeout_s: 5",
                    "  retry:",
                    "    max_attempts: 5",
                    "unknown_key: ignored",
                ]
            ),
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.pacing_s == 0.5
        assert cfg.default_count == 3
        assert cfg.app_secret == "env:BULK_APP_SECRET"
        assert cfg.chain.chain_id == "65535"
        assert cfg.chain.storage_api_url == "http://127.0.0.1:5001"
        assert cfg.app.name_prefix == "rehearsal-app"
        assert cfg.app.mrenclave.heap_size == 2048
        assert cfg.app.mrenclave.framework == "SCONE"
        assert cfg.storage.timeout_s == 5.0
        assert cfg.storage.retry.max_attempts == 5
        assert cfg.storage.retry.base_delay_s == 0.5

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == DeployConfig()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Cannot read config"):
            load_config(tmp_path / "absent.yml")

    def test_malformed_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("chain: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError, match="'chain' must be a mapping"):
            parse_config({"chain": "bellecour"})

    def test_invalid_number(self):
        with pytest.raises(ConfigError, match="pacing_s"):
            parse_config({"pacing_s": "soon"})

    def test_negative_pacing_rejected(self):
        with pytest.raises(ConfigError):
            parse_config({"pacing_s": -1})

    def test_zero_attempts_rejected(self):
        with pytest.raises(ConfigError):
            parse_config({"storage": {"retry": {"max_attempts": 0}}})


class TestSecretRefs:
    def test_env_reference(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BULK_TEST_SECRET", "s3cret")
        assert resolve_secret("env:BULK_TEST_SECRET") == "s3cret"

    def test_missing_env_reference_raises(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("BULK_TEST_MISSING", raising=False)
        with pytest.raises(ConfigError, match="BULK_TEST_MISSING"):
            resolve_secret("env:BULK_TEST_MISSING")

    def test_literal_and_bare_values(self):
        assert resolve_secret("literal:abc") == "abc"
        assert resolve_secret("1234567890") == "1234567890"

    def test_empty_literal_raises(self):
        with pytest.raises(ConfigError):
            resolve_secret("literal:")

    def test_literal_provider_defers_env_refs(self):
        provider = LiteralSecretsProvider()
        assert not provider.supports("env:X")
        assert provider.supports("plain")

    def test_composite_tries_in_order(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BULK_TEST_SECRET", "from-env")
        composite = CompositeSecretsProvider([EnvSecretsProvider(), LiteralSecretsProvider()])
        assert composite.get("env:BULK_TEST_SECRET") == "from-env"
        assert composite.get("literal:x") == "x"
