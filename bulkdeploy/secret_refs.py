"""
Secret reference resolution.

Configuration names secrets by reference ("env:APP_SECRET") rather than by
value, so config files and event logs can be shared without leaking them.

The reference format is "<provider>:<key>":
- env:VAR_NAME - environment variable
- literal:VALUE - the value itself (for throwaway staging secrets)

A reference without a known provider prefix is treated as a literal.
"""

from __future__ import annotations

import os
from typing import Protocol

from .errors import ConfigError


class SecretsProvider(Protocol):
    """Protocol for resolving secret references to values."""

    def get(self, ref: str) -> str | None:
        """
        Resolve a secret reference to its value.

        Args:
            ref: Secret reference (e.g., "env:APP_SECRET")

        Returns:
            The secret value, or None if not found.
        """
        ...

    def supports(self, ref: str) -> bool:
        """Check if this provider can handle the given reference."""
        ...


class EnvSecretsProvider:
    """
    Resolve secrets from environment variables.

    Reference format: "env:VAR_NAME"
    """

    PREFIX = "env:"

    def supports(self, ref: str) -> bool:
        return ref.startswith(self.PREFIX)

    def get(self, ref: str) -> str | None:
        if not self.supports(ref):
            return None
        var_name = ref[len(self.PREFIX) :]
        return os.environ.get(var_name)


class LiteralSecretsProvider:
    """Resolve "literal:VALUE" references, and bare values with no provider prefix."""

    PREFIX = "literal:"
    KNOWN_PREFIXES = ("env:",)

    def supports(self, ref: str) -> bool:
        if ref.startswith(self.PREFIX):
            return True
        return not any(ref.startswith(p) for p in self.KNOWN_PREFIXES)

    def get(self, ref: str) -> str | None:
        if not self.supports(ref):
            return None
        if ref.startswith(self.PREFIX):
            return ref[len(self.PREFIX) :]
        return ref


class CompositeSecretsProvider:
    """
    Combine multiple secrets providers.

    Tries each provider in order until one returns a value.
    """

    def __init__(self, providers: list[SecretsProvider] | None = None):
        self.providers = providers or [EnvSecretsProvider(), LiteralSecretsProvider()]

    def supports(self, ref: str) -> bool:
        return any(p.supports(ref) for p in self.providers)

    def get(self, ref: str) -> str | None:
        for provider in self.providers:
            if provider.supports(ref):
                value = provider.get(ref)
                if value is not None:
                    return value
        return None


def resolve_secret(ref: str, provider: SecretsProvider | None = None) -> str:
    """
    Resolve one secret reference, failing loudly when it cannot be resolved.

    Raises:
        ConfigError: if no provider yields a non-empty value.
    """
    provider = provider or CompositeSecretsProvider()
    value = provider.get(ref)
    if not value:
        # Only unresolved references reach here, so echoing the ref leaks nothing.
        raise ConfigError(f"Secret reference could not be resolved: {ref!r}")
    return value
