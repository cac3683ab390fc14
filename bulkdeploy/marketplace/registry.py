"""
Marketplace binding registry.

Bindings register themselves by name. The CLI resolves --marketplace either
to a registered name or to an importable "module:attr" binding.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

from ..errors import ConfigError

if TYPE_CHECKING:
    from .contracts import MarketplaceBinding

# Global registry: binding name → binding
_BINDINGS: dict[str, "MarketplaceBinding"] = {}


def register_marketplace(name: str, binding: "MarketplaceBinding") -> None:
    """
    Register a marketplace binding by name.

    Args:
        name: Binding name (e.g., "local")
        binding: Callable building a session factory for a run
    """
    _BINDINGS[name] = binding


def get_marketplace(name: str) -> "MarketplaceBinding | None":
    """Look up a binding by name, or None if not registered."""
    return _BINDINGS.get(name)


def list_marketplaces() -> list[str]:
    """List all registered binding names."""
    return sorted(_BINDINGS.keys())


def clear_marketplaces() -> None:
    """Clear all registered bindings (for testing)."""
    _BINDINGS.clear()


def resolve_marketplace(spec: str) -> "MarketplaceBinding":
    """
    Resolve a binding from a registered name or a "module:attr" path.

    Raises:
        ConfigError: if the binding cannot be found or imported
    """
    binding = get_marketplace(spec)
    if binding is not None:
        return binding

    if ":" not in spec:
        known = ", ".join(list_marketplaces()) or "none"
        raise ConfigError(f"Unknown marketplace binding '{spec}' (registered: {known})")

    module_name, _, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import marketplace module '{module_name}': {e}") from e
    binding = getattr(module, attr, None)
    if binding is None or not callable(binding):
        raise ConfigError(f"'{spec}' is not a callable marketplace binding")
    return binding
