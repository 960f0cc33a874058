"""
Adapter registry.

Maps a document's ``kind`` to its resource adapter. Kinds without a
registered adapter fall back to the generic one.
"""

from .base import ResourceAdapter
from .configmap import ConfigMapAdapter
from .generic import GenericAdapter
from .secret import SecretAdapter


class AdapterRegistry:
    """Registry-based lookup of resource adapters by kind."""

    _adapters: dict[str, ResourceAdapter] = {}
    _default: ResourceAdapter = GenericAdapter()

    @classmethod
    def register(cls, adapter: ResourceAdapter) -> None:
        """
        Register an adapter for its ``kind``.

        Example:
            AdapterRegistry.register(SecretAdapter())
        """
        cls._adapters[adapter.kind] = adapter

    @classmethod
    def for_kind(cls, kind: str | None) -> ResourceAdapter:
        """Return the adapter for ``kind``, or the generic adapter."""
        if kind is None:
            return cls._default
        return cls._adapters.get(kind, cls._default)

    @classmethod
    def kinds(cls) -> list[str]:
        """Kinds with a dedicated adapter."""
        return list(cls._adapters.keys())


AdapterRegistry.register(SecretAdapter())
AdapterRegistry.register(ConfigMapAdapter())
