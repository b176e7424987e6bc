"""Adapter registry for looking up implementations under test by name."""

from __future__ import annotations

from typing import Callable, ClassVar, Dict, List, Type

from .base import AdapterError, LibraryAdapter
from .numpy_adapter import NumpyAdapter
from .torch_adapter import TorchAdapter

_BUILTIN_ADAPTERS: List[Type[LibraryAdapter]] = [NumpyAdapter, TorchAdapter]
"""Adapter types shipped with matbench."""


class AdapterRegistry:
    """Central registry of library adapters.

    Adapters are constructed lazily on first use and cached, so a worker process only
    imports the library it benchmarks. Use :meth:`get_instance` to obtain the shared
    registry.
    """

    _instance: ClassVar["AdapterRegistry" | None] = None
    """Singleton instance of the AdapterRegistry."""

    _factories: Dict[str, Callable[[], LibraryAdapter]]
    """Factories keyed by adapter name."""

    _cache: Dict[str, LibraryAdapter]
    """Adapters that have been constructed already."""

    def __init__(self) -> None:
        self._factories = {}
        self._cache = {}

    @classmethod
    def get_instance(cls) -> "AdapterRegistry":
        """Get the singleton registry, registering every built-in adapter that is available."""
        if cls._instance is None:
            registry = AdapterRegistry()
            for adapter_type in _BUILTIN_ADAPTERS:
                if adapter_type.is_available():
                    registry.register(adapter_type.name, adapter_type)
            cls._instance = registry
        return cls._instance

    def register(self, name: str, factory: Callable[[], LibraryAdapter]) -> None:
        if not name:
            raise ValueError("Adapter name must be non-empty")
        self._factories[name] = factory
        self._cache.pop(name, None)

    def available(self) -> List[str]:
        return sorted(self._factories)

    def get(self, name: str) -> LibraryAdapter:
        """Return the adapter registered under ``name``.

        Raises
        ------
        AdapterError
            If no adapter is registered under that name.
        """
        if name in self._cache:
            return self._cache[name]
        if name not in self._factories:
            raise AdapterError(
                f"Unknown library adapter '{name}', available: {', '.join(self.available())}"
            )
        adapter = self._factories[name]()
        self._cache[name] = adapter
        return adapter


def get_registry() -> AdapterRegistry:
    return AdapterRegistry.get_instance()
