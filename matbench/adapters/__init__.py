"""Library adapters: the implementations under test.

The typical workflow is:
1. Get the singleton registry: registry = get_registry()
2. Look up an adapter: adapter = registry.get("numpy")
3. Run an operation: elapsed, outputs = adapter.operation(Operation.MULT)(inputs, num_cycles)
"""

from .base import AdapterError, LibraryAdapter, OperationFn, timed
from .numpy_adapter import NumpyAdapter
from .registry import AdapterRegistry, get_registry
from .torch_adapter import TorchAdapter

__all__ = [
    "AdapterError",
    "LibraryAdapter",
    "OperationFn",
    "timed",
    "NumpyAdapter",
    "TorchAdapter",
    "AdapterRegistry",
    "get_registry",
]
