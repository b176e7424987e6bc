"""Abstract base class for library adapters."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from matbench.data import Operation

OperationFn = Callable[[Sequence[Any], int], Tuple[float, Tuple[Any, ...]]]
"""Runs an operation ``num_cycles`` times on wrapped inputs.

Returns the elapsed time in seconds and the native outputs of the last cycle.
"""


class AdapterError(RuntimeError):
    """Raised when an adapter cannot be constructed or does not know an operation."""


def timed(
    compute: Callable[..., Any], finish: Optional[Callable[[Any], Tuple[Any, ...]]] = None
) -> OperationFn:
    """Wrap a single-shot ``compute(*inputs)`` into an :data:`OperationFn`.

    ``finish`` turns the raw result of the last cycle into the output tuple and runs
    outside of the timed region.
    """

    def run(inputs: Sequence[Any], num_cycles: int) -> Tuple[float, Tuple[Any, ...]]:
        if num_cycles <= 0:
            raise ValueError("num_cycles must be > 0")
        result = None
        start = time.perf_counter()
        for _ in range(num_cycles):
            result = compute(*inputs)
        elapsed = time.perf_counter() - start
        if finish is not None:
            return elapsed, finish(result)
        if isinstance(result, tuple):
            return elapsed, result
        return elapsed, (result,)

    return run


class LibraryAdapter(ABC):
    """Capability set of one implementation under test.

    An adapter converts raw numpy data into the library's native matrix type and exposes
    one :data:`OperationFn` per supported operation. Operations the library does not
    implement return None from :meth:`operation`.
    """

    name: str
    """Display name of the implementation, used in case names and result files."""

    @staticmethod
    @abstractmethod
    def is_available() -> bool:
        """Check if the underlying library can be imported."""
        ...

    @abstractmethod
    def version(self) -> str: ...

    @abstractmethod
    def wrap(self, array: np.ndarray) -> Any:
        """Build the native matrix representation from a numpy array."""
        ...

    @abstractmethod
    def unwrap(self, native: Any) -> np.ndarray:
        """Convert a native matrix or scalar back into a numpy array."""
        ...

    @abstractmethod
    def operation(self, op: Operation) -> Optional[OperationFn]: ...

    def supported_operations(self) -> List[Operation]:
        return [op for op in Operation if self.operation(op) is not None]
