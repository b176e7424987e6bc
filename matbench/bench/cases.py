from __future__ import annotations

from typing import Iterable, List, Optional

from matbench.adapters import get_registry
from matbench.data import BenchmarkCase, Operation
from matbench.logging import get_logger

from .config import BenchmarkConfig

LOGGER = get_logger("Cases")


def create_cases(
    libraries: Iterable[str],
    config: BenchmarkConfig,
    operations: Optional[Iterable[Operation]] = None,
) -> List[BenchmarkCase]:
    """Build one case per (operation, library) pair the library implements.

    Parameters
    ----------
    libraries : Iterable[str]
        Names of registered library adapters.
    config : BenchmarkConfig
        Supplies the sizes and the trial ceiling of every case.
    operations : Optional[Iterable[Operation]]
        Operations to include, all operations by default.

    Returns
    -------
    List[BenchmarkCase]
        Cases ordered by library, then by operation.
    """
    registry = get_registry()
    ops = list(operations) if operations is not None else list(Operation)
    cases: List[BenchmarkCase] = []
    for library in libraries:
        adapter = registry.get(library)
        for op in ops:
            if adapter.operation(op) is None:
                LOGGER.info(f"{library} does not implement {op.value}, skipping")
                continue
            cases.append(
                BenchmarkCase(
                    operation=op,
                    library=adapter.name,
                    sizes=list(config.sizes),
                    max_trials=config.max_trials,
                )
            )
    return cases
