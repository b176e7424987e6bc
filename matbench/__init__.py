from matbench.bench import Benchmark, BenchmarkConfig, create_cases
from matbench.data import (
    BenchmarkCase,
    BlockOutcome,
    BlockPlan,
    FailReason,
    Measurement,
    Operation,
    OutputError,
    PersistedCaseRecord,
    SizeMetrics,
)
from matbench.logging import configure_logging, get_logger

__all__ = [
    # Main classes
    "Benchmark",
    "BenchmarkConfig",
    "create_cases",
    # Case types
    "Operation",
    "BenchmarkCase",
    "BlockPlan",
    # Result types
    "FailReason",
    "OutputError",
    "Measurement",
    "SizeMetrics",
    "BlockOutcome",
    "PersistedCaseRecord",
    "configure_logging",
    "get_logger",
]
