"""Data layer with strongly-typed models for matbench."""

from .case import BenchmarkCase, BlockPlan, Operation
from .json_codec import load_json_file, save_json_file
from .results import (
    BlockOutcome,
    FailReason,
    Measurement,
    OutputError,
    PersistedCaseRecord,
    SizeMetrics,
)

__all__ = [
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
    # JSON functions
    "save_json_file",
    "load_json_file",
]
