"""Strong-typed data definitions for measurements, block outcomes and persisted results."""

import math
import statistics
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from .case import BenchmarkCase, Operation
from .utils import BaseModelWithDocstrings, NonEmptyString


class FailReason(str, Enum):
    """Reasons a block can stop without delivering a complete set of trials."""

    MISC_EXCEPTION = "MISC_EXCEPTION"
    """Any uncaught fault inside the worker, including failed output validation."""
    READ_CONFIG_FILE = "READ_CONFIG_FILE"
    """The worker could not load the block plan."""
    TOO_SLOW = "TOO_SLOW"
    """A single trial exceeded the per-trial time ceiling."""
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    """The worker ran out of memory."""
    FROZEN = "FROZEN"
    """The worker produced no outcome within the block wall-clock budget and was killed."""


class OutputError(str, Enum):
    """Classification of an output correctness check."""

    NO_ERROR = "NO_ERROR"
    LARGE_ERROR = "LARGE_ERROR"
    """The residual is larger than the tolerance."""
    UNCOUNTABLE = "UNCOUNTABLE"
    """The output contains NaN or infinite values."""
    MISC = "MISC"
    """Missing outputs or outputs with a wrong structure."""


class Measurement(BaseModelWithDocstrings):
    """Result of one successful trial."""

    ops_per_sec: float = Field(gt=0.0)
    """Throughput of the operation in operations per second."""
    elapsed: float = Field(ge=0.0)
    """Wall time of the whole trial in seconds."""

    @property
    def seconds_per_op(self) -> float:
        return 1.0 / self.ops_per_sec


class SizeMetrics(BaseModelWithDocstrings):
    """Summary of every measurement collected for one size.

    Statistics are computed over the ops/sec of the raw samples.
    """

    num_samples: int = Field(ge=0)
    """Number of raw samples."""
    mean: float = 0.0
    median: float = 0.0
    stdev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    raw: List[Measurement] = Field(default_factory=list)
    """Raw per-trial measurements in the order they were collected."""
    finalized: bool = False
    """No further samples are collected for this size, because it reached the trial ceiling
    or a trial was too slow."""

    @model_validator(mode="after")
    def _validate_count(self) -> "SizeMetrics":
        if self.num_samples != len(self.raw):
            raise ValueError(
                f"num_samples ({self.num_samples}) does not match raw samples ({len(self.raw)})"
            )
        return self

    @classmethod
    def from_measurements(
        cls, measurements: List[Measurement], finalized: bool = False
    ) -> "SizeMetrics":
        raw = list(measurements)
        if not raw:
            return cls(num_samples=0, finalized=finalized)
        ops = [m.ops_per_sec for m in raw]
        return cls(
            num_samples=len(raw),
            mean=statistics.fmean(ops),
            median=statistics.median(ops),
            stdev=statistics.stdev(ops) if len(ops) > 1 else 0.0,
            min=min(ops),
            max=max(ops),
            raw=raw,
            finalized=finalized,
        )

    def exceeds(self, max_trial_time: float) -> bool:
        """True if any sample took longer than ``max_trial_time`` per operation."""
        return any(m.seconds_per_op > max_trial_time for m in self.raw)


class BlockOutcome(BaseModelWithDocstrings):
    """Result of one block.

    Produced by the worker, which fills in the request id, the failure and the
    measurements. The dispatcher adds the memory budget the final attempt ran with.
    """

    request_id: int = Field(ge=0)
    """Identifier of the dispatch that produced this outcome."""
    failed: Optional[FailReason] = None
    """Why the block stopped early, or None if every requested trial succeeded."""
    detailed_error: Optional[str] = None
    """Diagnostic text, e.g. the formatted traceback of a worker exception."""
    results: List[Measurement] = Field(default_factory=list)
    """Measurements of the trials that completed, in order."""
    memory_mb: int = Field(default=0, ge=0)
    """Memory budget in megabytes given to the worker that produced this outcome."""

    @property
    def succeeded(self) -> bool:
        return self.failed is None

    @property
    def too_slow(self) -> bool:
        return self.failed == FailReason.TOO_SLOW

    def is_fatal(self) -> bool:
        """True for outcomes that abort the case rather than finishing a size."""
        return self.failed is not None and self.failed != FailReason.TOO_SLOW


class PersistedCaseRecord(BaseModelWithDocstrings):
    """On-disk counterpart of a case's progress, one file per case."""

    operation: Operation
    """The operation of the case."""
    library: NonEmptyString
    """Display name of the implementation under test."""
    sizes: List[int] = Field(min_length=1)
    """The full ordered list of sizes of the case."""
    metrics: List[Optional[SizeMetrics]]
    """One slot per size; None until the sweep reaches that size."""
    complete: bool = False
    """True once every size is finalized or the case failed irrecoverably."""
    failed: Optional[FailReason] = None
    """Failure that stopped the case most recently, if any."""
    max_memory_mb: int = Field(default=0, ge=0)
    """Largest memory budget a block of this case needed."""

    @model_validator(mode="after")
    def _validate_slots(self) -> "PersistedCaseRecord":
        if len(self.metrics) != len(self.sizes):
            raise ValueError(
                f"Expected {len(self.sizes)} metric slots, got {len(self.metrics)}"
            )
        return self

    def matches(self, case: BenchmarkCase) -> bool:
        return (
            self.operation == case.operation
            and self.library == case.library
            and self.sizes == case.sizes
        )

    def metric_count(self) -> int:
        return sum(1 for m in self.metrics if m is not None)

    def best_ops_per_sec(self) -> List[float]:
        """Mean ops/sec per size, NaN where a size has no samples."""
        return [m.mean if m is not None and m.num_samples else math.nan for m in self.metrics]
