"""Per-case progress and the stopping rules applied after every block."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from matbench.data import (
    BenchmarkCase,
    BlockOutcome,
    FailReason,
    Measurement,
    PersistedCaseRecord,
    SizeMetrics,
)


@dataclass
class CaseState:
    """Mutable progress of one case.

    ``size_index`` only moves forward. ``results`` holds the samples of the size in
    progress; ``metrics`` holds one slot per size, filled in as soon as a size has samples
    and frozen once the size is finalized.
    """

    case: BenchmarkCase
    size_index: int = 0
    results: List[Measurement] = field(default_factory=list)
    metrics: List[Optional[SizeMetrics]] = field(default_factory=list)
    complete: bool = False
    """Every size is finalized or the case failed irrecoverably. Persisted."""
    finished: bool = False
    """No further blocks are run for this case in the current run."""
    failed: Optional[FailReason] = None
    max_memory_mb: int = 0

    def __post_init__(self) -> None:
        if not self.metrics:
            self.metrics = [None] * len(self.case.sizes)
        if len(self.metrics) != len(self.case.sizes):
            raise ValueError("metrics must have one slot per size")
        if not 0 <= self.size_index <= len(self.case.sizes):
            raise ValueError(f"size_index {self.size_index} out of range")

    @property
    def current_size(self) -> int:
        return self.case.sizes[self.size_index]

    @property
    def trials_collected(self) -> int:
        return len(self.results)

    def fold(
        self, outcome: BlockOutcome, skip_larger_when_first_trial_too_slow: bool = False
    ) -> bool:
        """Fold one block outcome into the state.

        Parameters
        ----------
        outcome : BlockOutcome
            Outcome of the block that was run for the current size.
        skip_larger_when_first_trial_too_slow : bool
            If the very first trial of a size is too slow, finalize every larger size with
            no samples and complete the case.

        Returns
        -------
        bool
            True if the case is finished for this run.
        """
        if self.finished:
            raise RuntimeError(f"Case {self.case.name} is already finished")

        if outcome.is_fatal():
            self.failed = outcome.failed
            self.finished = True
            # Running out of memory at one size predicts the same at every larger size
            if outcome.failed == FailReason.OUT_OF_MEMORY:
                self.complete = True
            return True

        self.failed = None
        self.max_memory_mb = max(self.max_memory_mb, outcome.memory_mb)

        first_trial = not self.results
        room = self.case.max_trials - len(self.results)
        self.results.extend(outcome.results[:room])
        size_done = outcome.too_slow or len(self.results) >= self.case.max_trials
        self.metrics[self.size_index] = SizeMetrics.from_measurements(
            self.results, finalized=size_done
        )

        if outcome.too_slow:
            if skip_larger_when_first_trial_too_slow and first_trial and len(self.results) <= 1:
                for i in range(self.size_index + 1, len(self.metrics)):
                    self.metrics[i] = SizeMetrics.from_measurements([], finalized=True)
                self.size_index = len(self.case.sizes) - 1
        if size_done:
            self._advance()
        return self.finished

    def _advance(self) -> None:
        self.results = []
        self.size_index += 1
        if self.size_index >= len(self.case.sizes):
            self.complete = True
            self.finished = True

    def to_record(self) -> PersistedCaseRecord:
        return PersistedCaseRecord(
            operation=self.case.operation,
            library=self.case.library,
            sizes=list(self.case.sizes),
            metrics=list(self.metrics),
            complete=self.complete,
            failed=self.failed,
            max_memory_mb=self.max_memory_mb,
        )
