"""Per-case result files that let an interrupted sweep pick up where it stopped."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from matbench.data import BenchmarkCase, PersistedCaseRecord, load_json_file, save_json_file
from matbench.logging import get_logger

from .case_state import CaseState

LOGGER = get_logger("ResumableStore")


class StoreError(RuntimeError):
    """Raised when a persisted record cannot be read or contradicts itself."""


def resume_state(
    case: BenchmarkCase, record: PersistedCaseRecord, max_trial_time: float
) -> CaseState:
    """Rebuild the in-memory state of a case from its persisted record.

    A complete record yields a finished state. Otherwise the sweep resumes at the first
    size without metrics, unless the size before it is still open: it is not flagged as
    finalized, has fewer samples than the trial ceiling and none of them was too slow. In
    that case the sweep goes back to that size and keeps its samples.

    Raises
    ------
    StoreError
        If the record is not complete although every size is finalized.
    """
    state = CaseState(
        case=case,
        metrics=list(record.metrics),
        complete=record.complete,
        failed=record.failed,
        max_memory_mb=record.max_memory_mb,
    )
    if record.complete:
        state.size_index = len(case.sizes)
        state.finished = True
        return state

    index = next((i for i, m in enumerate(record.metrics) if m is None), len(record.metrics))
    if index > 0:
        previous = record.metrics[index - 1]
        # records written before the flag existed fall back to the sample scan
        if (
            not previous.finalized
            and previous.num_samples < case.max_trials
            and not previous.exceeds(max_trial_time)
        ):
            index -= 1

    if index >= len(case.sizes):
        raise StoreError(
            f"Result of {case.name} isn't flagged as complete, but every size is finalized"
        )

    state.size_index = index
    current = record.metrics[index]
    state.results = list(current.raw) if current is not None else []
    return state


class ResumableStore:
    """One JSON record per case in ``directory``."""

    def __init__(self, directory: Union[str, Path], max_trial_time: float) -> None:
        self._directory = Path(directory)
        self._max_trial_time = max_trial_time

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, case: BenchmarkCase) -> Path:
        return self._directory / f"{case.file_name}.json"

    def load_record(self, case: BenchmarkCase) -> Optional[PersistedCaseRecord]:
        path = self.path_for(case)
        if not path.exists():
            return None
        try:
            record = load_json_file(PersistedCaseRecord, path)
        except (OSError, ValidationError) as e:
            raise StoreError(f"Failed to read {path}: {e}") from e
        if not record.matches(case):
            raise StoreError(
                f"{path} belongs to {record.operation.value}[{record.library}] with sizes "
                f"{record.sizes}, expected {case.name} with sizes {case.sizes}"
            )
        return record

    def load(self, case: BenchmarkCase) -> Optional[CaseState]:
        """Reconstruct the state of ``case``, or None if it has never been run."""
        record = self.load_record(case)
        if record is None:
            return None
        return resume_state(case, record, self._max_trial_time)

    def save(self, case: BenchmarkCase, state: CaseState) -> None:
        if state.case != case:
            raise ValueError(f"State of {state.case.name} saved as {case.name}")
        save_json_file(state.to_record(), self.path_for(case))
        LOGGER.debug(f"Saved {case.name} to {self.path_for(case)}")
