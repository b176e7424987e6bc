"""
Timing utilities for measuring the throughput of one trial.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence, Tuple

from matbench.adapters import OperationFn

_MIN_ELAPSED = 1e-9
_MAX_GROWTH = 10.0


@dataclass
class TrialTiming:
    ops_per_sec: float
    elapsed: float
    """Wall time of the whole trial, calibration included."""
    cycles: int
    outputs: Tuple[Any, ...]


def measure_trial(
    op: OperationFn,
    inputs: Sequence[Any],
    trial_time: float,
    max_trial_time: float,
    clock: Callable[[], float] = time.perf_counter,
) -> TrialTiming:
    """Run ``op`` with a growing number of cycles until one run lasts ``trial_time``.

    The number of cycles grows by at most ``_MAX_GROWTH`` per step and never so far that
    the next run is projected to push the trial past ``max_trial_time``. The trial
    therefore only exceeds ``max_trial_time`` when single cycles are that slow.

    Parameters
    ----------
    op : OperationFn
        The operation to time.
    inputs : Sequence[Any]
        Wrapped inputs of the operation.
    trial_time : float
        Target duration in seconds of the final timed run.
    max_trial_time : float
        Per-trial ceiling in seconds.
    clock : Callable[[], float]
        Wall clock, replaceable in tests.

    Returns
    -------
    TrialTiming
        Throughput of the last timed run and wall time of the trial.
    """
    start = clock()
    cycles = 1
    while True:
        op_elapsed, outputs = op(inputs, cycles)
        op_elapsed = max(op_elapsed, _MIN_ELAPSED)
        wall = clock() - start
        if op_elapsed >= trial_time or wall > max_trial_time:
            break

        per_cycle = op_elapsed / cycles
        growth = min(trial_time / op_elapsed * 1.1, _MAX_GROWTH)
        next_cycles = max(cycles + 1, int(math.ceil(cycles * growth)))
        affordable = int((max_trial_time - wall) / per_cycle)
        if affordable <= cycles:
            break
        cycles = min(next_cycles, affordable)

    return TrialTiming(
        ops_per_sec=cycles / op_elapsed,
        elapsed=max(clock() - start, _MIN_ELAPSED),
        cycles=cycles,
        outputs=outputs,
    )
