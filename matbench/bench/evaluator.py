"""Worker side evaluation loop: runs the trials of one block and reports a typed outcome."""

from __future__ import annotations

import traceback
from typing import List, Optional

from matbench.adapters import AdapterError, get_registry
from matbench.data import BlockOutcome, BlockPlan, FailReason, Measurement, OutputError
from matbench.logging import get_logger
from matbench.utils import split_seed

from .generators import get_generator
from .timing import measure_trial

LOGGER = get_logger("Evaluator")


class IncorrectOutputError(RuntimeError):
    """Raised when a trial's output fails validation."""

    def __init__(self, error: OutputError, trial: int) -> None:
        super().__init__(f"Output check failed on trial {trial}: {error.value}")
        self.error = error
        self.trial = trial


def _is_out_of_memory(exc: BaseException) -> bool:
    if isinstance(exc, MemoryError):
        return True
    # torch's CPU allocator raises RuntimeError instead of MemoryError
    msg = str(exc).lower()
    return isinstance(exc, RuntimeError) and (
        "can't allocate memory" in msg or "out of memory" in msg
    )


def evaluation_loop(plan: BlockPlan, num_trials: int, request_id: int) -> BlockOutcome:
    """Run up to ``num_trials`` trials of the plan.

    Every trial gets freshly generated inputs from a random stream seeded by the plan's
    seed, the request id and the size. The loop stops as soon as one trial takes longer
    than ``plan.max_trial_time``; that trial is still part of the results.

    Raises
    ------
    AdapterError
        If the library or the operation is unknown.
    IncorrectOutputError
        If validation is enabled and a trial's output is wrong.
    """
    adapter = get_registry().get(plan.library)
    op = adapter.operation(plan.operation)
    if op is None:
        raise AdapterError(f"{plan.library} does not implement {plan.operation.value}")
    generator = get_generator(plan.operation)
    rng = split_seed(plan.seed, request_id, plan.size)

    results: List[Measurement] = []
    failed: Optional[FailReason] = None
    for trial in range(num_trials):
        arrays = generator.create_inputs(rng, plan.size)
        inputs = [adapter.wrap(a) for a in arrays]

        timing = measure_trial(op, inputs, plan.trial_time, plan.max_trial_time)
        results.append(Measurement(ops_per_sec=timing.ops_per_sec, elapsed=timing.elapsed))
        LOGGER.debug(
            f"Trial {trial}: {timing.ops_per_sec:.3f} ops/sec, {timing.cycles} cycles, "
            f"{timing.elapsed:.3f}s"
        )

        if plan.sanity_check:
            outputs = [None if o is None else adapter.unwrap(o) for o in timing.outputs]
            error = generator.check_results(arrays, outputs, plan.tolerance)
            if error != OutputError.NO_ERROR:
                raise IncorrectOutputError(error, trial)

        if timing.elapsed > plan.max_trial_time:
            LOGGER.info(f"Single trial too long: {timing.elapsed:.3f}s")
            failed = FailReason.TOO_SLOW
            break

    return BlockOutcome(request_id=request_id, failed=failed, results=results)


def execute_block(plan: BlockPlan, num_trials: int, request_id: int) -> BlockOutcome:
    """Run a block and convert every fault into a failure outcome."""
    try:
        return evaluation_loop(plan, num_trials, request_id)
    except Exception as e:
        if _is_out_of_memory(e):
            return BlockOutcome(request_id=request_id, failed=FailReason.OUT_OF_MEMORY)
        return BlockOutcome(
            request_id=request_id,
            failed=FailReason.MISC_EXCEPTION,
            detailed_error=f"{type(e).__name__}: {e}\n{traceback.format_exc()}",
        )
