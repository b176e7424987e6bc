"""Dispatches blocks to a runner, sizing the memory budget and retrying on exhaustion."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Optional

from matbench.data import BenchmarkCase, BlockOutcome, BlockPlan, FailReason
from matbench.logging import SESSION_LOGGER_NAME, get_logger

from .config import BenchmarkConfig
from .generators import get_generator
from .runner import Runner

LOGGER = get_logger("BlockDispatcher")

_MB = 1024 * 1024


def new_request_id() -> int:
    """Random 64-bit request identifier."""
    return uuid.uuid4().int >> 64


class BlockDispatcher:
    """Runs one block of a case and interprets the outcome.

    The memory budget of a block is the estimated input footprint plus a fixed base, but
    never less than the largest budget an earlier block of this run needed. When a worker
    runs out of memory the block is retried with the budget multiplied by
    ``config.memory_multiplier(attempt)``. After ``config.memory_attempts`` failed attempts
    the out-of-memory outcome is returned and the case is given up.
    """

    def __init__(
        self,
        runner: Runner,
        config: BenchmarkConfig,
        request_ids: Callable[[], int] = new_request_id,
        session_log: Optional[logging.Logger] = None,
    ) -> None:
        self._runner = runner
        self._config = config
        self._request_ids = request_ids
        self._session = session_log or logging.getLogger(SESSION_LOGGER_NAME)
        self._max_memory_mb = 0

    @property
    def max_memory_mb(self) -> int:
        """Largest budget a block of this run completed with."""
        return self._max_memory_mb

    def estimate_memory_mb(self, case: BenchmarkCase, size_index: int) -> int:
        footprint = get_generator(case.operation).required_memory(case.sizes[size_index])
        return footprint // _MB + self._config.memory_base_mb

    def make_plan(self, case: BenchmarkCase, size_index: int) -> BlockPlan:
        return BlockPlan(
            operation=case.operation,
            library=case.library,
            size=case.sizes[size_index],
            seed=self._config.seed,
            trial_time=self._config.trial_time,
            max_trial_time=self._config.max_trial_time,
            sanity_check=self._config.sanity_check,
            tolerance=self._config.tolerance,
        )

    def run_block(
        self, case: BenchmarkCase, size_index: int, trials_collected: int
    ) -> BlockOutcome:
        """Run one block of ``case`` at ``case.sizes[size_index]``.

        Parameters
        ----------
        case : BenchmarkCase
            The case to advance.
        size_index : int
            Index of the size to run.
        trials_collected : int
            Trials already collected for that size; the block asks for at most the rest.

        Returns
        -------
        BlockOutcome
            Outcome of the last attempt, with ``memory_mb`` set to its budget.
        """
        if not 0 <= size_index < len(case.sizes):
            raise IndexError(f"size_index {size_index} out of range for {case.name}")
        remaining = case.max_trials - trials_collected
        if remaining <= 0:
            raise ValueError(f"{case.name} already has {trials_collected} trials at this size")

        num_trials = min(self._config.block_trials, remaining)
        plan = self.make_plan(case, size_index)

        if self._config.memory_fixed_mb > 0:
            return self._call(case, plan, num_trials, self._config.memory_fixed_mb)

        estimate = self.estimate_memory_mb(case, size_index)
        outcome = None
        for attempt in range(self._config.memory_attempts):
            memory = max(estimate, self._max_memory_mb) * self._config.memory_multiplier(attempt)
            outcome = self._call(case, plan, num_trials, memory)

            if outcome.failed != FailReason.OUT_OF_MEMORY:
                if not outcome.is_fatal():
                    self._max_memory_mb = max(self._max_memory_mb, memory)
                return outcome

            LOGGER.warning(f"Not enough memory given to worker. Attempt {attempt}")
            self._session.warning(
                "Not enough memory for op. Attempt num %d op name = %s library = %s "
                "matrix size = %d memory = %d mb",
                attempt,
                case.operation.value,
                case.library,
                plan.size,
                memory,
            )

        self._session.error(
            "Case failed since not enough memory could be allocated: op = %s library = %s "
            "matrix size = %d memory = %d mb",
            case.operation.value,
            case.library,
            plan.size,
            outcome.memory_mb,
        )
        return outcome

    def _call(
        self, case: BenchmarkCase, plan: BlockPlan, num_trials: int, memory_mb: int
    ) -> BlockOutcome:
        request_id = self._request_ids()
        timeout = self._config.block_timeout(num_trials)

        start = time.monotonic()
        outcome = self._runner.run_block(plan, num_trials, request_id, memory_mb, timeout)
        duration = time.monotonic() - start

        if outcome.request_id != request_id:
            LOGGER.error(
                f"Discarding outcome of request {outcome.request_id:x}, expected {request_id:x}"
            )
            outcome = BlockOutcome(
                request_id=request_id,
                failed=FailReason.MISC_EXCEPTION,
                detailed_error=f"Stale outcome with request id {outcome.request_id:x}",
            )
        outcome = outcome.model_copy(update={"memory_mb": memory_mb})

        if outcome.too_slow:
            self._session.info(
                "Case was too slow: op = %s library = %s matrix size = %d memory = %d mb",
                case.operation.value,
                case.library,
                plan.size,
                memory_mb,
            )
        elif outcome.failed is not None and outcome.failed != FailReason.OUT_OF_MEMORY:
            self._session.error(
                "Case failed: reason = %s op = %s library = %s matrix size = %d memory = %d mb "
                "duration = %.1f s",
                outcome.failed.value,
                case.operation.value,
                case.library,
                plan.size,
                memory_mb,
                duration,
            )
            if outcome.detailed_error:
                self._session.error(outcome.detailed_error)
        return outcome
