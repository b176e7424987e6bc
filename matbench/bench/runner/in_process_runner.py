from __future__ import annotations

from matbench.bench.evaluator import execute_block
from matbench.data import BlockOutcome, BlockPlan
from matbench.logging import get_logger

from .runner import Runner

LOGGER = get_logger("InProcessRunner")


class InProcessRunner(Runner):
    """Runs blocks inside the controlling process.

    Meant for debugging adapters: there is no isolation, so the memory budget and the
    timeout are not enforced and a crashing implementation takes the sweep down with it.
    """

    def run_block(
        self,
        plan: BlockPlan,
        num_trials: int,
        request_id: int,
        memory_mb: int,
        timeout: float,
    ) -> BlockOutcome:
        LOGGER.debug(
            f"Running block {request_id:x} in process, ignoring memory={memory_mb}MB "
            f"timeout={timeout:.1f}s"
        )
        return execute_block(plan, num_trials, request_id)
