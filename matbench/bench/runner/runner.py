"""Abstract base class and common types for block runners."""

from __future__ import annotations

from abc import ABC, abstractmethod

from matbench.data import BlockOutcome, BlockPlan


class RunnerError(RuntimeError): ...


class RunnerFatalError(RunnerError): ...


class Runner(ABC):
    @abstractmethod
    def run_block(
        self,
        plan: BlockPlan,
        num_trials: int,
        request_id: int,
        memory_mb: int,
        timeout: float,
    ) -> BlockOutcome:
        """Run one block and return its outcome.

        Parameters
        ----------
        plan : BlockPlan
            What to benchmark.
        num_trials : int
            Maximum number of trials in the block.
        request_id : int
            Identifier the outcome must echo.
        memory_mb : int
            Memory budget of the block in megabytes.
        timeout : float
            Wall-clock budget of the block in seconds.

        Returns
        -------
        BlockOutcome
            The outcome, tagged with ``request_id``.
        """
        ...

    def close(self) -> None:
        """Release all resources and terminate worker processes."""
