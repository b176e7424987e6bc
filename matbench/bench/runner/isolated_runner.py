from __future__ import annotations

import signal
import time
from collections import deque
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError
from torch import multiprocessing as mp

from matbench.data import BlockOutcome, BlockPlan, FailReason, load_json_file, save_json_file
from matbench.logging import get_logger

from .runner import Runner, RunnerFatalError
from .worker import OUT_OF_MEMORY_EXIT_CODE, worker_main

LOGGER = get_logger("IsolatedRunner")

_PLAN_FILE = "block_plan.json"
_RESULT_FILE = "block_result.json"
_LOG_TAIL_LINES = 40


def read_outcome(result_path: Union[str, Path], request_id: int) -> Optional[BlockOutcome]:
    """Read the outcome written by a worker.

    Returns None if there is no readable outcome or if it was produced for a different
    request, e.g. a result file left behind by an earlier run.
    """
    result_path = Path(result_path)
    if not result_path.exists():
        return None
    try:
        outcome = load_json_file(BlockOutcome, result_path)
    except (OSError, ValidationError) as e:
        LOGGER.warning(f"Unreadable worker result {result_path}: {e}")
        return None
    if outcome.request_id != request_id:
        LOGGER.warning(
            f"Discarding stale worker result: request id {outcome.request_id:x}, "
            f"expected {request_id:x}"
        )
        return None
    return outcome


def _log_tail(log_path: Path) -> str:
    try:
        with open(log_path, "r", encoding="utf-8", errors="replace") as f:
            return "".join(deque(f, maxlen=_LOG_TAIL_LINES))
    except OSError:
        return ""


class IsolatedRunner(Runner):
    """Runs every block in a freshly spawned worker process.

    A new process per block keeps a crashing, leaking or hanging implementation from
    affecting the controlling process and the blocks that follow. The worker and the
    controller exchange a plan file and a result file inside ``work_dir``.
    """

    def __init__(
        self,
        work_dir: Union[str, Path],
        enforce_memory_limit: bool = True,
        poll_interval: float = 0.05,
        kill_grace: float = 5.0,
    ) -> None:
        """Initialize the isolated runner.

        Parameters
        ----------
        work_dir : Union[str, Path]
            Directory for the plan, result and worker log files.
        enforce_memory_limit : bool, optional
            Apply the memory budget to the worker's address space, by default True.
        poll_interval : float, optional
            How often the worker is checked while waiting, by default 0.05 seconds.
        kill_grace : float, optional
            How long to wait for a killed worker to disappear, by default 5 seconds.
        """
        self._work_dir = Path(work_dir)
        self._work_dir.mkdir(parents=True, exist_ok=True)
        self._log_dir = self._work_dir / "worker_logs"
        self._enforce_memory_limit = enforce_memory_limit
        self._poll_interval = poll_interval
        self._kill_grace = kill_grace
        self._ctx = mp.get_context("spawn")

    @property
    def result_path(self) -> Path:
        return self._work_dir / _RESULT_FILE

    @property
    def plan_path(self) -> Path:
        return self._work_dir / _PLAN_FILE

    def run_block(
        self,
        plan: BlockPlan,
        num_trials: int,
        request_id: int,
        memory_mb: int,
        timeout: float,
    ) -> BlockOutcome:
        save_json_file(plan, self.plan_path)
        self.result_path.unlink(missing_ok=True)
        log_path = self._log_dir / (
            f"{plan.operation.value}_{plan.library}_{plan.size}_{request_id:016x}.log"
        )

        proc = self._ctx.Process(
            target=worker_main,
            args=(
                str(self.plan_path),
                num_trials,
                request_id,
                str(self.result_path),
                memory_mb if self._enforce_memory_limit else 0,
                str(log_path),
            ),
            daemon=True,
        )
        try:
            proc.start()
        except OSError as e:
            raise RunnerFatalError(f"Failed to start worker: {e}") from e

        outcome = None
        timed_out = False
        deadline = time.monotonic() + timeout
        try:
            while True:
                proc.join(self._poll_interval)
                if not proc.is_alive():
                    break
                outcome = read_outcome(self.result_path, request_id)
                if outcome is not None:
                    # Outcome is written, the process is only stuck on exit
                    break
                if time.monotonic() > deadline:
                    timed_out = True
                    break
        finally:
            if proc.is_alive():
                proc.kill()
                proc.join(self._kill_grace)

        if outcome is None:
            outcome = read_outcome(self.result_path, request_id)
        if outcome is None:
            outcome = self._synthesize_outcome(
                request_id, timed_out, proc.exitcode, timeout, log_path
            )
        elif outcome.succeeded or outcome.too_slow:
            log_path.unlink(missing_ok=True)
        return outcome

    @staticmethod
    def _synthesize_outcome(
        request_id: int,
        timed_out: bool,
        exitcode: Optional[int],
        timeout: float,
        log_path: Path,
    ) -> BlockOutcome:
        """Outcome of a worker that did not deliver one itself."""
        if timed_out:
            LOGGER.warning(f"Worker {request_id:x} froze, killed after {timeout:.1f}s")
            return BlockOutcome(
                request_id=request_id,
                failed=FailReason.FROZEN,
                detailed_error=f"No response within {timeout:.1f}s",
            )
        if exitcode in (OUT_OF_MEMORY_EXIT_CODE, -signal.SIGKILL):
            # SIGKILL that we did not send comes from the kernel's OOM killer
            LOGGER.warning(f"Worker {request_id:x} ran out of memory (exit code {exitcode})")
            return BlockOutcome(request_id=request_id, failed=FailReason.OUT_OF_MEMORY)

        LOGGER.warning(f"Worker {request_id:x} exited with code {exitcode} without a result")
        message = f"Worker exited with code {exitcode} without writing a result"
        tail = _log_tail(log_path)
        if tail:
            message += f"\n\nWorker log ({log_path}):\n{tail}"
        return BlockOutcome(
            request_id=request_id, failed=FailReason.MISC_EXCEPTION, detailed_error=message
        )
