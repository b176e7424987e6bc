"""Entry point of the isolated worker process."""

from __future__ import annotations

import os
import sys
import traceback

from pydantic import ValidationError

from matbench.bench.evaluator import execute_block
from matbench.data import BlockOutcome, BlockPlan, FailReason, load_json_file, save_json_file
from matbench.logging import configure_logging, get_logger
from matbench.utils import redirect_stdio_to_file

OUT_OF_MEMORY_EXIT_CODE = 3
"""Exit code of a worker that ran out of memory before it could write an outcome."""


def _address_space_bytes() -> int:
    import resource

    try:
        with open("/proc/self/statm") as f:
            return int(f.read().split()[0]) * resource.getpagesize()
    except (OSError, ValueError, IndexError):
        return 0


def limit_memory(memory_mb: int) -> None:
    """Allow the current process ``memory_mb`` megabytes on top of what it already maps.

    The interpreter and the imported libraries are not part of the budget.
    """
    import resource

    limit = _address_space_bytes() + memory_mb * 1024 * 1024
    _, hard = resource.getrlimit(resource.RLIMIT_AS)
    if hard != resource.RLIM_INFINITY:
        limit = min(limit, hard)
    resource.setrlimit(resource.RLIMIT_AS, (limit, hard))


def worker_main(
    plan_path: str,
    num_trials: int,
    request_id: int,
    result_path: str,
    memory_mb: int,
    log_path: str,
) -> None:
    """Worker process: run one block and write its outcome to ``result_path``.

    The process always ends with ``os._exit`` once the outcome is written. A library may
    leave non-daemon threads behind, and a normal interpreter shutdown would wait for
    them forever.

    Parameters
    ----------
    plan_path : str
        Path of the serialized :class:`BlockPlan`.
    num_trials : int
        Number of trials to run.
    request_id : int
        Identifier echoed in the outcome.
    result_path : str
        Where the serialized :class:`BlockOutcome` is written.
    memory_mb : int
        Address space limit in megabytes, 0 for no limit.
    log_path : str
        File receiving the worker's stdout and stderr.
    """
    exit_code = 0
    try:
        redirect_stdio_to_file(log_path)
        configure_logging("DEBUG")
        logger = get_logger(f"Worker_{request_id:x}")
        if memory_mb > 0:
            limit_memory(memory_mb)

        try:
            plan = load_json_file(BlockPlan, plan_path)
        except (OSError, ValidationError) as e:
            logger.error(f"Can't deserialize input: {e}")
            outcome = BlockOutcome(
                request_id=request_id, failed=FailReason.READ_CONFIG_FILE, detailed_error=str(e)
            )
        else:
            logger.info(
                f"Running {num_trials} trials of {plan.operation.value} on {plan.library} "
                f"at size {plan.size} with {memory_mb} MB"
            )
            outcome = execute_block(plan, num_trials, request_id)

        save_json_file(outcome, result_path)
        logger.info(f"Worker done: failed={outcome.failed}, trials={len(outcome.results)}")
    except MemoryError:
        exit_code = OUT_OF_MEMORY_EXIT_CODE
    except Exception:
        traceback.print_exc()
        exit_code = 1
    finally:
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(exit_code)
