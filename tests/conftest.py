from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

import pytest

from matbench.adapters import AdapterRegistry
from matbench.bench.runner import Runner
from matbench.data import BenchmarkCase, BlockOutcome, BlockPlan, FailReason, Measurement, Operation


def _torch_available() -> bool:
    """Check if PyTorch can be imported.

    Returns
    -------
    bool
        True if PyTorch is importable, False otherwise.
    """
    try:
        import torch  # noqa: F401

        return True
    except ImportError:
        return False


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    """Skip tests that require PyTorch when it is not installed."""
    if _torch_available():
        return

    skip_torch = pytest.mark.skip(reason="PyTorch not available, skip test")
    for item in items:
        if any(item.iter_markers(name="requires_torch")):
            item.add_marker(skip_torch)


@pytest.fixture
def fresh_registry(monkeypatch: pytest.MonkeyPatch) -> AdapterRegistry:
    """Isolated adapter registry so tests can register fake adapters."""
    monkeypatch.setattr(AdapterRegistry, "_instance", None)
    return AdapterRegistry.get_instance()


FAST = Measurement(ops_per_sec=100.0, elapsed=0.01)
SLOW = Measurement(ops_per_sec=0.01, elapsed=100.0)


def make_case(
    sizes: Sequence[int] = (10, 50, 100),
    max_trials: int = 5,
    operation: Operation = Operation.MULT,
    library: str = "numpy",
) -> BenchmarkCase:
    return BenchmarkCase(
        operation=operation, library=library, sizes=list(sizes), max_trials=max_trials
    )


def outcome(
    failed: Optional[FailReason] = None,
    num_results: int = 0,
    request_id: int = 1,
    memory_mb: int = 0,
    slow_last: bool = False,
) -> BlockOutcome:
    results = [FAST] * num_results
    if slow_last and results:
        results[-1] = SLOW
    return BlockOutcome(
        request_id=request_id, failed=failed, results=results, memory_mb=memory_mb
    )


@dataclass
class RunnerCall:
    plan: BlockPlan
    num_trials: int
    request_id: int
    memory_mb: int
    timeout: float


ScriptItem = Union[Tuple[Optional[FailReason], int], Callable[[RunnerCall], BlockOutcome]]


class ScriptedRunner(Runner):
    """Runner returning pre-programmed outcomes.

    Each script item is either ``(failed, num_results)`` or a callable receiving the call
    and returning a full outcome. A too slow item gets a slow last measurement.
    """

    def __init__(self, script: Sequence[ScriptItem]) -> None:
        self.script = list(script)
        self.calls: List[RunnerCall] = []
        self.closed = False

    def run_block(self, plan, num_trials, request_id, memory_mb, timeout):
        call = RunnerCall(plan, num_trials, request_id, memory_mb, timeout)
        self.calls.append(call)
        if not self.script:
            raise AssertionError(f"Unexpected block for {plan.operation.value} size {plan.size}")
        item = self.script.pop(0)
        if callable(item):
            return item(call)
        failed, n = item
        return outcome(
            failed=failed,
            num_results=n,
            request_id=request_id,
            slow_last=failed == FailReason.TOO_SLOW,
        )

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_runner() -> Callable[[Sequence[ScriptItem]], ScriptedRunner]:
    return ScriptedRunner
