import signal

import pytest

from matbench.bench.runner import IsolatedRunner, read_outcome
from matbench.bench.runner.worker import OUT_OF_MEMORY_EXIT_CODE
from matbench.data import (
    BlockOutcome,
    BlockPlan,
    FailReason,
    Measurement,
    Operation,
    save_json_file,
)


def make_plan(library="numpy", size=4):
    return BlockPlan(
        operation=Operation.ADD,
        library=library,
        size=size,
        seed=1,
        trial_time=0.001,
        max_trial_time=1.0,
    )


def test_read_outcome(tmp_path):
    path = tmp_path / "result.json"
    assert read_outcome(path, 5) is None

    expected = BlockOutcome(request_id=5, results=[Measurement(ops_per_sec=3.0, elapsed=0.1)])
    save_json_file(expected, path)
    assert read_outcome(path, 5) == expected
    # left over from another request
    assert read_outcome(path, 6) is None


def test_read_outcome_of_partial_file(tmp_path):
    path = tmp_path / "result.json"
    path.write_text('{"request_id": 5, "res')
    assert read_outcome(path, 5) is None


def test_synthesized_outcomes(tmp_path):
    log_path = tmp_path / "worker.log"
    frozen = IsolatedRunner._synthesize_outcome(1, True, None, 12.0, log_path)
    assert frozen.failed == FailReason.FROZEN
    assert frozen.request_id == 1

    for code in (OUT_OF_MEMORY_EXIT_CODE, -signal.SIGKILL):
        oom = IsolatedRunner._synthesize_outcome(2, False, code, 12.0, log_path)
        assert oom.failed == FailReason.OUT_OF_MEMORY

    log_path.write_text("noise\n" * 100 + "Segmentation fault\n")
    crash = IsolatedRunner._synthesize_outcome(3, False, -signal.SIGSEGV, 12.0, log_path)
    assert crash.failed == FailReason.MISC_EXCEPTION
    assert "Segmentation fault" in crash.detailed_error
    assert crash.detailed_error.count("noise") == 39


@pytest.mark.slow
def test_block_in_worker_process(tmp_path):
    runner = IsolatedRunner(tmp_path / "work")
    result = runner.run_block(make_plan(), 2, 0xABC, 1024, timeout=120.0)
    assert result.succeeded, result.detailed_error
    assert result.request_id == 0xABC
    assert len(result.results) == 2
    assert list((tmp_path / "work" / "worker_logs").glob("*.log")) == []


@pytest.mark.slow
def test_worker_failure_keeps_log(tmp_path):
    runner = IsolatedRunner(tmp_path / "work", enforce_memory_limit=False)
    result = runner.run_block(make_plan("no_such_library"), 1, 7, 0, timeout=120.0)
    assert result.failed == FailReason.MISC_EXCEPTION
    assert "Unknown library adapter" in result.detailed_error
    assert len(list((tmp_path / "work" / "worker_logs").glob("*.log"))) == 1


@pytest.mark.slow
def test_unresponsive_worker_is_killed(tmp_path):
    runner = IsolatedRunner(tmp_path / "work", enforce_memory_limit=False)
    result = runner.run_block(make_plan(), 1, 8, 0, timeout=0.01)
    assert result.failed == FailReason.FROZEN
