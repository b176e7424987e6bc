import pytest

from conftest import make_case, outcome

from matbench.bench import Benchmark, BenchmarkConfig
from matbench.data import FailReason, Operation


@pytest.fixture
def config():
    return BenchmarkConfig(memory_base_mb=100, max_trials=5, block_trials=5)


def test_sweep_of_one_case(tmp_path, config, scripted_runner):
    runner = scripted_runner([(None, 5), (None, 3), (None, 2), (FailReason.TOO_SLOW, 1)])
    case = make_case(sizes=(10, 50, 100))
    records = Benchmark([case], tmp_path, config, runner=runner).run_all()

    record = records[case.name]
    assert record.complete
    assert record.failed is None
    assert [m.num_samples for m in record.metrics] == [5, 5, 1]
    assert [(c.plan.size, c.num_trials) for c in runner.calls] == [
        (10, 5),
        (50, 5),
        (50, 2),
        (100, 5),
    ]
    assert runner.closed
    assert (tmp_path / "mult_numpy.json").exists()
    log = (tmp_path / "log0.txt").read_text()
    assert "Case was too slow" in log
    assert "Total processing time" in log


def test_interrupted_case_resumes_in_next_run(tmp_path, config, scripted_runner):
    case = make_case(sizes=(10, 50, 100))
    first = scripted_runner([(None, 5), (None, 3), (FailReason.FROZEN, 0)])
    records = Benchmark([case], tmp_path, config, runner=first).run_all()
    assert not records[case.name].complete
    assert records[case.name].failed == FailReason.FROZEN

    second = scripted_runner([(None, 2), (None, 5)])
    records = Benchmark([case], tmp_path, config, runner=second).run_all()
    assert [(c.plan.size, c.num_trials) for c in second.calls] == [(50, 2), (100, 5)]
    assert records[case.name].complete
    assert [m.num_samples for m in records[case.name].metrics] == [5, 5, 5]
    assert "RESUMING OLD RESULTS" in (tmp_path / "log1.txt").read_text()


def test_completed_case_is_skipped(tmp_path, config, scripted_runner):
    case = make_case(sizes=(10,))
    Benchmark([case], tmp_path, config, runner=scripted_runner([(None, 5)])).run_all()

    runner = scripted_runner([])
    records = Benchmark([case], tmp_path, config, runner=runner).run_all()
    assert records == {}
    assert runner.calls == []
    assert "SKIPPING" in (tmp_path / "log1.txt").read_text()


def test_out_of_memory_case_is_not_resumed(tmp_path, scripted_runner):
    config = BenchmarkConfig(memory_base_mb=100, memory_attempts=2)
    case = make_case(sizes=(10, 50))
    oom = (FailReason.OUT_OF_MEMORY, 0)
    runner = scripted_runner([(None, 5), oom, oom])
    records = Benchmark([case], tmp_path, config, runner=runner).run_all()
    record = records[case.name]
    assert record.complete
    assert record.failed == FailReason.OUT_OF_MEMORY
    assert record.metrics[1] is None

    runner = scripted_runner([])
    Benchmark([case], tmp_path, config, runner=runner).run_all()
    assert runner.calls == []


def test_failing_case_does_not_stop_others(tmp_path, scripted_runner):
    config = BenchmarkConfig(memory_base_mb=100, randomize_order=False)
    broken = make_case(sizes=(10,), operation=Operation.ADD)
    good = make_case(sizes=(10,), operation=Operation.SCALE)
    runner = scripted_runner([(FailReason.MISC_EXCEPTION, 0), (None, 5)])
    records = Benchmark([broken, good], tmp_path, config, runner=runner).run_all()
    assert records[broken.name].failed == FailReason.MISC_EXCEPTION
    assert not records[broken.name].complete
    assert records[good.name].complete


def test_fixed_order_runs_cases_one_after_another(tmp_path, scripted_runner):
    config = BenchmarkConfig(memory_base_mb=100, randomize_order=False)
    cases = [make_case(sizes=(10, 20), operation=op) for op in (Operation.ADD, Operation.DET)]
    runner = scripted_runner([(None, 5)] * 4)
    Benchmark(cases, tmp_path, config, runner=runner).run_all()
    assert [(c.plan.operation, c.plan.size) for c in runner.calls] == [
        (Operation.ADD, 10),
        (Operation.ADD, 20),
        (Operation.DET, 10),
        (Operation.DET, 20),
    ]


def test_random_order_is_reproducible(tmp_path, scripted_runner):
    ops = [Operation.ADD, Operation.SCALE, Operation.MULT, Operation.DET, Operation.QR]
    cases = [make_case(sizes=(10, 20), operation=op) for op in ops]

    orders = []
    for run in range(2):
        config = BenchmarkConfig(memory_base_mb=100, seed=1234)
        runner = scripted_runner([(None, 5)] * 10)
        Benchmark(cases, tmp_path / str(run), config, runner=runner).run_all()
        orders.append([(c.plan.operation, c.plan.size) for c in runner.calls])
        # sizes of a case are still run in increasing order
        for op in ops:
            assert [size for o, size in orders[-1] if o == op] == [10, 20]
    assert orders[0] == orders[1]


def test_records_are_saved_after_every_block(tmp_path, config, scripted_runner):
    case = make_case(sizes=(10, 50))
    seen = []

    def check_saved(call):
        if bench.store.path_for(case).exists():
            seen.append(bench.store.load_record(case).metric_count())
        else:
            seen.append(None)
        return outcome(num_results=5, request_id=call.request_id)

    bench = Benchmark([case], tmp_path, config, runner=scripted_runner([check_saved] * 2))
    bench.run_all()
    assert seen == [None, 1]


def test_runner_is_closed_on_error(tmp_path, config, scripted_runner):
    runner = scripted_runner([])
    with pytest.raises(AssertionError):
        Benchmark([make_case()], tmp_path, config, runner=runner).run_all()
    assert runner.closed
