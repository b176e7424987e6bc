import argparse
import math
from pathlib import Path
from typing import List, Optional

from matbench.adapters import get_registry
from matbench.bench import Benchmark, BenchmarkConfig, InProcessRunner, create_cases
from matbench.data import Operation, PersistedCaseRecord, load_json_file


def run(args: argparse.Namespace):
    config = BenchmarkConfig(
        seed=args.seed,
        max_trials=args.max_trials,
        block_trials=args.block_trials,
        trial_time=args.trial_time,
        max_trial_time=args.max_trial_time,
        memory_base_mb=args.memory_base_mb,
        memory_fixed_mb=args.memory_fixed_mb,
        randomize_order=not args.fixed_order,
        sanity_check=args.sanity_check,
        sizes=args.sizes,
        log_level=args.log_level,
    )
    operations = [Operation(op) for op in args.operations] if args.operations else None
    cases = create_cases(args.libraries, config, operations)
    if not cases:
        print("Nothing to benchmark.")
        return
    runner = InProcessRunner() if args.no_spawn else None
    Benchmark(cases, args.output, config, runner=runner).run_all()


def _load_records(output: Path) -> List[PersistedCaseRecord]:
    records = []
    for path in sorted(output.glob("*.json")):
        records.append(load_json_file(PersistedCaseRecord, path))
    return records


def summary(args: argparse.Namespace):
    records = _load_records(Path(args.output))
    if not records:
        print(f"No results found in {args.output}.")
        return
    for record in records:
        status = "complete" if record.complete else "incomplete"
        if record.failed is not None:
            status += f", failed: {record.failed.value}"
        print(f"{record.operation.value} [{record.library}] ({status})")
        for size, ops in zip(record.sizes, record.best_ops_per_sec()):
            if math.isnan(ops):
                continue
            print(f"  size {size:>6}: {ops:14.3f} ops/sec")


def cli():
    parser = argparse.ArgumentParser(
        description="matbench: runtime benchmarks of matrix libraries across problem sizes"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run or resume a benchmark sweep")
    run_parser.add_argument("--output", type=Path, required=True, help="Result directory")
    run_parser.add_argument(
        "--libraries",
        nargs="+",
        default=None,
        help=f"Libraries to benchmark, default: {' '.join(get_registry().available())}",
    )
    run_parser.add_argument(
        "--operations", nargs="+", choices=[op.value for op in Operation], default=None
    )
    run_parser.add_argument("--sizes", nargs="+", type=int, default=BenchmarkConfig().sizes)
    run_parser.add_argument("--seed", type=int, default=0xDEADBEEF)
    run_parser.add_argument("--max-trials", type=int, default=5)
    run_parser.add_argument("--block-trials", type=int, default=5)
    run_parser.add_argument("--trial-time", type=float, default=1.0)
    run_parser.add_argument("--max-trial-time", type=float, default=30.0)
    run_parser.add_argument("--memory-base-mb", type=int, default=2048)
    run_parser.add_argument(
        "--memory-fixed-mb", type=int, default=0, help="Fixed worker memory, disables retries"
    )
    run_parser.add_argument("--fixed-order", action="store_true", help="Do not shuffle cases")
    run_parser.add_argument("--sanity-check", action="store_true", help="Validate outputs")
    run_parser.add_argument(
        "--no-spawn", action="store_true", help="Run blocks in this process (debugging)"
    )
    run_parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="INFO"
    )
    run_parser.set_defaults(func=run)

    summary_parser = subparsers.add_parser("summary", help="Print saved results")
    summary_parser.add_argument("--output", type=Path, required=True, help="Result directory")
    summary_parser.set_defaults(func=summary)

    return parser


def main(argv: Optional[List[str]] = None):
    args = cli().parse_args(argv)
    if getattr(args, "libraries", "unset") is None:
        args.libraries = get_registry().available()
    args.func(args)


if __name__ == "__main__":
    main()
