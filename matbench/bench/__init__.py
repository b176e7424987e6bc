from .benchmark import Benchmark
from .case_state import CaseState
from .cases import create_cases
from .config import BenchmarkConfig
from .dispatcher import BlockDispatcher
from .runner import InProcessRunner, IsolatedRunner, Runner, RunnerError, RunnerFatalError
from .store import ResumableStore, StoreError, resume_state

__all__ = [
    "Benchmark",
    "BenchmarkConfig",
    "BlockDispatcher",
    "CaseState",
    "create_cases",
    "InProcessRunner",
    "IsolatedRunner",
    "ResumableStore",
    "resume_state",
    "Runner",
    "RunnerError",
    "RunnerFatalError",
    "StoreError",
]
