from .in_process_runner import InProcessRunner
from .isolated_runner import IsolatedRunner, read_outcome
from .runner import Runner, RunnerError, RunnerFatalError

__all__ = [
    # General Runner
    "Runner",
    "RunnerError",
    "RunnerFatalError",
    # Specialized Runners
    "IsolatedRunner",
    "InProcessRunner",
    "read_outcome",
]
