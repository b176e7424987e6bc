from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

DEFAULT_SIZES: List[int] = [2, 3, 4, 5, 10, 20, 50, 100, 200, 500, 1000, 2000]


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark sweeps.

    All fields have default values to make configuration optional.
    """

    seed: int = field(default=0xDEADBEEF)
    max_trials: int = field(default=5)  # trial ceiling per size
    block_trials: int = field(default=5)  # trials requested from one worker
    trial_time: float = field(default=1.0)
    max_trial_time: float = field(default=30.0)
    block_overhead_time: float = field(default=30.0)
    memory_base_mb: int = field(default=2048)
    memory_fixed_mb: int = field(default=0)  # > 0 disables the estimate and the retries
    memory_attempts: int = field(default=5)
    memory_step: int = field(default=1)
    enforce_memory_limit: bool = field(default=True)
    randomize_order: bool = field(default=True)
    sanity_check: bool = field(default=False)
    tolerance: float = field(default=1e-6)
    skip_larger_when_first_trial_too_slow: bool = field(default=False)
    sizes: List[int] = field(default_factory=lambda: list(DEFAULT_SIZES))
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = field(default="INFO")

    def __post_init__(self):
        if self.seed < 0:
            raise ValueError("seed must be >= 0")
        if self.max_trials <= 0:
            raise ValueError("max_trials must be > 0")
        if self.block_trials <= 0:
            raise ValueError("block_trials must be > 0")
        if self.trial_time <= 0 or self.max_trial_time <= 0:
            raise ValueError("trial_time/max_trial_time must be > 0")
        if self.max_trial_time < self.trial_time:
            raise ValueError("max_trial_time must be >= trial_time")
        if self.block_overhead_time < 0:
            raise ValueError("block_overhead_time must be >= 0")
        if self.memory_base_mb <= 0:
            raise ValueError("memory_base_mb must be > 0")
        if self.memory_fixed_mb < 0:
            raise ValueError("memory_fixed_mb must be >= 0")
        if self.memory_attempts <= 0:
            raise ValueError("memory_attempts must be > 0")
        if self.memory_step < 0:
            raise ValueError("memory_step must be >= 0")
        if self.tolerance <= 0:
            raise ValueError("tolerance must be > 0")
        if not self.sizes:
            raise ValueError("sizes must not be empty")
        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR"]:
            raise ValueError(f"Invalid log_level: {self.log_level}")

    def memory_multiplier(self, attempt: int) -> int:
        """Multiplier of the memory budget for the 0-based ``attempt``."""
        return 1 + self.memory_step * attempt

    def block_timeout(self, num_trials: int) -> float:
        """Wall-clock budget of a block running ``num_trials`` trials."""
        return num_trials * (self.max_trial_time + self.trial_time) + self.block_overhead_time
