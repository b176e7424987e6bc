import os
import platform
import sys
from typing import Dict

import numpy as np


def redirect_stdio_to_file(log_path: str) -> None:
    """Point the process level stdout/stderr file descriptors at ``log_path``.

    Native libraries write straight to the descriptors, so replacing ``sys.stdout`` alone
    would not capture their output.
    """
    os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
    sys.stdout.flush()
    sys.stderr.flush()
    fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
    os.dup2(fd, 1)
    os.dup2(fd, 2)
    os.close(fd)
    sys.stdout = open(1, "w", encoding="utf-8", errors="replace", buffering=1, closefd=False)
    sys.stderr = open(2, "w", encoding="utf-8", errors="replace", buffering=1, closefd=False)


def hardware_name() -> str:
    # Best-effort CPU model
    try:
        with open("/proc/cpuinfo") as f:
            for line in f:
                if line.startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or platform.machine() or "CPU"


def env_snapshot() -> Dict[str, str]:
    """Versions of the interpreter and of the numeric libraries that can be imported."""
    libs: Dict[str, str] = {
        "python": platform.python_version(),
        "numpy": np.__version__,
        "hardware": hardware_name(),
    }
    try:
        import torch

        libs["torch"] = torch.__version__
    except ImportError:
        pass
    return libs


def split_seed(*parts: int) -> np.random.Generator:
    """Deterministic random stream seeded from several non-negative integers."""
    return np.random.default_rng([p & 0xFFFFFFFFFFFFFFFF for p in parts])
