"""Logging helpers shared by the controlling process and the workers."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Union

_ROOT_NAME = "matbench"
_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

SESSION_LOGGER_NAME = f"{_ROOT_NAME}.session"
"""Logger whose records end up in the per-run session log file."""


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the ``matbench`` logger or one of its children."""
    if not name:
        return logging.getLogger(_ROOT_NAME)
    if name.startswith(_ROOT_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stream handler to the ``matbench`` logger.

    Calling this more than once only updates the level.
    """
    if level.upper() not in _LEVELS:
        raise ValueError(f"Invalid log_level: {level}")

    logger = get_logger()
    logger.setLevel(getattr(logging, level.upper()))
    if not any(getattr(h, "_matbench_stream", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        handler._matbench_stream = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def open_session_log(
    output_dir: Union[str, Path], libs: Optional[Dict[str, str]] = None
) -> logging.FileHandler:
    """Open the append-only session log of a run.

    The log is the first ``log<N>.txt`` in ``output_dir`` that does not exist yet. The
    working directory and the module search path are written first so failures of a
    worker can be traced back to the environment it was started from.

    Parameters
    ----------
    output_dir : Union[str, Path]
        Directory where the benchmark results are written.
    libs : Optional[Dict[str, str]]
        Library versions to record.

    Returns
    -------
    logging.FileHandler
        The handler attached to the session logger. Pass it to ``close_session_log``.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for i in range(1000):
        path = output_dir / f"log{i}.txt"
        if not path.exists():
            break
    else:
        raise RuntimeError(f"No free session log name in {output_dir}")

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    session = logging.getLogger(SESSION_LOGGER_NAME)
    session.setLevel(logging.DEBUG)
    session.addHandler(handler)

    session.info("Current directory = %s", os.path.abspath(os.curdir))
    session.info("Python executable = %s", sys.executable)
    session.info("Module search path:")
    for entry in sys.path:
        session.info("  %s", entry)
    for name, version in (libs or {}).items():
        session.info("Library %s = %s", name, version)
    return handler


def close_session_log(handler: logging.FileHandler) -> None:
    logging.getLogger(SESSION_LOGGER_NAME).removeHandler(handler)
    handler.close()
