# segscan/pipeline/logger.py
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

__all__ = ["setup_logger", "LOG_FORMAT"]

# Forked workers inherit the file handler; processName tells their lines apart
LOG_FORMAT = "%(asctime)s %(levelname)s [%(processName)s] %(name)s: %(message)s"


def setup_logger(
        log_dir: Union[str, Path],
        *,
        run_name: Optional[str] = None,
        force: bool = False,
) -> Path:
    """
    Send root logging at INFO to a fresh, timestamped file in ``log_dir``.

    A path with a suffix (``logs/run.log``) or an existing file is taken to
    mean its parent directory.

    Args:
        log_dir: Directory for the log file (created if missing)
        run_name: Added to the filename, e.g. the input file's stem
        force: Remove existing root handlers first

    Returns:
        Path to the log file
    """
    p = Path(log_dir).expanduser()
    directory = p if (p.is_dir() or (not p.exists() and not p.suffix)) else p.parent
    directory.mkdir(parents=True, exist_ok=True)

    stem = "segscan" if not run_name else f"segscan_{run_name}"
    log_path = directory / f"{stem}_{datetime.now():%Y%m%d_%H%M%S}.log"

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    root.setLevel(logging.INFO)

    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    root.info("Logging to: %s", log_path)
    return log_path
