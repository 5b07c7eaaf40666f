# segscan/pipeline/report.py
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Union

from segscan.utilities.display import format_banner, format_bytes

logger = logging.getLogger(__name__)

__all__ = [
    "describe_byte",
    "format_result_line",
    "write_result",
    "format_run_summary",
    "print_run_summary",
    "log_run_summary",
]


def _abbrev(s: str, width: int = 60) -> str:
    """Return s truncated with an ellipsis if it exceeds width."""
    return s if len(s) <= width else (s[: max(0, width - 1)] + "…")


def describe_byte(value: int) -> str:
    """Printable form of a byte: the character itself, or an escape."""
    ch = chr(value)
    if value < 128 and ch.isprintable():
        return ch
    return f"\\x{value:02x}"


def format_result_line(target_byte: int, total: int, input_path: Union[str, Path]) -> str:
    """
    Build the single result line written to the output file.

    Example:
        >>> format_result_line(ord("a"), 5, "in.txt")
        "The character 'a' appears 5 times in file in.txt.\\n"
    """
    return (
        f"The character '{describe_byte(target_byte)}' appears {total} times "
        f"in file {input_path}.\n"
    )


def write_result(output_path: Union[str, Path], line: str) -> Path:
    """Create or truncate ``output_path`` and write ``line`` to it."""
    p = Path(output_path).expanduser()
    p.write_text(line, encoding="utf-8")
    logger.info("Result written to %s", p)
    return p


def format_run_summary(
    *,
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    size_bytes: int,
    target_byte: int,
    workers: int,
    timeout_s: float,
    start_time: datetime,
    worker_delay_s: float = 0.0,
    color: bool = True,
) -> str:
    """
    Build a formatted, human-readable summary of the planned run.
    """
    heading = f"Start Time: {start_time:%Y-%m-%d %H:%M:%S}"
    if color:
        heading = f"\033[31m{heading}\033[0m"

    lines = [
        format_banner("PARALLEL BYTE SCAN", style="━"),
        heading,
        "\033[4mScan Configuration\033[0m" if color else "Scan Configuration",
        f"Input file:                 {_abbrev(str(input_path))}",
        f"Output file:                {_abbrev(str(output_path))}",
        f"Input size:                 {format_bytes(size_bytes)} ({size_bytes:,} bytes)",
        f"Target byte:                '{describe_byte(target_byte)}' (0x{target_byte:02x})",
        f"Worker processes:           {workers}",
        f"Channel timeout:            {timeout_s:g}s",
    ]

    if worker_delay_s > 0:
        lines.append(f"Worker start delay:         {worker_delay_s:g}s")

    return "\n".join(lines) + "\n"


def print_run_summary(**kwargs) -> None:
    """Print the run summary to stdout (CLI usage)."""
    print(format_run_summary(**kwargs), end="", flush=True)


def log_run_summary(*, color: bool = False, **kwargs) -> None:
    """Log the run summary at INFO level."""
    summary = format_run_summary(color=color, **kwargs)
    for line in summary.rstrip("\n").splitlines():
        logger.info(line)
