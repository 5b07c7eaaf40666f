#!/usr/bin/env python3
"""
Count how many times a byte appears in a file, using parallel workers.

The number of worker processes comes from the ``P`` environment variable
(default 4) unless ``--workers`` is given. While the scan runs, Ctrl-C
prints how many workers are still scanning instead of stopping the program.

Examples:
  segscan input.txt result.txt a
  P=8 segscan big.log result.txt '\\n' --progress
  segscan input.txt result.txt a --delay 3   # then press Ctrl-C
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from segscan.config import ScanConfig, normalize_target_byte
from segscan.errors import ScanError
from segscan.io.source import read_source
from segscan.parallel.controller import ScanController
from segscan.pipeline.logger import setup_logger
from segscan.pipeline.report import (
    describe_byte,
    format_result_line,
    log_run_summary,
    print_run_summary,
    write_result,
)

logger = logging.getLogger(__name__)

__all__ = ["build_parser", "main"]

_ESCAPES = {"\\n": "\n", "\\t": "\t", "\\r": "\r", "\\0": "\0"}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="segscan",
        description="Count occurrences of a single character in a file with parallel workers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:" + __doc__.split("Examples:", 1)[1],
    )
    ap.add_argument("input", type=Path, help="File to scan")
    ap.add_argument("output", type=Path, help="File that receives the result line")
    ap.add_argument("char", help=r"Character to count (single byte; \n, \t, \r, \0 accepted)")
    ap.add_argument("--workers", "-p", type=int, default=None,
                    help="Worker processes (overrides $P; default 4)")
    ap.add_argument("--timeout", type=float, default=None,
                    help="Seconds to wait for each worker's result (default 5)")
    ap.add_argument("--delay", type=float, default=None,
                    help="Seconds each worker sleeps before scanning")
    ap.add_argument("--log-dir", type=Path, default=None,
                    help="Write a timestamped log file to this directory")
    ap.add_argument("--progress", action="store_true", help="Show a progress bar")
    ap.add_argument("--quiet", "-q", action="store_true", help="Only print errors")
    return ap


def _parse_char(raw: str) -> int:
    return normalize_target_byte(_ESCAPES.get(raw, raw))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.log_dir is not None:
        setup_logger(args.log_dir, run_name=args.input.stem, force=True)

    try:
        target = _parse_char(args.char)
        data = read_source(args.input)
        config = ScanConfig.from_env(
            num_workers=args.workers,
            channel_timeout_s=args.timeout,
            worker_delay_s=args.delay,
            show_progress=args.progress or None,
        )

        summary = dict(
            input_path=args.input,
            output_path=args.output,
            size_bytes=len(data),
            target_byte=target,
            workers=config.num_workers,
            timeout_s=config.channel_timeout_s,
            start_time=datetime.now(),
            worker_delay_s=config.worker_delay_s,
        )
        log_run_summary(**summary)
        if not args.quiet:
            print_run_summary(**summary)

        result = ScanController(data, target, config).run()

        if result.lost_segments and not args.quiet:
            print(
                f"Warning: {len(result.lost_segments)} worker(s) exited without a result "
                f"(segments {result.lost_segments}); the total may be low",
                file=sys.stderr,
            )

        write_result(args.output, format_result_line(target, result.total, args.input))
    except ScanError as exc:
        logger.error("Scan failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        logger.error("Cannot write result: %s", exc)
        print(f"Error: cannot write {args.output}: {exc}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(
            f"Counted {result.total:,} occurrence(s) of '{describe_byte(target)}' "
            f"in {result.elapsed_s:.2f}s. Result written to {args.output}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
