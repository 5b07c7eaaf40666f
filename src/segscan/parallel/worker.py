# parallel/worker.py
"""Worker process that counts one byte value in one segment."""

from __future__ import annotations

import logging
import os
import signal
import sys
import time

import numpy as np
from setproctitle import setproctitle

from segscan.parallel.channel import ResultChannel
from segscan.parallel.types import Segment

logger = logging.getLogger(__name__)

__all__ = ["count_byte", "worker_process"]


def count_byte(view, target_byte: int) -> int:
    """
    Count occurrences of ``target_byte`` in a bytes-like object.

    Args:
        view: Any object exposing the buffer protocol (bytes, memoryview, ...)
        target_byte: Byte value in 0..255

    Returns:
        Number of matching bytes (0 for an empty view)
    """
    if len(view) == 0:
        return 0
    arr = np.frombuffer(view, dtype=np.uint8)
    return int(np.count_nonzero(arr == target_byte))


def worker_process(
        segment: Segment,
        view: memoryview,
        target_byte: int,
        channel: ResultChannel,
        delay_s: float = 0.0,
) -> None:
    """
    Entry point of a forked worker.

    Scans ``view`` (the read-only slice of the buffer for ``segment``),
    sends one count over ``channel`` and returns. Only the controller
    answers status queries, so SIGINT is ignored here.

    Args:
        segment: Segment this worker is responsible for
        view: Read-only view of the segment's bytes
        target_byte: Byte value to count
        channel: Result channel; the worker only uses its write end
        delay_s: Seconds to sleep before scanning

    Exits with status 1 if the count cannot be sent. Nothing is retried.
    """
    setproctitle(f"segscan:worker[{segment.index:03d}]")

    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGCHLD, signal.SIG_DFL)
    # The controller blocks SIGINT around fork; the mask is inherited
    signal.pthread_sigmask(signal.SIG_UNBLOCK, {signal.SIGINT})

    channel.close_reader()

    if delay_s > 0:
        time.sleep(delay_s)

    count = count_byte(view, target_byte)

    try:
        channel.send(count)
    except OSError as exc:
        logger.error(
            "Worker %d (PID %d): failed to send result: %s",
            segment.index,
            os.getpid(),
            exc,
        )
        sys.exit(1)

    logger.debug(
        "Worker %d (PID %d): %d match(es) in [%d, %d)",
        segment.index,
        os.getpid(),
        count,
        segment.start,
        segment.end,
    )
