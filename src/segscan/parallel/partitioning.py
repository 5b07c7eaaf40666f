# parallel/partitioning.py
"""Buffer partitioning into contiguous worker segments."""

from __future__ import annotations

from typing import List

from segscan.errors import ConfigError
from segscan.parallel.types import Segment

__all__ = ["partition", "format_partition_summary"]


def partition(length: int, num_segments: int) -> List[Segment]:
    """
    Split the byte range ``[0, length)`` into contiguous segments.

    Segment sizes differ by at most one byte: every segment gets
    ``length // num_segments`` bytes and the first ``length % num_segments``
    segments get one extra. There is no separate remainder segment.

    Args:
        length: Number of bytes in the buffer
        num_segments: Number of segments to create (one per worker)

    Returns:
        List of Segment objects in offset order

    Raises:
        ConfigError: If num_segments <= 0 or length < 0

    Example:
        >>> [s.length for s in partition(10, 4)]
        [3, 3, 2, 2]
        >>> [s.length for s in partition(2, 4)]
        [1, 1, 0, 0]

    Note:
        - When length < num_segments the trailing segments are empty; this is
          legal and their workers report 0
    """
    if num_segments <= 0:
        raise ConfigError(f"number of segments must be positive, got {num_segments}")
    if length < 0:
        raise ConfigError(f"buffer length must be >= 0, got {length}")

    base, remainder = divmod(length, num_segments)

    segments = []
    start = 0
    for i in range(num_segments):
        size = base + (1 if i < remainder else 0)
        segments.append(Segment(index=i, start=start, end=start + size))
        start += size

    return segments


def format_partition_summary(segments: List[Segment]) -> str:
    """
    Format a summary of segment boundaries for display.

    Example:
        >>> print(format_partition_summary(partition(10, 2)))
        Partitioned 10 bytes into 2 segments:
          segment 0: [0, 5) 5 bytes
          segment 1: [5, 10) 5 bytes
    """
    total = segments[-1].end if segments else 0
    lines = [f"Partitioned {total:,} bytes into {len(segments)} segments:"]

    for seg in segments:
        lines.append(f"  segment {seg.index}: [{seg.start:,}, {seg.end:,}) {seg.length:,} bytes")

    return "\n".join(lines)
