"""
Parallel single-byte occurrence counter.

Reads a file into memory, splits it into contiguous segments, counts the
target byte in each segment with a separate worker process, and sums the
per-segment counts.

Main entry points:
    scan_buffer() - Count a byte in an in-memory buffer
    ScanController - The same, with access to state and live worker count

Key components:
    - parallel.partitioning: Segment boundaries
    - parallel.worker: Per-segment counting process
    - parallel.channel: One-shot pipe carrying each count
    - parallel.signals: Status query (SIGINT) and worker reaping (SIGCHLD)
    - parallel.controller: Spawn, collect, aggregate, reap
"""

from segscan.config import ScanConfig, normalize_target_byte
from segscan.errors import (
    ChannelTimeout,
    ConfigError,
    LostWorker,
    ScanError,
    SourceError,
    SpawnError,
)
from segscan.parallel.controller import ScanController, scan_buffer
from segscan.parallel.types import ScanResult

__all__ = [
    "ScanConfig",
    "ScanController",
    "ScanResult",
    "scan_buffer",
    "normalize_target_byte",
    "ScanError",
    "ConfigError",
    "SpawnError",
    "ChannelTimeout",
    "LostWorker",
    "SourceError",
]
