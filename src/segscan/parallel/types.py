# parallel/types.py
"""Shared types for parallel scanning."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from multiprocessing.process import BaseProcess

    from segscan.parallel.channel import ResultChannel

__all__ = ["Segment", "WorkerState", "WorkerHandle", "ScanState", "ScanResult"]


@dataclass(frozen=True)
class Segment:
    """A contiguous byte range ``[start, end)`` assigned to one worker."""

    index: int
    """Position of this segment in the partition"""

    start: int
    """First byte offset (inclusive)"""

    end: int
    """Last byte offset (exclusive)"""

    @property
    def length(self) -> int:
        return self.end - self.start


class WorkerState(enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    REAPED = "reaped"


@dataclass
class WorkerHandle:
    """Controller-side record of one spawned worker."""

    segment: Segment
    channel: ResultChannel
    process: BaseProcess
    state: WorkerState = WorkerState.RUNNING

    @property
    def index(self) -> int:
        return self.segment.index

    @property
    def exited(self) -> bool:
        """True once the worker process has terminated (non-blocking check)."""
        return self.process.exitcode is not None

    def mark_completed(self) -> None:
        """Record that the worker's result or exit has been observed."""
        if self.state is WorkerState.RUNNING:
            self.state = WorkerState.COMPLETED

    def reap(self) -> None:
        """
        Acknowledge the worker's exit.

        Raises:
            RuntimeError: If the worker is still running or was already reaped
        """
        if self.state is WorkerState.REAPED:
            raise RuntimeError(f"worker for segment {self.index} reaped twice")
        if not self.exited:
            raise RuntimeError(
                f"worker for segment {self.index} reaped before it terminated"
            )
        self.state = WorkerState.REAPED


class ScanState(enum.Enum):
    PARTITIONING = "partitioning"
    SPAWNING = "spawning"
    COLLECTING = "collecting"
    AGGREGATING = "aggregating"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ScanResult:
    """Outcome of a completed scan."""

    total: int
    segments: List[Segment]
    counts: List[int]
    lost_segments: List[int] = field(default_factory=list)
    elapsed_s: Optional[float] = None

    @property
    def complete(self) -> bool:
        """False if any worker vanished without reporting."""
        return not self.lost_segments
