"""Parallel byte scanning: partitioning, workers, result channels and signals."""

from .channel import ResultChannel
from .controller import ScanController, scan_buffer
from .partitioning import format_partition_summary, partition
from .signals import Debouncer, LiveWorkerCount, SignalBridge
from .types import ScanResult, ScanState, Segment, WorkerHandle, WorkerState
from .worker import count_byte, worker_process

__all__ = [
    "ResultChannel",
    "ScanController",
    "scan_buffer",
    "partition",
    "format_partition_summary",
    "Debouncer",
    "LiveWorkerCount",
    "SignalBridge",
    "ScanResult",
    "ScanState",
    "Segment",
    "WorkerHandle",
    "WorkerState",
    "count_byte",
    "worker_process",
]
