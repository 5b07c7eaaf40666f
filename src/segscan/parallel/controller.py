# parallel/controller.py
"""Controller that fans a buffer out to worker processes and sums their counts."""

from __future__ import annotations

import logging
import multiprocessing as mp
import signal
import time
from typing import Callable, List, Optional, Tuple, Union

from tqdm import tqdm

from segscan.config import ScanConfig, normalize_target_byte
from segscan.errors import ChannelTimeout, LostWorker, SpawnError
from segscan.parallel.channel import ResultChannel
from segscan.parallel.partitioning import format_partition_summary, partition
from segscan.parallel.signals import (
    STDOUT_FILENO,
    LiveWorkerCount,
    SignalBridge,
    blocked_signals,
)
from segscan.parallel.types import (
    ScanResult,
    ScanState,
    Segment,
    WorkerHandle,
    WorkerState,
)
from segscan.parallel.worker import worker_process

logger = logging.getLogger(__name__)

__all__ = ["ScanController", "scan_buffer"]


class ScanController:
    """
    Count one byte value in a buffer using one forked worker per segment.

    The scan moves through PARTITIONING, SPAWNING, COLLECTING, AGGREGATING
    and DONE. Any fatal error (SpawnError, ChannelTimeout) moves it to
    ABORTED after every spawned worker has been terminated and joined; no
    total is produced in that case.

    While the scan runs, SIGINT prints a debounced status line instead of
    interrupting, and SIGCHLD acknowledges exited workers. Because Python
    delivers signals to the main thread only, ``run`` must be called from
    the main thread.

    Args:
        buffer: Bytes-like object to scan; it is never modified
        target_byte: Byte to count (int, one-byte bytes, or one-char str)
        config: Scan options (default: ``ScanConfig()``)
        worker_target: Function run in each worker process; called as
            ``worker_target(segment, view, target_byte, channel, delay_s)``
        status_fd: File descriptor that receives status lines
    """

    def __init__(
            self,
            buffer: Union[bytes, bytearray, memoryview],
            target_byte: Union[int, bytes, str],
            config: Optional[ScanConfig] = None,
            *,
            worker_target: Callable[..., None] = worker_process,
            status_fd: int = STDOUT_FILENO,
    ):
        self.config = (config or ScanConfig()).validate()
        self.target_byte = normalize_target_byte(target_byte)
        self._view = memoryview(buffer).cast("B").toreadonly()
        self._worker_target = worker_target

        self.state = ScanState.PARTITIONING
        self.handles: List[WorkerHandle] = []
        self.live_workers = LiveWorkerCount()
        self.bridge = SignalBridge(
            self.live_workers,
            self._reap_exited,
            total_workers=self.config.num_workers,
            debounce_window_s=self.config.debounce_window_s,
            status_fd=status_fd,
        )

    def run(self) -> ScanResult:
        """
        Execute the scan.

        Returns:
            ScanResult with the total and per-segment counts

        Raises:
            ConfigError: If the worker count is invalid
            SpawnError: If a worker could not be started
            ChannelTimeout: If a worker did not report in time
        """
        if self.handles:
            raise RuntimeError("ScanController.run() can only be called once")

        start_time = time.perf_counter()

        self.state = ScanState.PARTITIONING
        segments = partition(len(self._view), self.config.num_workers)
        for line in format_partition_summary(segments).splitlines():
            logger.info(line)

        with self.bridge:
            try:
                self._spawn(segments)
                counts, lost = self._collect()
                total = self._aggregate(counts)
            except BaseException:
                self.state = ScanState.ABORTED
                self._release()
                raise

        self.state = ScanState.DONE
        elapsed = time.perf_counter() - start_time
        logger.info(
            "Scan complete: %s occurrence(s) of byte 0x%02x in %.3fs",
            f"{total:,}",
            self.target_byte,
            elapsed,
        )

        return ScanResult(
            total=total,
            segments=segments,
            counts=counts,
            lost_segments=lost,
            elapsed_s=elapsed,
        )

    # ----------------------------------------------------------------- phases

    def _spawn(self, segments: List[Segment]) -> None:
        """Start one worker and one channel per segment, in segment order."""
        self.state = ScanState.SPAWNING
        ctx = mp.get_context("fork")
        self.live_workers.reset(len(segments))

        for segment in segments:
            try:
                channel = ResultChannel.open(segment.index)
            except OSError as exc:
                logger.error("Failed to open channel for segment %d: %s", segment.index, exc)
                raise SpawnError(segment.index, exc) from exc

            process = ctx.Process(
                target=self._worker_target,
                args=(
                    segment,
                    self._view[segment.start:segment.end],
                    self.target_byte,
                    channel,
                    self.config.worker_delay_s,
                ),
                name=f"segscan:worker-{segment.index}",
            )

            try:
                # Child must not run the status handler before it ignores SIGINT
                with blocked_signals(signal.SIGINT):
                    process.start()
            except OSError as exc:
                channel.close()
                logger.error("Failed to start worker for segment %d: %s", segment.index, exc)
                raise SpawnError(segment.index, exc) from exc

            # Keep only the read end so EOF tracks the worker's exit
            channel.close_writer()
            self.handles.append(WorkerHandle(segment=segment, channel=channel, process=process))

        logger.info("Spawned %d worker processes", len(self.handles))

    def _collect(self) -> Tuple[List[int], List[int]]:
        """Read every channel in segment order; return (counts, lost indices)."""
        self.state = ScanState.COLLECTING
        timeout_s = self.config.channel_timeout_s
        counts: List[int] = []
        lost: List[int] = []

        # tqdm starts a monitor thread even when disabled; that thread would
        # take process-directed signals the main thread has blocked
        pbar = None
        if self.config.show_progress:
            pbar = tqdm(
                total=len(self.handles),
                desc="Segments collected:",
                unit="seg",
                ncols=100,
            )

        try:
            for handle in self.handles:
                with handle.channel:
                    try:
                        count = handle.channel.receive(timeout_s)
                    except LostWorker as exc:
                        logger.warning(
                            "Worker for segment %d exited without a result "
                            "(%d byte(s) received); counting 0",
                            handle.index,
                            exc.received,
                        )
                        count = 0
                        lost.append(handle.index)
                    except ChannelTimeout:
                        logger.error(
                            "Timed out after %.1fs waiting for segment %d; aborting scan",
                            timeout_s,
                            handle.index,
                        )
                        raise

                handle.mark_completed()
                counts.append(count)
                if pbar is not None:
                    pbar.update(1)
        finally:
            if pbar is not None:
                pbar.close()

        return counts, lost

    def _aggregate(self, counts: List[int]) -> int:
        """Sum the counts and make sure every worker has been joined."""
        self.state = ScanState.AGGREGATING
        total = sum(counts)

        self._join_all(timeout_s=self.config.channel_timeout_s)

        failed = [h.index for h in self.handles if h.process.exitcode != 0]
        if failed:
            logger.warning("Workers for segments %s exited with non-zero status", failed)

        return total

    # ---------------------------------------------------------------- reaping

    def _reap_exited(self) -> int:
        """Acknowledge every exited, unreaped worker; never blocks."""
        reaped = 0
        for handle in self.handles:
            if handle.state is not WorkerState.REAPED and handle.exited:
                handle.mark_completed()
                handle.reap()
                reaped += 1
        return reaped

    def _join_all(self, timeout_s: Optional[float] = None, terminate: bool = False) -> None:
        """
        Wait for every unreaped worker to terminate, then acknowledge them.

        SIGCHLD is blocked for the calling thread meanwhile. If another
        thread is alive, the kernel may hand it the signal and the handler
        still runs in the main thread mid-loop; it only acknowledges workers
        that have already exited, and ``drain`` picks up the rest.

        Args:
            timeout_s: Seconds to wait for each worker before terminating it
            terminate: Terminate still-running workers without waiting first
        """
        with blocked_signals(signal.SIGCHLD):
            for handle in self.handles:
                if handle.state is WorkerState.REAPED:
                    continue
                process = handle.process
                if not terminate:
                    process.join(timeout_s)
                if process.exitcode is None:
                    if not terminate:
                        logger.warning(
                            "Worker for segment %d still running after %.1fs; terminating",
                            handle.index,
                            timeout_s,
                        )
                    process.terminate()
                    process.join()
            self.bridge.drain()

    def _release(self) -> None:
        """Close every channel and stop every spawned worker (abort path)."""
        for handle in self.handles:
            handle.channel.close()

        self._join_all(terminate=True)

        # Segments whose worker was never started have nothing to wait for
        self.live_workers.reset(0)
        logger.info("Released %d worker processes after abort", len(self.handles))


def scan_buffer(
        buffer: Union[bytes, bytearray, memoryview],
        target_byte: Union[int, bytes, str],
        config: Optional[ScanConfig] = None,
        **kwargs,
) -> ScanResult:
    """
    Count ``target_byte`` in ``buffer`` with parallel worker processes.

    Convenience wrapper around ``ScanController(...).run()``; keyword
    arguments are passed to the controller.

    Example:
        >>> scan_buffer(b"aabcaabcaa", "a").total
        6
    """
    return ScanController(buffer, target_byte, config, **kwargs).run()
