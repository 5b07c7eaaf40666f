# parallel/signals.py
"""Status-query and worker-completion signal handling for the controller."""

from __future__ import annotations

import os
import signal
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

__all__ = [
    "LiveWorkerCount",
    "Debouncer",
    "SignalBridge",
    "blocked_signals",
    "STDOUT_FILENO",
]

STDOUT_FILENO = 1


class LiveWorkerCount:
    """
    Number of workers whose exit has not yet been acknowledged.

    Only the completion routine of SignalBridge decrements it.
    """

    def __init__(self, value: int = 0):
        if value < 0:
            raise ValueError(f"live worker count must be >= 0, got {value}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def reset(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"live worker count must be >= 0, got {value}")
        self._value = value

    def decrement(self) -> int:
        """Decrement by one and return the new value."""
        if self._value <= 0:
            raise RuntimeError("live worker count would go negative")
        self._value -= 1
        return self._value

    def __int__(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"LiveWorkerCount({self._value})"


class Debouncer:
    """
    Let through at most one trigger per time window.

    The first trigger always fires; afterwards a trigger fires only if at
    least ``window_s`` seconds have passed since the last one that fired.
    """

    def __init__(self, window_s: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.window_s = window_s
        self._clock = clock
        self._last_fired: Optional[float] = None

    def should_fire(self) -> bool:
        now = self._clock()
        if self._last_fired is not None and now - self._last_fired < self.window_s:
            return False
        self._last_fired = now
        return True


@contextmanager
def blocked_signals(*signums: int) -> Iterator[None]:
    """Block the given signals for the duration of the block."""
    previous = signal.pthread_sigmask(signal.SIG_BLOCK, set(signums))
    try:
        yield
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, previous)


class SignalBridge:
    """
    Route SIGINT and SIGCHLD to the controller while a scan runs.

    SIGINT becomes a debounced status query: one line with the live worker
    count is written to ``status_fd``, and the interrupt does not stop the
    scan. SIGCHLD acknowledges every worker that has exited and decrements
    the live count once per acknowledged worker.

    Handlers write with ``os.write`` only. ``print`` and ``logging`` go
    through buffered writers that raise on reentrant use.

    Args:
        live: Counter shared with the controller
        reap_exited: Callable that acknowledges every exited, unreaped
            worker without blocking and returns how many it acknowledged
        total_workers: Worker count shown in status lines, if known
        debounce_window_s: Minimum seconds between two status lines
        status_fd: File descriptor for status lines
        clock: Monotonic clock used for debouncing
    """

    def __init__(
            self,
            live: LiveWorkerCount,
            reap_exited: Callable[[], int],
            *,
            total_workers: Optional[int] = None,
            debounce_window_s: float = 1.0,
            status_fd: int = STDOUT_FILENO,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.live = live
        self._reap_exited = reap_exited
        self.total_workers = total_workers
        self._debouncer = Debouncer(debounce_window_s, clock)
        self.status_fd = status_fd

        self._installed = False
        self._previous: dict = {}
        self._in_completion = False
        self._rescan = False

    # ------------------------------------------------------------ installation

    def install(self) -> None:
        """Register both handlers, remembering the ones they replace."""
        if self._installed:
            return
        self._previous = {
            signal.SIGINT: signal.signal(signal.SIGINT, self.on_status_query),
            signal.SIGCHLD: signal.signal(signal.SIGCHLD, self.on_child_exit),
        }
        self._installed = True

    def restore(self) -> None:
        """Reinstate the handlers that were active before ``install``."""
        if not self._installed:
            return
        for signum, handler in self._previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous = {}
        self._installed = False

    def __enter__(self) -> "SignalBridge":
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    # ---------------------------------------------------------------- handlers

    def on_status_query(self, signum=None, frame=None) -> None:
        if not self._debouncer.should_fire():
            return
        try:
            os.write(self.status_fd, self.format_status().encode())
        except OSError:
            # Nowhere to report from inside a handler; the scan goes on
            pass

    def format_status(self) -> str:
        live = self.live.value
        if self.total_workers is not None:
            return f"\n[segscan] status: {live}/{self.total_workers} workers still scanning\n"
        return f"\n[segscan] status: {live} workers still scanning\n"

    def on_child_exit(self, signum=None, frame=None) -> None:
        # A nested call only asks the running pass to go around again
        if self._in_completion:
            self._rescan = True
            return

        self._in_completion = True
        try:
            self._rescan = True
            while self._rescan:
                self._rescan = False
                for _ in range(self._reap_exited()):
                    self.live.decrement()
        finally:
            self._in_completion = False

    def drain(self) -> None:
        """Run the completion routine synchronously."""
        self.on_child_exit()
