# parallel/channel.py
"""One-shot pipe transport carrying a single count from a worker."""

from __future__ import annotations

import os
import selectors
import struct
import time
from typing import Optional

from segscan.errors import ChannelTimeout, LostWorker

__all__ = ["ResultChannel", "MESSAGE"]

# Little-endian signed 64-bit count
MESSAGE = struct.Struct("<q")


class ResultChannel:
    """
    Unidirectional pipe between exactly one worker and the controller.

    The worker holds the write end and sends one fixed-width message; the
    controller holds the read end. After a fork each side closes the end it
    does not use, so the controller sees end-of-stream as soon as the worker
    exits, whether or not it sent anything.

    Usage (controller side):
        with channel:
            count = channel.receive(timeout_s=5.0)
    """

    def __init__(self, index: int, read_fd: int, write_fd: int):
        self.index = index
        self._read_fd: Optional[int] = read_fd
        self._write_fd: Optional[int] = write_fd

    @classmethod
    def open(cls, index: int) -> "ResultChannel":
        """Create a channel backed by a fresh OS pipe."""
        read_fd, write_fd = os.pipe()
        return cls(index, read_fd, write_fd)

    # ------------------------------------------------------------------ worker

    def send(self, count: int) -> None:
        """
        Write the count and close the write end.

        Raises:
            OSError: If the write end is closed or the pipe is broken
            struct.error: If count does not fit in a signed 64-bit integer
        """
        if self._write_fd is None:
            raise OSError(f"channel {self.index}: write end is closed")

        payload = MESSAGE.pack(count)
        try:
            view = memoryview(payload)
            while view:
                written = os.write(self._write_fd, view)
                view = view[written:]
        finally:
            self.close_writer()

    # -------------------------------------------------------------- controller

    def receive(self, timeout_s: float) -> int:
        """
        Wait for the worker's count.

        A single deadline covers the whole read. Signals delivered while
        waiting do not restart the clock: the selector resumes with the
        remaining time after the handler returns.

        Args:
            timeout_s: Seconds to wait before giving up

        Returns:
            The count sent by the worker

        Raises:
            ChannelTimeout: If the full message has not arrived by the deadline
            LostWorker: If the pipe closed before the full message arrived
        """
        if self._read_fd is None:
            raise LostWorker(self.index)

        deadline = time.monotonic() + timeout_s
        buf = bytearray()

        # epoll/poll where available; select() rejects descriptors >= FD_SETSIZE
        with selectors.DefaultSelector() as sel:
            sel.register(self._read_fd, selectors.EVENT_READ)
            while len(buf) < MESSAGE.size:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ChannelTimeout(self.index, timeout_s)

                if not sel.select(remaining):
                    raise ChannelTimeout(self.index, timeout_s)

                chunk = os.read(self._read_fd, MESSAGE.size - len(buf))
                if not chunk:
                    raise LostWorker(self.index, received=len(buf))
                buf += chunk

        (count,) = MESSAGE.unpack(bytes(buf))
        return count

    # ----------------------------------------------------------------- cleanup

    def close_reader(self) -> None:
        if self._read_fd is not None:
            fd, self._read_fd = self._read_fd, None
            os.close(fd)

    def close_writer(self) -> None:
        if self._write_fd is not None:
            fd, self._write_fd = self._write_fd, None
            os.close(fd)

    def close(self) -> None:
        """Release both ends (whichever are still open)."""
        try:
            self.close_reader()
        finally:
            self.close_writer()

    @property
    def closed(self) -> bool:
        return self._read_fd is None and self._write_fd is None

    def __enter__(self) -> "ResultChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"ResultChannel(index={self.index}, "
            f"read_fd={self._read_fd}, write_fd={self._write_fd})"
        )
