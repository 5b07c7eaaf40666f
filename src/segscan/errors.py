# segscan/errors.py
"""Exception hierarchy for the parallel scanner."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ScanError",
    "ConfigError",
    "SpawnError",
    "ChannelTimeout",
    "LostWorker",
    "SourceError",
]


class ScanError(Exception):
    """Base class for every failure raised by segscan."""


class ConfigError(ScanError):
    """Invalid worker count, timeout, or target byte."""


class SpawnError(ScanError):
    """A worker (or its channel) could not be created."""

    def __init__(self, index: int, cause: Optional[BaseException] = None):
        self.index = index
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"failed to spawn worker for segment {index}{detail}")


class ChannelTimeout(ScanError):
    """No complete result arrived on a channel within the timeout."""

    def __init__(self, index: int, timeout_s: float):
        self.index = index
        self.timeout_s = timeout_s
        super().__init__(
            f"timeout waiting {timeout_s:g}s for result of segment {index}"
        )


class LostWorker(ScanError):
    """A channel reached end-of-stream before a full result was read."""

    def __init__(self, index: int, received: int = 0):
        self.index = index
        self.received = received
        super().__init__(
            f"channel for segment {index} closed after {received} byte(s)"
        )


class SourceError(ScanError):
    """The input file is missing, unreadable, or empty."""
