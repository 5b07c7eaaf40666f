# segscan/config.py
from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Union

from .errors import ConfigError

__all__ = [
    "ScanConfig",
    "normalize_target_byte",
    "WORKERS_ENV_VAR",
    "TIMEOUT_ENV_VAR",
    "DELAY_ENV_VAR",
]

WORKERS_ENV_VAR = "P"
TIMEOUT_ENV_VAR = "SEGSCAN_TIMEOUT"
DELAY_ENV_VAR = "SEGSCAN_WORKER_DELAY"


@dataclass(frozen=True)
class ScanConfig:
    """Options for a parallel scan.

    Environment overrides (see ``from_env``):
        - ``P``: number of worker processes
        - ``SEGSCAN_TIMEOUT``: seconds to wait on each result channel
        - ``SEGSCAN_WORKER_DELAY``: seconds each worker sleeps before scanning
    """
    # Parallelism
    num_workers: int = 4

    # Collection
    channel_timeout_s: float = 5.0  # Per-channel bound; exceeding it aborts the scan

    # Status query
    debounce_window_s: float = 1.0  # At most one status line per window

    # Diagnostics
    worker_delay_s: float = 0.0  # Makes the status query observable on small inputs
    show_progress: bool = False  # tqdm bar while collecting results

    def validate(self) -> "ScanConfig":
        """Raise ConfigError if any option is out of range; return self."""
        if isinstance(self.num_workers, bool) or not isinstance(self.num_workers, int):
            raise ConfigError(f"num_workers must be an integer, got {self.num_workers!r}")
        if self.num_workers <= 0:
            raise ConfigError(f"num_workers must be positive, got {self.num_workers}")
        for name in ("channel_timeout_s", "debounce_window_s", "worker_delay_s"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigError(f"{name} must be a finite number of seconds, got {value}")
        if self.channel_timeout_s <= 0:
            raise ConfigError(
                f"channel_timeout_s must be positive, got {self.channel_timeout_s}"
            )
        if self.debounce_window_s < 0:
            raise ConfigError(
                f"debounce_window_s must be >= 0, got {self.debounce_window_s}"
            )
        if self.worker_delay_s < 0:
            raise ConfigError(f"worker_delay_s must be >= 0, got {self.worker_delay_s}")
        return self

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "ScanConfig":
        """
        Build a validated config from environment variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``)
            **overrides: Field values that take precedence over the
                environment; ``None`` values are ignored

        Returns:
            Validated ScanConfig

        Raises:
            ConfigError: If a variable is malformed or a value is out of range
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        raw = env.get(WORKERS_ENV_VAR)
        if raw is not None:
            values["num_workers"] = _parse(raw, int, WORKERS_ENV_VAR)

        raw = env.get(TIMEOUT_ENV_VAR)
        if raw is not None:
            values["channel_timeout_s"] = _parse(raw, float, TIMEOUT_ENV_VAR)

        raw = env.get(DELAY_ENV_VAR)
        if raw is not None:
            values["worker_delay_s"] = _parse(raw, float, DELAY_ENV_VAR)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return replace(cls(), **values).validate()


def _parse(raw: str, kind: type, name: str):
    try:
        return kind(raw.strip())
    except ValueError:
        raise ConfigError(f"invalid value for {name}: {raw!r}") from None


def normalize_target_byte(value: Union[int, bytes, str]) -> int:
    """
    Coerce a target argument to a single byte value.

    Args:
        value: An int in 0..255, a one-byte ``bytes``, or a one-character
            ``str`` whose UTF-8 encoding is a single byte

    Returns:
        Byte value in 0..255

    Examples:
        >>> normalize_target_byte("a")
        97
        >>> normalize_target_byte(b"\\n")
        10
    """
    if isinstance(value, str):
        if len(value) != 1:
            raise ConfigError(f"target must be a single character, got {value!r}")
        value = value.encode("utf-8")

    if isinstance(value, (bytes, bytearray)):
        if len(value) != 1:
            raise ConfigError(f"target must encode to a single byte, got {bytes(value)!r}")
        return value[0]

    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 255:
        return value

    raise ConfigError(f"target must be a byte value in 0..255, got {value!r}")
