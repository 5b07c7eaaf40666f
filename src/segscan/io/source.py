# segscan/io/source.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from segscan.errors import SourceError

logger = logging.getLogger(__name__)

__all__ = ["read_source"]


def read_source(path: Union[str, Path]) -> bytes:
    """
    Read an entire input file into memory.

    Raises:
        SourceError: If the file cannot be read or is empty
    """
    p = Path(path).expanduser()
    try:
        data = p.read_bytes()
    except OSError as exc:
        raise SourceError(f"cannot read {p}: {exc}") from exc

    if not data:
        raise SourceError(f"input file is empty: {p}")

    logger.info("Read %s bytes from %s", f"{len(data):,}", p)
    return data
