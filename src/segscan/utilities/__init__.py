# utilities/__init__.py
"""Common utilities for the segscan command line."""

from .display import format_banner, format_bytes

__all__ = [
    "format_bytes",
    "format_banner",
]
