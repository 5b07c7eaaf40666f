# utilities/display.py
"""Display formatting helpers for command-line output."""

__all__ = ["format_bytes", "format_banner"]


def format_bytes(num_bytes: int) -> str:
    """Convert a byte count to a human-readable string.

    Args:
        num_bytes: Number of bytes to format.

    Returns:
        String with a binary unit (B, KB, MB, GB, TB, PB).

    Examples:
        >>> format_bytes(512)
        '512 B'
        >>> format_bytes(1536000)
        '1.46 MB'
    """
    if abs(num_bytes) < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size) < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


def format_banner(title: str, width: int = 80, style: str = "═") -> str:
    """Create a title followed by a separator line.

    Examples:
        >>> print(format_banner("Scan", width=10, style="-"))
        Scan
        ----------
    """
    return f"{title}\n{style * width}"
