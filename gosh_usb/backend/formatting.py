"""Human-readable formatting of sizes, throughput and durations."""

_BINARY_UNITS = (
    ("TB", 1024**4),
    ("GB", 1024**3),
    ("MB", 1024**2),
    ("KB", 1024),
)


def format_size(num_bytes: int) -> str:
    """Format a byte count using binary units with one decimal.

    Examples:
        >>> format_size(512)
        '512 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    for unit, factor in _BINARY_UNITS:
        if num_bytes >= factor:
            return f"{num_bytes / factor:.1f} {unit}"
    return f"{num_bytes} B"


def format_speed(bytes_per_second: int) -> str:
    """Format a throughput figure, e.g. '12.0 MB/s'."""
    return f"{format_size(bytes_per_second)}/s"


def format_eta(seconds: int | float) -> str:
    """Format a remaining-time estimate as '42s' or '3m 5s'."""
    if seconds < 60:
        return f"{round(seconds)}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs}s"


__all__ = ["format_eta", "format_size", "format_speed"]
