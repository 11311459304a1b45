"""
Formatting helpers for the CLI reports.
"""

from __future__ import annotations


_SIZE_UNITS = ('B', 'KB', 'MB', 'GB', 'TB')


def format_size(size_bytes: float) -> str:
    """Render a byte count with a binary unit, e.g. "5.0 MB"."""
    value = float(size_bytes)
    for unit in _SIZE_UNITS[:-1]:
        if value < 1024:
            break
        value /= 1024
    else:
        unit = _SIZE_UNITS[-1]
    return f"{value:.1f} {unit}"


def format_number(n: int) -> str:
    """Thousands-separated integer, e.g. 1234567 -> "1,234,567"."""
    return f"{n:,}"


def format_duration(seconds: float) -> str:
    """
    Render an elapsed time for the run summary.

    Under a minute keeps one decimal ("4.2s"); longer runs drop to the two
    largest units ("2m 30s", "1h 1m").
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


__all__ = ['format_size', 'format_number', 'format_duration']
