"""Duration formatting at calendar and execution scales."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" + ("" if n == 1 else "s")


def format_calendar(duration: Optional[timedelta]) -> str:
    """Largest whole unit: ``3 days``, ``1 hour``, ``12 minutes``, ``less than a minute``."""
    if duration is None:
        return "unknown"
    total_seconds = int(abs(duration).total_seconds())
    days, rest = divmod(total_seconds, 86400)
    if days:
        return _plural(days, "day")
    hours = rest // 3600
    if hours:
        return _plural(hours, "hour")
    minutes = rest // 60
    if minutes:
        return _plural(minutes, "minute")
    return "less than a minute"


def format_execution(ms: int) -> str:
    """Wall-clock time of a run: ``1h 30m``, ``5m 23s``, ``45s``, ``<1s``."""
    if ms < 1000:
        return "<1s"
    total_seconds = ms // 1000
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
