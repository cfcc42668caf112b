"""Human-readable renderings of durations and dates."""

from datetime import datetime
from typing import Iterable, Optional

from roadmap_engine.models import Milestone
from roadmap_engine.utils import as_utc, parse_timestamp


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_time_spent(minutes: float) -> str:
    """``90 -> "1 hour 30 minutes"``, ``120 -> "2 hours"``, ``0 -> "0 minutes"``."""
    total = max(0, int(round(minutes or 0)))
    hours, mins = divmod(total, 60)
    if hours == 0:
        return _plural(mins, "minute")
    if mins == 0:
        return _plural(hours, "hour")
    return f"{_plural(hours, 'hour')} {_plural(mins, 'minute')}"


def format_duration(minutes: float) -> str:
    """Compact form, e.g. ``"1h 30m"``, ``"45m"``, ``"2h"``."""
    total = max(0, int(round(minutes or 0)))
    hours, mins = divmod(total, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def format_date(value) -> str:
    dt = parse_timestamp(value)
    return dt.strftime("%b %d, %Y") if dt else ""


def format_datetime(value) -> str:
    dt = parse_timestamp(value)
    return dt.strftime("%b %d, %Y %H:%M") if dt else ""


def format_time_difference(then, now: Optional[datetime] = None) -> str:
    """Relative time: "just now", "N minutes ago", "N hours ago",
    "N days ago" (under a week), otherwise the formatted date.
    """
    then_dt = parse_timestamp(then)
    if then_dt is None:
        return ""
    now = as_utc(now)
    seconds = (now - then_dt).total_seconds()
    if seconds < 60:
        return "just now"
    minutes = int(seconds // 60)
    if minutes < 60:
        return _plural(minutes, "minute") + " ago"
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour") + " ago"
    days = hours // 24
    if days < 7:
        return _plural(days, "day") + " ago"
    return format_date(then_dt)


def get_time_since_last_activity(milestones: Iterable[Milestone], now: Optional[datetime] = None) -> str:
    """Relative time since the latest completion, or ``"No activity yet"``."""
    stamps = [m.completed_at for m in milestones if m.completed and m.completed_at is not None]
    if not stamps:
        return "No activity yet"
    return format_time_difference(max(stamps), now)
