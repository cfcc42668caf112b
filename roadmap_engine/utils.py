"""
Utility helpers for the Roadmap Engine.

Provides:
- Structured logging configuration with timestamps.
- A ``timed`` block logger.
- Domain extraction for URLs.
- Timestamp parsing and JS-compatible rounding.
"""

import contextlib
import logging
import math
import time
from datetime import date, datetime, timezone
from typing import Any, Generator, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(
    level: int = logging.INFO,
    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt: str = "%Y-%m-%dT%H:%M:%S%z",
) -> None:
    """Configure the root logger with timestamped structured output."""
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, force=True)


@contextlib.contextmanager
def timed(label: str) -> Generator[None, None, None]:
    """Context manager that logs elapsed wall-clock time for *label*."""
    t0 = time.monotonic()
    yield
    elapsed = time.monotonic() - t0
    logger.info("timing | label=%s | elapsed=%.3fs", label, elapsed)


# ---------------------------------------------------------------------------
# Numbers & time
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round like ``Math.round``: halves go towards +infinity."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce *value* into an aware UTC ``datetime``.

    Accepts ``datetime``, ``date``, ISO-8601 strings (a trailing ``Z`` is
    allowed) and epoch milliseconds. Returns ``None`` for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Unparseable timestamp: %r", value)
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def as_utc(value: Optional[datetime] = None) -> datetime:
    """Aware UTC form of *value*; naive values are taken as UTC, ``None`` is now."""
    if value is None:
        return utcnow()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from *earlier* to *later*."""
    return (as_utc(later) - as_utc(earlier)).total_seconds() / 86400.0


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def extract_domain(url: str) -> str:
    """Return the lower-cased hostname of *url* without a ``www.`` prefix.

    Returns ``"unknown"`` when *url* has no parseable host.
    """
    try:
        host = urlparse(url.strip()).hostname
    except (AttributeError, ValueError):
        return "unknown"
    if not host:
        return "unknown"
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host
