"""
Memoised progress metrics.

``ProgressCache`` is an explicit object (no module-level singleton): build
one with ``create_cache()`` and pass it to whoever needs cached metrics.
Entries are keyed by a content fingerprint of the ``ProgressState``, so an
unchanged state never recomputes; a changed state gets a new key. Entries
also expire after ``ttl_seconds`` because streaks depend on the date;
expired entries are dropped on every ``compute`` and ``stats`` call.
Non-default ``ProgressOptions`` become part of the key.

Concurrent writers computing the same key store identical values, so the
last write wins without locking.
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional, Union

from roadmap_engine.models import ProgressMetrics, ProgressOptions, ProgressState
from roadmap_engine.progress.analytics import calculate_progress_metrics
from roadmap_engine.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

StateLike = Union[ProgressState, Mapping[str, Any]]


def _as_state(state: StateLike) -> ProgressState:
    if isinstance(state, ProgressState):
        return state
    return ProgressState.model_validate(dict(state))


def fingerprint_state(state: ProgressState) -> str:
    """SHA-256 over the canonical JSON form of *state*."""
    canonical = json.dumps(
        state.model_dump(mode="json", by_alias=True), sort_keys=True, separators=(",", ":")
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _options_suffix(options: Optional[ProgressOptions]) -> str:
    if options is None or options == ProgressOptions():
        return ""
    canonical = json.dumps(options.to_wire(), sort_keys=True, separators=(",", ":"))
    return ":" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


class _Entry(NamedTuple):
    metrics: ProgressMetrics
    created_at: datetime


class ProgressCache:
    """Read-through cache of ``ProgressMetrics`` keyed by state fingerprint."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        fingerprint: Callable[[ProgressState], str] = fingerprint_state,
        ttl_seconds: Optional[float] = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.clock = clock
        self.fingerprint = fingerprint
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, _Entry] = {}
        self.hits = 0
        self.misses = 0

    def _now(self) -> datetime:
        return as_utc(self.clock())

    def _fresh(self, entry: _Entry, now: datetime) -> bool:
        if self.ttl_seconds is None:
            return True
        return (now - entry.created_at).total_seconds() < self.ttl_seconds

    def _evict_expired(self, now: datetime) -> None:
        stale = [key for key, entry in self._entries.items() if not self._fresh(entry, now)]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("progress_cache_evicted | count=%d", len(stale))

    def compute(self, state: StateLike, options: Optional[ProgressOptions] = None) -> ProgressMetrics:
        """Return metrics for *state*, computing them only on a miss.

        Callers get a copy; the stored value is never handed out.
        """
        state = _as_state(state)
        key = self.fingerprint(state) + _options_suffix(options)
        now = self._now()
        self._evict_expired(now)

        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            return entry.metrics.model_copy()

        self.misses += 1
        metrics = calculate_progress_metrics(state.all_milestones(), now, options)
        self._entries[key] = _Entry(metrics, now)
        logger.debug("progress_cache_miss | key=%s | size=%d", key[:12], len(self._entries))
        return metrics.model_copy()

    def clear(self) -> None:
        """Evict every entry; hit/miss counters are kept."""
        self._entries.clear()
        logger.debug("progress_cache_cleared")

    def stats(self) -> Dict[str, Any]:
        now = self._now()
        self._evict_expired(now)
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "entries": [
                {
                    "key": key,
                    "createdAt": entry.created_at.isoformat(),
                    "ageSeconds": round((now - entry.created_at).total_seconds(), 3),
                }
                for key, entry in self._entries.items()
            ],
        }

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Functional facade
# ---------------------------------------------------------------------------


def create_cache(
    clock: Callable[[], datetime] = utcnow,
    fingerprint: Callable[[ProgressState], str] = fingerprint_state,
    ttl_seconds: Optional[float] = DEFAULT_TTL_SECONDS,
) -> ProgressCache:
    return ProgressCache(clock=clock, fingerprint=fingerprint, ttl_seconds=ttl_seconds)


def calculate_cached_progress(
    state: StateLike, cache: ProgressCache, options: Optional[ProgressOptions] = None
) -> ProgressMetrics:
    return cache.compute(state, options)


def clear_progress_cache(cache: ProgressCache) -> None:
    cache.clear()


def get_cache_stats(cache: ProgressCache) -> Dict[str, Any]:
    return cache.stats()
