"""
pytest suite for the explicit progress-metrics cache.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from roadmap_engine.models import LearningPath, Milestone, ProgressOptions, ProgressState
from roadmap_engine.progress import cache as cache_module
from roadmap_engine.progress.cache import (
    ProgressCache,
    calculate_cached_progress,
    clear_progress_cache,
    create_cache,
    fingerprint_state,
    get_cache_stats,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _state(completed: bool = True) -> ProgressState:
    milestones = [
        Milestone(id="m1", title="Syntax", completed=completed,
                  completed_at=NOW - timedelta(hours=2) if completed else None, time_spent=30),
        Milestone(id="m2", title="Types"),
    ]
    return ProgressState(learning_paths={"p1": LearningPath(id="p1", topic="Rust", milestones=milestones)})


@pytest.fixture()
def clock():
    return FakeClock(NOW)


@pytest.fixture()
def cache(clock):
    return create_cache(clock=clock)


class TestFingerprint:
    """Content-derived cache keys."""

    def test_equal_states_equal_keys(self):
        assert fingerprint_state(_state()) == fingerprint_state(_state())

    def test_changed_state_changes_key(self):
        assert fingerprint_state(_state(True)) != fingerprint_state(_state(False))


class TestProgressCache:
    """Read-through behaviour, eviction and stats."""

    def test_hit_returns_cached_value(self, cache):
        first = calculate_cached_progress(_state(), cache)
        second = calculate_cached_progress(_state(), cache)
        assert first == second
        assert first is not second
        assert first.completed_milestones == 1
        assert (cache.hits, cache.misses) == (1, 1)

    def test_no_recomputation_on_hit(self, cache):
        calculate_cached_progress(_state(), cache)
        with patch.object(cache_module, "calculate_progress_metrics") as compute:
            calculate_cached_progress(_state(), cache)
        compute.assert_not_called()

    def test_changed_state_misses(self, cache):
        calculate_cached_progress(_state(True), cache)
        metrics = calculate_cached_progress(_state(False), cache)
        assert metrics.completed_milestones == 0
        assert len(cache) == 2

    def test_mapping_state(self, cache):
        wire = _state().to_wire()
        assert calculate_cached_progress(wire, cache) == calculate_cached_progress(_state(), cache)

    def test_clear(self, cache):
        calculate_cached_progress(_state(), cache)
        clear_progress_cache(cache)
        assert len(cache) == 0
        calculate_cached_progress(_state(), cache)
        assert cache.misses == 2

    def test_ttl_expiry(self, cache, clock):
        calculate_cached_progress(_state(), cache)
        clock.advance(299)
        calculate_cached_progress(_state(), cache)
        assert cache.hits == 1
        clock.advance(2)
        calculate_cached_progress(_state(), cache)
        assert cache.misses == 2

    def test_no_ttl(self, clock):
        cache = ProgressCache(clock=clock, ttl_seconds=None)
        calculate_cached_progress(_state(), cache)
        clock.advance(10_000)
        calculate_cached_progress(_state(), cache)
        assert cache.hits == 1

    def test_custom_fingerprint(self, clock):
        cache = ProgressCache(clock=clock, fingerprint=lambda state: "constant")
        calculate_cached_progress(_state(True), cache)
        metrics = calculate_cached_progress(_state(False), cache)
        # same key, so the first result is reused
        assert metrics.completed_milestones == 1

    def test_stats(self, cache, clock):
        calculate_cached_progress(_state(), cache)
        clock.advance(12)
        stats = get_cache_stats(cache)
        assert stats["size"] == 1
        assert stats["misses"] == 1
        assert stats["entries"][0]["key"] == fingerprint_state(_state())
        assert stats["entries"][0]["ageSeconds"] == 12

    def test_independent_caches(self, clock):
        a, b = create_cache(clock=clock), create_cache(clock=clock)
        calculate_cached_progress(_state(), a)
        assert len(b) == 0

    def test_returned_metrics_are_copies(self, cache):
        first = calculate_cached_progress(_state(), cache)
        first.completed_milestones = 99
        first.current_streak = -1
        second = calculate_cached_progress(_state(), cache)
        assert second.completed_milestones == 1
        assert second.current_streak == 1

    def test_naive_clock(self):
        cache = create_cache(clock=lambda: datetime(2025, 3, 15, 12, 0))
        metrics = calculate_cached_progress(_state(), cache)
        assert metrics.time_spent_today == 30
        assert metrics.current_streak == 1


# ===========================================================================
# Expired-entry eviction
# ===========================================================================


def _topic_state(topic: str) -> ProgressState:
    milestone = Milestone(id="m1", title="Intro")
    return ProgressState(
        learning_paths={"p1": LearningPath(id="p1", topic=topic, milestones=[milestone])}
    )


class TestExpiredEviction:
    """Expired entries do not accumulate."""

    def test_compute_drops_expired_entries(self, cache, clock):
        for i in range(100):
            calculate_cached_progress(_topic_state(f"topic-{i}"), cache)
        assert len(cache) == 100
        clock.advance(3600)
        calculate_cached_progress(_topic_state("fresh"), cache)
        assert len(cache) == 1

    def test_fresh_entries_survive(self, cache, clock):
        calculate_cached_progress(_topic_state("old"), cache)
        clock.advance(200)
        calculate_cached_progress(_topic_state("new"), cache)
        clock.advance(150)
        calculate_cached_progress(_topic_state("newer"), cache)
        # "old" is 350s old, "new" is 150s old
        assert len(cache) == 2

    def test_stats_drops_expired_entries(self, cache, clock):
        calculate_cached_progress(_state(), cache)
        clock.advance(301)
        stats = get_cache_stats(cache)
        assert stats["size"] == 0
        assert stats["entries"] == []
        assert len(cache) == 0

    def test_no_ttl_keeps_everything(self, clock):
        cache = ProgressCache(clock=clock, ttl_seconds=None)
        for i in range(10):
            calculate_cached_progress(_topic_state(f"topic-{i}"), cache)
        clock.advance(10_000)
        calculate_cached_progress(_topic_state("fresh"), cache)
        assert len(cache) == 11


# ===========================================================================
# Metric options in the key
# ===========================================================================


class TestCacheOptions:
    """Options that change the result also change the key."""

    def test_options_change_result_and_key(self, cache):
        plain = calculate_cached_progress(_state(), cache)
        strict = calculate_cached_progress(_state(), cache, ProgressOptions(min_time_spent=60))
        assert plain.current_streak == 1
        assert strict.current_streak == 0
        assert len(cache) == 2
        assert cache.misses == 2

    def test_default_options_share_key(self, cache):
        calculate_cached_progress(_state(), cache)
        calculate_cached_progress(_state(), cache, ProgressOptions())
        assert len(cache) == 1
        assert cache.hits == 1

    def test_same_options_hit(self, cache):
        options = ProgressOptions(min_time_spent=10)
        calculate_cached_progress(_state(), cache, options)
        calculate_cached_progress(_state(), cache, ProgressOptions(minTimeSpent=10))
        assert cache.hits == 1
