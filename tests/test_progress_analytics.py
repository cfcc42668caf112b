"""
pytest suite for progress analytics: completion, time, streaks, velocity,
trends and the aggregate metrics.

All tests pin ``now`` to 2025-03-15 12:00 UTC.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from roadmap_engine.models import LearningPath, Milestone, ProgressOptions
from roadmap_engine.progress.analytics import (
    active_days,
    calculate_progress_metrics,
    completion_percentage,
    current_streak,
    generate_skill_summary,
    learning_velocity,
    longest_streak,
    progress_trend,
    time_by_type,
    total_time_spent,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


# =========================================================================
# Helpers
# =========================================================================


def _done(mid: str, days_ago: float, time_spent: float = 30, mtype: str = "video") -> Milestone:
    return Milestone(
        id=mid,
        title=f"Milestone {mid}",
        type=mtype,
        completed=True,
        completed_at=NOW - timedelta(days=days_ago),
        time_spent=time_spent,
    )


def _todo(mid: str, time_spent: float = 0) -> Milestone:
    return Milestone(id=mid, title=f"Milestone {mid}", time_spent=time_spent)


# =========================================================================
# Completion & time
# =========================================================================


class TestCompletion:
    """Rounded completion percentage."""

    def test_two_of_three(self):
        assert completion_percentage([_done("a", 1), _done("b", 2), _todo("c")]) == 67

    def test_empty(self):
        assert completion_percentage([]) == 0

    def test_all_completed(self):
        assert completion_percentage([_done("a", 1), _done("b", 2)]) == 100

    def test_none_completed(self):
        assert completion_percentage([_todo("a"), _todo("b")]) == 0

    def test_half_rounds_up(self):
        milestones = [_done("a", 1)] + [_todo(str(i)) for i in range(7)]
        # 12.5% rounds to 13
        assert completion_percentage(milestones) == 13


class TestTime:
    """Time totals, ranges and per-type grouping."""

    def test_total(self):
        assert total_time_spent([_done("a", 1, 30), _todo("b", 15)]) == 45

    def test_range_uses_completed_at(self):
        milestones = [_done("a", 1, 30), _done("b", 10, 60), _todo("c", 15)]
        total = total_time_spent(milestones, NOW - timedelta(days=7), NOW)
        assert total == 30

    def test_time_by_type_zero_filled(self):
        result = time_by_type([_done("a", 1, 30, "video"), _done("b", 2, 20, "video")])
        assert result == {"video": 50, "article": 0, "exercise": 0, "quiz": 0}

    def test_time_by_type_empty(self):
        assert time_by_type([]) == {"video": 0, "article": 0, "exercise": 0, "quiz": 0}


# =========================================================================
# Streaks & velocity
# =========================================================================


class TestStreaks:
    """Distinct active days and consecutive runs."""

    def test_current_streak_including_today(self):
        milestones = [_done("a", 0), _done("b", 1), _done("c", 2)]
        assert current_streak(milestones, NOW) == 3

    def test_current_streak_ending_yesterday(self):
        milestones = [_done("a", 1), _done("b", 2)]
        assert current_streak(milestones, NOW) == 2

    def test_current_streak_broken(self):
        assert current_streak([_done("a", 3), _done("b", 4)], NOW) == 0

    def test_same_day_counts_once(self):
        milestones = [_done("a", 0), _done("b", 0.1), _done("c", 1)]
        assert current_streak(milestones, NOW) == 2

    def test_no_activity(self):
        assert current_streak([_todo("a")], NOW) == 0
        assert longest_streak([]) == 0

    def test_longest_streak_with_gap(self):
        days = [20, 19, 18, 10, 9]
        assert longest_streak([_done(str(d), d) for d in days]) == 3

    def test_min_time_threshold(self):
        milestones = [_done("a", 0, time_spent=0), _done("b", 1, time_spent=30)]
        assert current_streak(milestones, NOW, min_time_spent=5) == 1
        assert len(active_days(milestones, min_time_spent=5)) == 1


class TestVelocity:
    """Completions per day over a trailing window."""

    def test_seven_day_window(self):
        milestones = [_done(str(i), i + 0.5) for i in range(7)] + [_done("old", 20)]
        assert learning_velocity(milestones, 7, NOW) == pytest.approx(1.0)

    def test_no_recent_activity(self):
        assert learning_velocity([_done("old", 30)], 7, NOW) == 0

    def test_zero_period(self):
        assert learning_velocity([_done("a", 1)], 0, NOW) == 0


class TestTrend:
    """Two equal windows compared against a 5% threshold."""

    def test_up(self):
        milestones = [_done(f"c{i}", i + 1) for i in range(4)] + [_done("p1", 8), _done("p2", 9)]
        trend = progress_trend(milestones, "week", NOW)
        assert trend.direction == "up"
        assert trend.change_percentage == 100
        assert (trend.current_count, trend.previous_count) == (4, 2)

    def test_down_is_positive_magnitude(self):
        milestones = [_done("c", 1), _done("p1", 8), _done("p2", 9)]
        trend = progress_trend(milestones, "week", NOW)
        assert trend.direction == "down"
        assert trend.change_percentage == 50

    def test_stable(self):
        milestones = [_done("c1", 1), _done("c2", 2), _done("p1", 8), _done("p2", 9)]
        assert progress_trend(milestones, "week", NOW).direction == "stable"

    def test_growth_from_nothing(self):
        trend = progress_trend([_done("c", 0.5)], "day", NOW)
        assert trend.direction == "up"
        assert trend.change_percentage == 100

    def test_empty(self):
        trend = progress_trend([], "month", NOW)
        assert trend.direction == "stable"
        assert trend.change_percentage == 0


# =========================================================================
# Aggregate metrics
# =========================================================================


class TestProgressMetrics:
    """Full ProgressMetrics derivation."""

    def test_metrics(self):
        milestones = [_done("a", 0, 30), _done("b", 1, 60), _done("c", 12, 30), _todo("d")]
        metrics = calculate_progress_metrics(milestones, NOW)
        assert metrics.total_milestones == 4
        assert metrics.completed_milestones == 3
        assert metrics.completion_percentage == 75
        assert metrics.total_time_spent == 120
        assert metrics.average_time_per_milestone == 40
        assert metrics.current_streak == 2
        assert metrics.longest_streak == 2
        assert metrics.learning_velocity == pytest.approx(2 / 7, abs=1e-4)
        assert metrics.time_spent_today == 30
        assert metrics.time_spent_this_week == 90
        assert metrics.time_spent_this_month == 120
        # one remaining milestone at 2/7 per day = 3.5 days
        assert metrics.estimated_time_to_complete == 5040

    def test_all_complete_eta_zero(self):
        metrics = calculate_progress_metrics([_done("a", 1)], NOW)
        assert metrics.estimated_time_to_complete == 0

    def test_stalled_eta_unknown(self):
        metrics = calculate_progress_metrics([_done("a", 40), _todo("b")], NOW)
        assert metrics.estimated_time_to_complete is None

    def test_empty(self):
        metrics = calculate_progress_metrics([], NOW)
        assert metrics.total_milestones == 0
        assert metrics.completion_percentage == 0
        assert metrics.average_time_per_milestone == 0


class TestProgressOptions:
    """Streak threshold and time range passed through ``ProgressOptions``."""

    def test_min_time_spent_filters_streak_days(self):
        milestones = [_done("a", 0, 5), _done("b", 1, 60), _done("c", 2, 45)]
        plain = calculate_progress_metrics(milestones, NOW)
        strict = calculate_progress_metrics(milestones, NOW, ProgressOptions(min_time_spent=10))
        assert plain.current_streak == 3
        # today's 5 minutes no longer count, so the streak ends yesterday
        assert strict.current_streak == 2
        assert strict.longest_streak == 2

    def test_range_limits_total_time(self):
        milestones = [_done("a", 0, 30), _done("b", 1, 60), _done("c", 12, 30)]
        options = ProgressOptions(start=NOW - timedelta(days=2), end=NOW)
        metrics = calculate_progress_metrics(milestones, NOW, options)
        assert metrics.total_time_spent == 90
        assert metrics.completed_milestones == 3

    def test_wire_names_accepted(self):
        options = ProgressOptions.model_validate(
            {"minTimeSpent": 15, "start": "2025-03-14T00:00:00Z"}
        )
        assert options.min_time_spent == 15
        assert options.start == datetime(2025, 3, 14, tzinfo=timezone.utc)
        assert options.end is None

    def test_none_matches_defaults(self):
        milestones = [_done("a", 0), _done("b", 3), _todo("c")]
        assert calculate_progress_metrics(milestones, NOW) == calculate_progress_metrics(
            milestones, NOW, ProgressOptions()
        )


# =========================================================================
# Naive "now"
# =========================================================================


NAIVE_NOW = datetime(2025, 3, 15, 12, 0)


class TestNaiveNow:
    """A naive ``now`` is read as UTC instead of failing to compare."""

    def _milestones(self):
        return [
            Milestone(id="a", title="A", completed=True, completed_at="2025-03-15T10:00:00Z", time_spent=30),
            Milestone(id="b", title="B", completed=True, completed_at="2025-03-14T09:00:00Z", time_spent=20),
            _todo("c"),
        ]

    def test_metrics(self):
        metrics = calculate_progress_metrics(self._milestones(), NAIVE_NOW)
        assert metrics == calculate_progress_metrics(self._milestones(), NOW)
        assert metrics.time_spent_today == 30
        assert metrics.current_streak == 2

    def test_streak_velocity_trend(self):
        milestones = self._milestones()
        assert current_streak(milestones, NAIVE_NOW) == 2
        assert learning_velocity(milestones, 7, NAIVE_NOW) == pytest.approx(2 / 7)
        trend = progress_trend(milestones, "week", NAIVE_NOW)
        assert trend.current_count == 2
        assert trend.direction == "up"

    def test_naive_range_bounds(self):
        total = total_time_spent(self._milestones(), datetime(2025, 3, 15), NAIVE_NOW)
        assert total == 30


class TestSkillSummary:
    """Per-path status and current milestone."""

    def test_not_started(self):
        summary = generate_skill_summary(LearningPath(id="p", topic="Go", milestones=[_todo("a")]))
        assert summary.status == "not-started"
        assert summary.current_milestone.id == "a"

    def test_in_progress(self):
        path = LearningPath(id="p", topic="Go", milestones=[_done("a", 1), _todo("b"), _todo("c")])
        summary = generate_skill_summary(path)
        assert summary.status == "in-progress"
        assert summary.progress_percentage == 33
        assert summary.current_milestone.id == "b"

    def test_completed(self):
        path = LearningPath(id="p", topic="Go", milestones=[_done("a", 1)])
        summary = generate_skill_summary(path)
        assert summary.status == "completed"
        assert summary.current_milestone is None
