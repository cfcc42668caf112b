"""
pytest suite for duration and date formatting.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from roadmap_engine.models import Milestone
from roadmap_engine.progress.formatting import (
    format_date,
    format_datetime,
    format_duration,
    format_time_difference,
    format_time_spent,
    get_time_since_last_activity,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


class TestDurations:
    """Minute counts rendered long and short."""

    @pytest.mark.parametrize(
        "minutes, expected",
        [
            (0, "0 minutes"),
            (1, "1 minute"),
            (45, "45 minutes"),
            (60, "1 hour"),
            (61, "1 hour 1 minute"),
            (90, "1 hour 30 minutes"),
            (120, "2 hours"),
            (None, "0 minutes"),
            (-10, "0 minutes"),
        ],
    )
    def test_format_time_spent(self, minutes, expected):
        assert format_time_spent(minutes) == expected

    @pytest.mark.parametrize("minutes, expected", [(90, "1h 30m"), (45, "45m"), (120, "2h"), (0, "0m")])
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected


class TestDates:
    """Absolute and relative dates."""

    def test_format_date(self):
        assert format_date(NOW) == "Mar 15, 2025"
        assert format_date("2025-01-02T08:00:00Z") == "Jan 02, 2025"

    def test_format_datetime(self):
        assert format_datetime(NOW) == "Mar 15, 2025 12:00"

    def test_invalid(self):
        assert format_date("not a date") == ""
        assert format_time_difference(None, NOW) == ""

    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(seconds=30), "just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=3), "3 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=2, hours=5), "2 days ago"),
            (timedelta(days=10), "Mar 05, 2025"),
        ],
    )
    def test_format_time_difference(self, delta, expected):
        assert format_time_difference(NOW - delta, NOW) == expected

    def test_naive_now(self):
        naive = datetime(2025, 3, 15, 12, 0)
        assert format_time_difference(NOW - timedelta(hours=3), naive) == "3 hours ago"
        assert format_time_difference("2025-03-14T12:00:00Z", naive) == "1 day ago"


class TestTimeSinceLastActivity:
    """Latest completion drives the label."""

    def test_latest_completion(self):
        milestones = [
            Milestone(id="a", title="a", completed=True, completed_at=NOW - timedelta(days=3)),
            Milestone(id="b", title="b", completed=True, completed_at=NOW - timedelta(hours=2)),
        ]
        assert get_time_since_last_activity(milestones, NOW) == "2 hours ago"

    def test_no_activity(self):
        assert get_time_since_last_activity([Milestone(id="a", title="a")], NOW) == "No activity yet"

    def test_naive_now(self):
        milestones = [Milestone(id="a", title="a", completed=True, completed_at=NOW - timedelta(minutes=5))]
        assert get_time_since_last_activity(milestones, datetime(2025, 3, 15, 12, 0)) == "5 minutes ago"
