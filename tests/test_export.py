"""
pytest suite for progress export / import and the large-dataset helpers.
"""

import csv
import io
import json
import logging
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from roadmap_engine.models import Achievement, AchievementCriterion, ExportOptions, LearningPath, Milestone, ProgressState
from roadmap_engine.progress.export import (
    CSV_HEADER,
    EXPORT_VERSION,
    MAX_DATASET_SIZE,
    export_progress_data,
    import_progress_data,
    measure_performance,
    optimize_dataset,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture()
def state():
    milestones = [
        Milestone(id="m1", title="Syntax", type="video", completed=True,
                  completed_at=NOW - timedelta(days=1), time_spent=30, score=90),
        Milestone(id="m2", title="Collections", type="article", completed=True,
                  completed_at=NOW - timedelta(days=10), time_spent=45),
        Milestone(id="m3", title="Classes", type="exercise"),
    ]
    achievements = [
        Achievement(id="first", title="First Steps",
                    criteria=[AchievementCriterion(type="milestones_completed", required=1)],
                    unlocked=True, unlocked_at=NOW - timedelta(days=1)),
        Achievement(id="ten", title="Ten Down",
                    criteria=[AchievementCriterion(type="milestones_completed", required=10)]),
    ]
    return ProgressState(
        learning_paths={"p1": LearningPath(id="p1", topic="Python", milestones=milestones)},
        achievements=achievements,
    )


def _csv_rows(text):
    return list(csv.reader(io.StringIO(text)))


# =========================================================================
# JSON
# =========================================================================


class TestJsonExport:
    """The aggregate document and its pruning flags."""

    def test_document(self, state):
        doc = json.loads(export_progress_data(state, ExportOptions(), NOW))
        assert doc["version"] == EXPORT_VERSION
        assert doc["exportDate"].startswith("2025-03-15T12:00:00")
        assert [p["id"] for p in doc["learningPaths"]] == ["p1"]
        assert [a["id"] for a in doc["achievements"]] == ["first", "ten"]

        analytics = doc["analytics"]
        assert analytics["totalMilestones"] == 3
        assert analytics["completedMilestones"] == 2
        assert analytics["totalTimeSpent"] == 75
        assert analytics["timeByType"] == {"video": 30, "article": 45, "exercise": 0, "quiz": 0}
        assert analytics["currentStreak"] == 1
        assert analytics["longestStreak"] == 1

    def test_flags_prune(self, state):
        options = ExportOptions(include_analytics=False, include_achievements=False)
        doc = json.loads(export_progress_data(state, options, NOW))
        assert "analytics" not in doc
        assert "achievements" not in doc
        assert doc["learningPaths"]

    def test_date_range_limits_analytics(self, state):
        options = ExportOptions(start=NOW - timedelta(days=7), end=NOW)
        analytics = json.loads(export_progress_data(state, options, NOW))["analytics"]
        assert analytics["totalTimeSpent"] == 30
        assert analytics["timeByType"]["article"] == 0
        # counts ignore the range
        assert analytics["completedMilestones"] == 2

    def test_mapping_inputs(self, state):
        text = export_progress_data(state.to_wire(), {"format": "json", "includeAchievements": False}, NOW)
        assert "achievements" not in json.loads(text)

    def test_logs_export(self, state, caplog):
        with caplog.at_level(logging.INFO, logger="roadmap_engine.progress.export"):
            export_progress_data(state, now=NOW)
        assert any("progress_exported" in r.getMessage() for r in caplog.records)

    def test_naive_now(self, state):
        naive = datetime(2025, 3, 15, 12, 0)
        doc = json.loads(export_progress_data(state, ExportOptions(), naive))
        assert doc == json.loads(export_progress_data(state, ExportOptions(), NOW))
        assert doc["exportDate"] == "2025-03-15T12:00:00+00:00"
        assert doc["analytics"]["currentStreak"] == 1

    def test_naive_now_report(self, state):
        text = export_progress_data(state, ExportOptions(format="pdf"), datetime(2025, 3, 15, 12, 0))
        assert text.startswith("Progress Report - Mar 15, 2025")


# =========================================================================
# CSV & report
# =========================================================================


class TestCsvExport:
    """One row per milestone and achievement."""

    def test_rows(self, state):
        rows = _csv_rows(export_progress_data(state, ExportOptions(format="csv"), NOW))
        assert rows[0] == CSV_HEADER
        assert len(rows) == 1 + 3 + 2
        assert rows[1][:4] == ["Milestone", "m1", "Syntax", "Completed"]
        assert rows[1][4].startswith("2025-03-14T12:00:00")
        assert rows[3][:4] == ["Milestone", "m3", "Classes", "Incomplete"]
        assert rows[3][4] == ""
        assert rows[3][6] == ""
        assert rows[4][3] == "Unlocked"
        assert rows[5][3] == "Locked"

    def test_without_achievements(self, state):
        options = ExportOptions(format="csv", include_achievements=False)
        rows = _csv_rows(export_progress_data(state, options, NOW))
        assert all(row[0] == "Milestone" for row in rows[1:])

    def test_quoting(self, state):
        state.learning_paths["p1"].milestones[0].title = 'Lists, "tuples"'
        rows = _csv_rows(export_progress_data(state, ExportOptions(format="csv"), NOW))
        assert rows[1][2] == 'Lists, "tuples"'


class TestReportExport:
    """Plain-text report for the "pdf" format."""

    def test_report(self, state):
        text = export_progress_data(state, ExportOptions(format="pdf"), NOW)
        lines = text.split("\n")
        assert lines[0] == "Progress Report - Mar 15, 2025"
        assert "Total Milestones: 3" in lines
        assert "Completed: 2" in lines
        assert "Total Time: 1 hour 15 minutes" in lines
        assert "Current Streak: 1 days" in lines
        assert "Python: 2/3 milestones" in lines
        assert "  [x] Syntax" in lines
        assert "  [ ] Classes" in lines
        assert "  🏆 First Steps" in lines
        assert not any("Ten Down" in line for line in lines)


# =========================================================================
# Import
# =========================================================================


class TestImport:
    """JSON exports restore the exported records."""

    def test_round_trip(self, state):
        restored = import_progress_data(export_progress_data(state, now=NOW))
        assert restored is not None
        assert restored.learning_paths == state.learning_paths
        assert restored.achievements == state.achievements

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            json.dumps({"version": "2.0", "learningPaths": []}),
            json.dumps({"version": EXPORT_VERSION, "learningPaths": [{"id": "p"}]}),
            json.dumps([1, 2, 3]),
        ],
    )
    def test_invalid(self, text):
        assert import_progress_data(text) is None


# =========================================================================
# Large datasets
# =========================================================================


class TestOptimizeDataset:
    """Even, order-preserving sampling."""

    def test_small_unchanged(self):
        assert optimize_dataset([3, 1, 2]) == [3, 1, 2]

    def test_sampled(self):
        records = list(range(25000))
        sampled = optimize_dataset(records)
        assert len(sampled) == MAX_DATASET_SIZE
        assert sampled[0] == 0
        assert sampled[-1] == 24999
        assert sampled == sorted(sampled)

    def test_zero_size(self):
        assert optimize_dataset([1, 2, 3], 0) == []


class TestMeasurePerformance:
    def test_returns_result_and_timing(self):
        result, timing = measure_performance(lambda: sum(range(10)), "sum")
        assert result == 45
        assert timing["calculationTime"] >= 0
