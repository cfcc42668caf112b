"""
Progress export / import.

``export_progress_data`` builds one aggregate document and serializes it
as JSON, CSV or a plain-text report ("pdf"). The aggregate is built once;
the flags in ``ExportOptions`` prune it before serialization. A date range
restricts the analytics block to milestones completed inside the range.
"""

import csv
import io
import json
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

import numpy as np
from pydantic import ValidationError

from roadmap_engine.models import ExportOptions, Milestone, ProgressState
from roadmap_engine.progress.analytics import (
    current_streak,
    longest_streak,
    time_by_type,
    total_time_spent,
)
from roadmap_engine.progress.formatting import format_date, format_time_spent
from roadmap_engine.utils import as_utc, timed

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
MAX_DATASET_SIZE = 10000
CSV_HEADER = ["Type", "ID", "Title", "Status", "Completed At", "Time Spent", "Score"]

T = TypeVar("T")


def _in_range(m: Milestone, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is None and end is None:
        return True
    if m.completed_at is None:
        return False
    if start is not None and m.completed_at < start:
        return False
    if end is not None and m.completed_at > end:
        return False
    return True


def build_export_document(
    state: ProgressState, options: ExportOptions, now: datetime
) -> Dict[str, Any]:
    """The canonical aggregate shared by every output format."""
    now = as_utc(now)
    doc: Dict[str, Any] = {
        "exportDate": now.isoformat(),
        "version": EXPORT_VERSION,
        "learningPaths": [path.to_wire() for path in state.learning_paths.values()],
    }

    if options.include_achievements:
        doc["achievements"] = [a.to_wire() for a in state.achievements]

    if options.include_analytics:
        milestones = state.all_milestones()
        ranged = [m for m in milestones if _in_range(m, options.start, options.end)]
        doc["analytics"] = {
            "totalMilestones": len(milestones),
            "completedMilestones": sum(1 for m in milestones if m.completed),
            "totalTimeSpent": total_time_spent(ranged),
            "timeByType": time_by_type(ranged),
            "currentStreak": current_streak(milestones, now),
            "longestStreak": longest_streak(milestones),
        }
    return doc


def _to_json(doc: Mapping[str, Any]) -> str:
    return json.dumps(doc, indent=2, ensure_ascii=False)


def _to_csv(doc: Mapping[str, Any]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for path in doc["learningPaths"]:
        for m in path.get("milestones", []):
            writer.writerow([
                "Milestone",
                m["id"],
                m["title"],
                "Completed" if m.get("completed") else "Incomplete",
                m.get("completedAt") or "",
                m.get("timeSpent") or 0,
                "" if m.get("score") is None else m["score"],
            ])
    for a in doc.get("achievements", []):
        writer.writerow([
            "Achievement",
            a["id"],
            a["title"],
            "Unlocked" if a.get("unlocked") else "Locked",
            a.get("unlockedAt") or "",
            "",
            "",
        ])
    return buf.getvalue().rstrip("\n")


def _to_report(doc: Mapping[str, Any], now: datetime) -> str:
    analytics = doc.get("analytics") or {}
    lines = [
        f"Progress Report - {format_date(now)}",
        "",
        f"Total Milestones: {analytics.get('totalMilestones', 0)}",
        f"Completed: {analytics.get('completedMilestones', 0)}",
        f"Total Time: {format_time_spent(analytics.get('totalTimeSpent', 0))}",
        f"Current Streak: {analytics.get('currentStreak', 0)} days",
    ]
    for path in doc["learningPaths"]:
        milestones = path.get("milestones", [])
        done = sum(1 for m in milestones if m.get("completed"))
        lines.append("")
        lines.append(f"{path['topic']}: {done}/{len(milestones)} milestones")
        for m in milestones:
            mark = "x" if m.get("completed") else " "
            lines.append(f"  [{mark}] {m['title']}")
    achievements = [a for a in doc.get("achievements", []) if a.get("unlocked")]
    if achievements:
        lines.append("")
        lines.append("Achievements:")
        lines.extend(f"  {a.get('icon', '')} {a['title']}".rstrip() for a in achievements)
    return "\n".join(lines)


def export_progress_data(
    state: Union[ProgressState, Mapping[str, Any]],
    options: Union[ExportOptions, Mapping[str, Any], None] = None,
    now: Optional[datetime] = None,
) -> str:
    """Serialize *state* per ``options.format`` (json, csv or pdf)."""
    if not isinstance(state, ProgressState):
        state = ProgressState.model_validate(dict(state))
    if options is None:
        options = ExportOptions()
    elif not isinstance(options, ExportOptions):
        options = ExportOptions.model_validate(dict(options))
    now = as_utc(now)

    doc = build_export_document(state, options, now)
    if options.format == "csv":
        text = _to_csv(doc)
    elif options.format == "pdf":
        text = _to_report(doc, now)
    else:
        text = _to_json(doc)
    logger.info(
        "progress_exported | format=%s | paths=%d | chars=%d",
        options.format,
        len(doc["learningPaths"]),
        len(text),
    )
    return text


def import_progress_data(text: str) -> Optional[ProgressState]:
    """Parse a JSON export back into a ``ProgressState``; ``None`` if unusable."""
    try:
        doc = json.loads(text)
    except (TypeError, ValueError) as exc:
        logger.warning("import_failed | reason=invalid json | error=%s", exc)
        return None
    if not isinstance(doc, dict) or doc.get("version") != EXPORT_VERSION:
        logger.warning("import_failed | reason=unsupported version")
        return None

    paths = doc.get("learningPaths", [])
    if isinstance(paths, list):
        paths = {p.get("id"): p for p in paths if isinstance(p, dict)}
    try:
        return ProgressState.model_validate(
            {
                "learningPaths": paths,
                "achievements": doc.get("achievements", []),
                "aiCreditProtection": doc.get("aiCreditProtection", False),
            }
        )
    except ValidationError as exc:
        logger.warning("import_failed | reason=invalid records | errors=%d", exc.error_count())
        return None


# ---------------------------------------------------------------------------
# Large datasets
# ---------------------------------------------------------------------------


def optimize_dataset(records: Sequence[T], max_size: int = MAX_DATASET_SIZE) -> List[T]:
    """Evenly sample *records* down to at most *max_size* items, keeping order."""
    if len(records) <= max_size:
        return list(records)
    if max_size <= 0:
        return []
    indices = np.unique(np.linspace(0, len(records) - 1, num=max_size).round().astype(int))
    return [records[i] for i in indices]


def measure_performance(fn: Callable[[], T], description: str = "operation") -> Tuple[T, Dict[str, float]]:
    """Run *fn* and return its result with the elapsed milliseconds."""
    t0 = time.monotonic()
    with timed(description):
        result = fn()
    elapsed_ms = (time.monotonic() - t0) * 1000.0
    return result, {"calculationTime": round(elapsed_ms, 3)}
