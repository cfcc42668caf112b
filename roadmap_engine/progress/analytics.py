"""
Progress analytics over milestone histories.

All functions are pure: they read milestones and return numbers. "Now" is
always injectable so results are reproducible; calendar days are UTC days
of ``completed_at``.

Streak rule: the current streak is the run of consecutive active days that
ends today, or yesterday when nothing has been completed yet today. Any
older last activity means a current streak of 0.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set

from roadmap_engine.models import (
    MILESTONE_TYPES,
    LearningPath,
    Milestone,
    ProgressMetrics,
    ProgressOptions,
    ProgressTrend,
    SkillSummary,
)
from roadmap_engine.utils import as_utc, round_half_up

logger = logging.getLogger(__name__)

TREND_WINDOWS = {"day": 1, "week": 7, "month": 30}
TREND_THRESHOLD_PERCENT = 5.0
DEFAULT_VELOCITY_DAYS = 7


def _completed(milestones: Iterable[Milestone]) -> List[Milestone]:
    return [m for m in milestones if m.completed]


def _completed_between(milestones: Iterable[Milestone], start: datetime, end: datetime) -> List[Milestone]:
    return [
        m for m in milestones
        if m.completed and m.completed_at is not None and start < m.completed_at <= end
    ]


# =========================================================================
# Completion & time
# =========================================================================


def completion_percentage(milestones: Sequence[Milestone]) -> int:
    """``round(100 * completed / total)``; 0 for an empty sequence."""
    if not milestones:
        return 0
    return round_half_up(100.0 * len(_completed(milestones)) / len(milestones))


def total_time_spent(
    milestones: Iterable[Milestone],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> float:
    """Sum of ``time_spent`` in minutes.

    With a range, only milestones whose ``completed_at`` falls inside
    ``[start, end]`` count.
    """
    if start is None and end is None:
        return float(sum(m.time_spent for m in milestones))
    start = as_utc(start) if start is not None else None
    end = as_utc(end) if end is not None else None
    total = 0.0
    for m in milestones:
        if m.completed_at is None:
            continue
        if start is not None and m.completed_at < start:
            continue
        if end is not None and m.completed_at > end:
            continue
        total += m.time_spent
    return total


def time_by_type(milestones: Iterable[Milestone]) -> Dict[str, float]:
    """Minutes per milestone type; every known type is present."""
    totals = {t: 0.0 for t in MILESTONE_TYPES}
    for m in milestones:
        totals[m.type] = totals.get(m.type, 0.0) + m.time_spent
    return totals


# =========================================================================
# Streaks & velocity
# =========================================================================


def active_days(milestones: Iterable[Milestone], min_time_spent: float = 0.0) -> Set[date]:
    """Distinct UTC days with at least one qualifying completion."""
    return {
        m.completed_at.date()
        for m in milestones
        if m.completed and m.completed_at is not None and m.time_spent >= min_time_spent
    }


def longest_streak(milestones: Iterable[Milestone], min_time_spent: float = 0.0) -> int:
    days = sorted(active_days(milestones, min_time_spent))
    best = run = 0
    previous: Optional[date] = None
    for day in days:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        best = max(best, run)
        previous = day
    return best


def current_streak(
    milestones: Iterable[Milestone],
    now: Optional[datetime] = None,
    min_time_spent: float = 0.0,
) -> int:
    days = active_days(milestones, min_time_spent)
    today = as_utc(now).date()
    if today in days:
        cursor = today
    elif today - timedelta(days=1) in days:
        cursor = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def learning_velocity(
    milestones: Iterable[Milestone],
    period_days: int = DEFAULT_VELOCITY_DAYS,
    now: Optional[datetime] = None,
) -> float:
    """Completed milestones per day over the trailing *period_days*."""
    if period_days <= 0:
        return 0.0
    now = as_utc(now)
    recent = _completed_between(milestones, now - timedelta(days=period_days), now)
    return len(recent) / float(period_days)


def progress_trend(
    milestones: Sequence[Milestone],
    period: str = "week",
    now: Optional[datetime] = None,
) -> ProgressTrend:
    """Compare completions in the latest window with the window before it.

    ``change_percentage`` is always non-negative; ``direction`` carries the
    sign. Changes under 5% are ``stable``. Growth from an empty previous
    window counts as 100%.
    """
    window = timedelta(days=TREND_WINDOWS.get(period, TREND_WINDOWS["week"]))
    now = as_utc(now)
    current = len(_completed_between(milestones, now - window, now))
    previous = len(_completed_between(milestones, now - 2 * window, now - window))

    if previous == 0:
        change = 100.0 if current > 0 else 0.0
    else:
        change = (current - previous) / previous * 100.0

    if change > TREND_THRESHOLD_PERCENT:
        direction = "up"
    elif change < -TREND_THRESHOLD_PERCENT:
        direction = "down"
    else:
        direction = "stable"

    return ProgressTrend(
        period=period if period in TREND_WINDOWS else "week",
        direction=direction,
        change_percentage=round(abs(change), 2),
        current_count=current,
        previous_count=previous,
    )


# =========================================================================
# Aggregate metrics
# =========================================================================


def calculate_progress_metrics(
    milestones: Sequence[Milestone],
    now: Optional[datetime] = None,
    options: Optional[ProgressOptions] = None,
) -> ProgressMetrics:
    """Full ``ProgressMetrics`` for *milestones* as of *now*.

    ``options.min_time_spent`` filters streak days; ``options.start`` and
    ``options.end`` restrict ``total_time_spent``.
    """
    now = as_utc(now)
    options = options or ProgressOptions()
    threshold = options.min_time_spent
    total = len(milestones)
    done = len(_completed(milestones))
    spent = total_time_spent(milestones, options.start, options.end)
    velocity = learning_velocity(milestones, DEFAULT_VELOCITY_DAYS, now)

    remaining = total - done
    if remaining == 0:
        eta: Optional[float] = 0.0
    elif velocity > 0:
        eta = float(round_half_up(remaining / velocity * 24 * 60))
    else:
        eta = None

    start_of_today = datetime(now.year, now.month, now.day, tzinfo=now.tzinfo)
    return ProgressMetrics(
        total_milestones=total,
        completed_milestones=done,
        completion_percentage=completion_percentage(milestones),
        total_time_spent=spent,
        average_time_per_milestone=round(spent / done, 2) if done else 0.0,
        learning_velocity=round(velocity, 4),
        current_streak=current_streak(milestones, now, threshold),
        longest_streak=longest_streak(milestones, threshold),
        estimated_time_to_complete=eta,
        time_spent_today=total_time_spent(milestones, start_of_today, now),
        time_spent_this_week=total_time_spent(milestones, now - timedelta(days=7), now),
        time_spent_this_month=total_time_spent(milestones, now - timedelta(days=30), now),
    )


def generate_skill_summary(path: LearningPath) -> SkillSummary:
    """Status, progress and the current (first incomplete) milestone of *path*."""
    milestones = path.milestones
    done = len(_completed(milestones))
    if done == 0 and total_time_spent(milestones) == 0:
        status = "not-started"
    elif milestones and done == len(milestones):
        status = "completed"
    else:
        status = "in-progress"

    return SkillSummary(
        path_id=path.id,
        topic=path.topic,
        status=status,
        progress_percentage=completion_percentage(milestones),
        completed_milestones=done,
        total_milestones=len(milestones),
        total_time_spent=total_time_spent(milestones),
        current_milestone=next((m for m in milestones if not m.completed), None),
    )
