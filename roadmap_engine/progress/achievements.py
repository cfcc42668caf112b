"""
Achievement eligibility.

Each criterion type reads one derived value:

==========================  =========================================
``milestones_completed``    ``metrics.completed_milestones``
``streak_days``             ``metrics.current_streak``
``completion_percentage``   ``metrics.completion_percentage``
``time_spent``              hours logged (``total_time_spent / 60``)
``practice_sessions``       completed exercise + quiz milestones
``paths_completed``         learning paths with every milestone done
==========================  =========================================

Unknown criterion types read 0, so they can never be met.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from roadmap_engine.models import (
    Achievement,
    AchievementCriterion,
    AchievementEligibility,
    CriterionProgress,
    LearningPath,
    Milestone,
    ProgressMetrics,
)
from roadmap_engine.utils import round_half_up

logger = logging.getLogger(__name__)

# Older exports used these names.
_CRITERION_ALIASES = {"milestone_count": "milestones_completed"}


def _criterion_value(
    ctype: str,
    milestones: Sequence[Milestone],
    metrics: ProgressMetrics,
    paths: Sequence[LearningPath],
) -> float:
    ctype = _CRITERION_ALIASES.get(ctype, ctype)
    if ctype == "milestones_completed":
        return metrics.completed_milestones
    if ctype == "streak_days":
        return metrics.current_streak
    if ctype == "completion_percentage":
        return metrics.completion_percentage
    if ctype == "time_spent":
        return round(metrics.total_time_spent / 60.0, 2)
    if ctype == "practice_sessions":
        return sum(1 for m in milestones if m.completed and m.type in ("exercise", "quiz"))
    if ctype == "paths_completed":
        return sum(1 for p in paths if p.milestones and all(m.completed for m in p.milestones))
    logger.debug("unknown_criterion | type=%s", ctype)
    return 0


def _ratio(current: float, required: float) -> float:
    if required <= 0:
        return 100.0
    return min(current / required * 100.0, 100.0)


def _evaluate(
    criterion: AchievementCriterion,
    milestones: Sequence[Milestone],
    metrics: ProgressMetrics,
    paths: Sequence[LearningPath],
) -> CriterionProgress:
    return CriterionProgress(
        type=criterion.type,
        current=_criterion_value(criterion.type, milestones, metrics, paths),
        required=criterion.required,
        description=criterion.description or f"Reach {criterion.required:g} {criterion.type.replace('_', ' ')}",
    )


def check_achievement_eligibility(
    achievements: Iterable[Achievement],
    milestones: Sequence[Milestone],
    metrics: ProgressMetrics,
    paths: Optional[Sequence[LearningPath]] = None,
) -> List[AchievementEligibility]:
    """Evaluate every locked achievement against *metrics*.

    ``progress`` is the lowest per-criterion ratio (0-100). An achievement
    is eligible when every criterion reaches its ``required`` value; one
    without criteria is never eligible. ``estimated_time_to_unlock`` is in
    minutes, extrapolated from the learning velocity (0 when unknown).
    """
    paths = paths or []
    results: List[AchievementEligibility] = []
    for achievement in achievements:
        if achievement.unlocked:
            continue

        criteria = [_evaluate(c, milestones, metrics, paths) for c in achievement.criteria]
        if criteria:
            progress = min(_ratio(c.current, c.required) for c in criteria)
            eligible = all(c.current >= c.required for c in criteria)
        else:
            progress, eligible = 0.0, False

        eta = 0
        if not eligible and metrics.learning_velocity > 0:
            remaining = metrics.total_milestones - metrics.completed_milestones
            eta = round_half_up(remaining / metrics.learning_velocity * 24 * 60)

        results.append(
            AchievementEligibility(
                achievement_id=achievement.id,
                is_eligible=eligible,
                progress=round_half_up(progress),
                criteria=criteria,
                estimated_time_to_unlock=eta,
            )
        )
    return results
