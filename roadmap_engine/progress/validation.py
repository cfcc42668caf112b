"""
Validation and sanitization of progress records.

``validate_*`` inspect raw (possibly malformed) records and return a
``ValidationResult``: errors block acceptance, warnings flag states that
are inconsistent but tolerated (e.g. completed without a timestamp).

``sanitize_*`` never raise. They trim strings, clamp numbers, coerce
loose booleans, substitute enum defaults and fill missing timestamps with
the current time. Sanitizing twice gives the same result as once.
"""

import hashlib
import logging
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from roadmap_engine.domain_tables import CRITERION_TYPES
from roadmap_engine.models import (
    MILESTONE_TYPES,
    QUERY_TYPES,
    Achievement,
    AchievementCriterion,
    LearningPath,
    Milestone,
    ValidationResult,
)
from roadmap_engine.utils import clamp, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

RecordLike = Union[BaseModel, Mapping[str, Any]]

_TRUE_STRINGS = {"true", "yes", "y", "1", "on", "completed", "done"}
_TAG_RE = re.compile(r"<[^>]*>")


def _raw(record: Any) -> Dict[str, Any]:
    """Wire-shaped dict for a model or mapping; anything else is empty."""
    if isinstance(record, BaseModel):
        return record.model_dump(by_alias=True)
    if isinstance(record, Mapping):
        return dict(record)
    return {}


def _get(raw: Mapping[str, Any], camel: str, snake: Optional[str] = None) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake) if snake else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def sanitize_user_input(text: Any) -> str:
    """Strip HTML tags and surrounding whitespace from free text."""
    if not isinstance(text, str):
        return ""
    return _TAG_RE.sub("", text).strip()


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


# =========================================================================
# Validation
# =========================================================================


def validate_milestone(record: RecordLike) -> ValidationResult:
    raw = _raw(record)
    errors: List[str] = []
    warnings: List[str] = []

    if _blank(raw.get("id")):
        errors.append("id is required")
    if _blank(raw.get("title")):
        errors.append("title is required")
    if raw.get("type") not in MILESTONE_TYPES:
        errors.append(f"type must be one of {', '.join(MILESTONE_TYPES)}")

    for camel, snake in (("estimatedTime", "estimated_time"), ("timeSpent", "time_spent")):
        value = _get(raw, camel, snake)
        if value is None:
            continue
        number = _number(value)
        if number is None:
            errors.append(f"{camel} must be a number")
        elif number < 0:
            errors.append(f"{camel} must not be negative")

    score = raw.get("score")
    if score is not None:
        number = _number(score)
        if number is None or not 0 <= number <= 100:
            errors.append("score must be between 0 and 100")

    completed = raw.get("completed", False)
    if not isinstance(completed, bool):
        errors.append("completed must be a boolean")

    completed_at = _get(raw, "completedAt", "completed_at")
    if completed_at is not None and parse_timestamp(completed_at) is None:
        errors.append("completedAt is not a valid timestamp")

    if completed is True and completed_at is None:
        warnings.append("milestone is completed but has no completedAt")
    if completed is False and completed_at is not None:
        warnings.append("milestone has completedAt but is not completed")
    if completed is True and _number(_get(raw, "timeSpent", "time_spent")) in (None, 0.0):
        warnings.append("milestone is completed with no time logged")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_learning_path(record: RecordLike) -> ValidationResult:
    raw = _raw(record)
    errors: List[str] = []
    warnings: List[str] = []

    if _blank(raw.get("id")):
        errors.append("id is required")
    if _blank(raw.get("topic")):
        errors.append("topic is required")

    query_type = _get(raw, "queryType", "query_type")
    if query_type is not None and query_type not in QUERY_TYPES:
        errors.append(f"queryType '{query_type}' is not recognised")

    created = _get(raw, "createdAt", "created_at")
    updated = _get(raw, "updatedAt", "updated_at")
    created_ts, updated_ts = parse_timestamp(created), parse_timestamp(updated)
    if created is not None and created_ts is None:
        errors.append("createdAt is not a valid timestamp")
    if updated is not None and updated_ts is None:
        errors.append("updatedAt is not a valid timestamp")
    if created_ts and updated_ts and updated_ts < created_ts:
        warnings.append("updatedAt is earlier than createdAt")

    milestones = raw.get("milestones")
    if not isinstance(milestones, list):
        errors.append("milestones must be a list")
        milestones = []
    elif not milestones:
        warnings.append("learning path has no milestones")

    seen = set()
    for i, milestone in enumerate(milestones):
        result = validate_milestone(milestone)
        errors.extend(f"milestones[{i}]: {e}" for e in result.errors)
        warnings.extend(f"milestones[{i}]: {w}" for w in result.warnings)
        mid = _raw(milestone).get("id")
        if isinstance(mid, str) and mid:
            if mid in seen:
                errors.append(f"milestones[{i}]: duplicate id '{mid}'")
            seen.add(mid)

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_achievement(record: RecordLike) -> ValidationResult:
    raw = _raw(record)
    errors: List[str] = []
    warnings: List[str] = []

    if _blank(raw.get("id")):
        errors.append("id is required")
    if _blank(raw.get("title")):
        errors.append("title is required")

    criteria = raw.get("criteria")
    if not isinstance(criteria, list) or not criteria:
        errors.append("criteria must be a non-empty list")
        criteria = []
    for i, criterion in enumerate(criteria):
        c = _raw(criterion)
        if _blank(c.get("type")):
            errors.append(f"criteria[{i}]: type is required")
        elif c["type"] not in CRITERION_TYPES:
            warnings.append(f"criteria[{i}]: unknown type '{c['type']}'")
        required = _number(c.get("required"))
        if required is None or required <= 0:
            errors.append(f"criteria[{i}]: required must be a positive number")

    unlocked = raw.get("unlocked", False)
    unlocked_at = _get(raw, "unlockedAt", "unlocked_at")
    if not isinstance(unlocked, bool):
        errors.append("unlocked must be a boolean")
    if unlocked_at is not None and parse_timestamp(unlocked_at) is None:
        errors.append("unlockedAt is not a valid timestamp")
    if unlocked is True and unlocked_at is None:
        warnings.append("achievement is unlocked but has no unlockedAt")
    if unlocked is False and unlocked_at is not None:
        warnings.append("achievement has unlockedAt but is locked")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


# =========================================================================
# Sanitization
# =========================================================================


def _clean_text(value: Any, default: str = "") -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    cleaned = sanitize_user_input(value)
    return cleaned or default


def _non_negative(value: Any) -> float:
    number = _number(value)
    return max(0.0, number) if number is not None else 0.0


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [s for s in (_clean_text(v) for v in value) if s]


def sanitize_milestone(record: RecordLike, now: Optional[datetime] = None) -> Milestone:
    raw = _raw(record)
    title = _clean_text(raw.get("title"), "Untitled milestone")
    mid = _clean_text(raw.get("id"))
    if not mid:
        mid = "milestone-" + hashlib.sha1(title.encode("utf-8")).hexdigest()[:8]

    mtype = raw.get("type")
    mtype = mtype.strip().lower() if isinstance(mtype, str) else ""
    completed = coerce_bool(raw.get("completed", False))
    completed_at = parse_timestamp(_get(raw, "completedAt", "completed_at"))
    if completed and completed_at is None:
        completed_at = now or utcnow()

    score = _number(raw.get("score"))
    notes = _clean_text(raw.get("notes")) or None

    return Milestone(
        id=mid,
        title=title,
        description=_clean_text(raw.get("description")),
        type=mtype if mtype in MILESTONE_TYPES else "video",
        estimated_time=_non_negative(_get(raw, "estimatedTime", "estimated_time")),
        completed=completed,
        completed_at=completed_at,
        time_spent=_non_negative(_get(raw, "timeSpent", "time_spent")),
        score=clamp(score) if score is not None else None,
        notes=notes,
    )


def sanitize_learning_path(record: RecordLike, now: Optional[datetime] = None) -> LearningPath:
    raw = _raw(record)
    now = now or utcnow()
    topic = _clean_text(raw.get("topic"), "Untitled topic")
    pid = _clean_text(raw.get("id"))
    if not pid:
        pid = "path-" + hashlib.sha1(topic.encode("utf-8")).hexdigest()[:8]

    raw_milestones = raw.get("milestones")
    milestones = [
        sanitize_milestone(m, now)
        for m in (raw_milestones if isinstance(raw_milestones, list) else [])
        if isinstance(m, (Mapping, BaseModel))
    ]

    query_type = _get(raw, "queryType", "query_type")
    if query_type is not None and query_type not in QUERY_TYPES:
        query_type = "comprehensive-learning"

    created_at = parse_timestamp(_get(raw, "createdAt", "created_at")) or now
    updated_at = parse_timestamp(_get(raw, "updatedAt", "updated_at")) or created_at

    return LearningPath(
        id=pid,
        topic=topic,
        milestones=milestones,
        created_at=created_at,
        updated_at=updated_at,
        query_type=query_type,
        overview=_clean_text(raw.get("overview")),
        total_estimated_time=_clean_text(_get(raw, "totalEstimatedTime", "total_estimated_time")),
        prerequisites=_string_list(raw.get("prerequisites")),
        tips=_string_list(raw.get("tips")),
    )


def sanitize_achievement(record: RecordLike, now: Optional[datetime] = None) -> Achievement:
    raw = _raw(record)
    title = _clean_text(raw.get("title"), "Achievement")
    aid = _clean_text(raw.get("id"))
    if not aid:
        aid = "achievement-" + hashlib.sha1(title.encode("utf-8")).hexdigest()[:8]

    criteria: List[AchievementCriterion] = []
    raw_criteria = raw.get("criteria")
    for c in raw_criteria if isinstance(raw_criteria, list) else []:
        c = _raw(c)
        required = _number(c.get("required"))
        criteria.append(
            AchievementCriterion(
                type=_clean_text(c.get("type"), "milestones_completed"),
                required=required if required is not None and required > 0 else 1.0,
                description=_clean_text(c.get("description")),
            )
        )
    if not criteria:
        criteria = [AchievementCriterion(type="milestones_completed", required=1.0)]

    unlocked = coerce_bool(raw.get("unlocked", False))
    unlocked_at = parse_timestamp(_get(raw, "unlockedAt", "unlocked_at"))
    if unlocked and unlocked_at is None:
        unlocked_at = now or utcnow()

    return Achievement(
        id=aid,
        title=title,
        description=_clean_text(raw.get("description")),
        icon=_clean_text(raw.get("icon"), "🏆"),
        criteria=criteria,
        unlocked=unlocked,
        unlocked_at=unlocked_at,
    )
