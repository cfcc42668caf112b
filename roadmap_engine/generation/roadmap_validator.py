"""
Parsing and repair of AI-generated roadmap and customization payloads.

Model output is free-form text that should contain one JSON object. It is
extracted by brace-depth scanning (string literals and escapes are
respected, so ``"{"`` inside a value does not confuse the scanner), parsed,
and then validated into either ``RoadmapData`` or
``RoadmapValidationErrors`` before anything else sees it.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from roadmap_engine.errors import ParseError
from roadmap_engine.models import (
    DIFFICULTIES,
    QUERY_TYPES,
    PracticeActivity,
    RoadmapData,
    RoadmapMilestone,
    RoadmapResource,
    RoadmapValidationErrors,
    TopicCustomization,
)

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_TIME = "8-12 weeks"
DEFAULT_MILESTONE_TIME = "2-3 weeks"
DEFAULT_MILESTONE_DESCRIPTION = "Learn the core concepts of this stage and practise them."
DEFAULT_QUERY_TYPE = "comprehensive-learning"

CUSTOMIZATION_FIELDS = ("category", "font", "icon", "accentColor", "background")


# =========================================================================
# JSON extraction
# =========================================================================


def extract_json_object(text: str) -> str:
    """Return the first balanced ``{...}`` block in *text*.

    Raises:
        ParseError: No ``{`` is present or the object never closes.
    """
    start = text.find("{")
    if start == -1:
        raise ParseError("no JSON object found in model output", text)

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]

    raise ParseError("unterminated JSON object in model output", text)


def parse_json_object(text: str) -> Dict[str, Any]:
    """Extract and decode the JSON object embedded in *text*.

    Raises:
        ParseError: Extraction or decoding failed.
    """
    block = extract_json_object(text or "")
    try:
        data = json.loads(block)
    except json.JSONDecodeError as exc:
        raise ParseError(f"malformed JSON in model output: {exc.msg}", block) from exc
    if not isinstance(data, dict):
        raise ParseError("model output JSON is not an object", block)
    return data


# =========================================================================
# Coercion helpers
# =========================================================================


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _optional_text(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _difficulty(value: Any) -> str:
    value = value.strip().lower() if isinstance(value, str) else value
    return value if value in DIFFICULTIES else "beginner"


def _repair_practice(raw: Any, difficulty: str) -> PracticeActivity:
    if not isinstance(raw, Mapping):
        return PracticeActivity(difficulty=difficulty)
    default = PracticeActivity()
    return PracticeActivity(
        title=_text(raw.get("title"), default.title),
        instructions=_text(raw.get("instructions"), default.instructions),
        estimated_time=_text(raw.get("estimatedTime"), default.estimated_time),
        difficulty=_difficulty(raw.get("difficulty", difficulty)),
        code_example=_optional_text(raw.get("codeExample")),
        expected_outcome=_text(raw.get("expectedOutcome"), default.expected_outcome),
    )


def _repair_resources(raw: Any) -> List[RoadmapResource]:
    if not isinstance(raw, list):
        return []
    resources = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        resources.append(
            RoadmapResource(
                type=_text(item.get("type"), "article"),
                title=_optional_text(item.get("title")),
                url=_optional_text(item.get("url")),
                description=_text(item.get("description"), ""),
                duration=_optional_text(item.get("duration")),
                search_terms=_string_list(item.get("searchTerms")),
            )
        )
    return resources


def _repair_milestone(raw: Any, index: int, seen_ids: set) -> RoadmapMilestone:
    raw = raw if isinstance(raw, Mapping) else {}
    mid = _text(raw.get("id"), f"milestone-{index}")
    if mid in seen_ids:
        mid = f"milestone-{index}"
        suffix = 1
        while mid in seen_ids:
            mid = f"milestone-{index}-{suffix}"
            suffix += 1
    seen_ids.add(mid)

    difficulty = _difficulty(raw.get("difficulty"))
    level = raw.get("levelNumber")
    if not isinstance(level, int) or isinstance(level, bool) or level < 1:
        level = index + 1

    return RoadmapMilestone(
        id=mid,
        title=_text(raw.get("title"), f"Milestone {index + 1}"),
        description=_text(raw.get("description"), DEFAULT_MILESTONE_DESCRIPTION),
        estimated_time=_text(raw.get("estimatedTime"), DEFAULT_MILESTONE_TIME),
        difficulty=difficulty,
        level_number=level,
        practice_activity=_repair_practice(raw.get("practiceActivity"), difficulty),
        pro_tips=_string_list(raw.get("proTips")),
        common_errors=_string_list(raw.get("commonErrors")),
        resources=_repair_resources(raw.get("resources")),
    )


# =========================================================================
# Public API
# =========================================================================


def validate_and_repair_roadmap(
    payload: Any, topic: str
) -> Union[RoadmapData, RoadmapValidationErrors]:
    """Validate an untyped roadmap payload, repairing what can be repaired.

    Repairs: unknown ``queryType`` becomes ``comprehensive-learning``, empty
    ``overview`` / ``totalEstimatedTime`` get defaults, non-list
    ``prerequisites`` / ``tips`` / ``resources`` become empty, and each
    milestone gets an id, title, description and a valid difficulty.

    Only structural problems (payload not an object, ``milestones`` not a
    list) yield ``RoadmapValidationErrors``.
    """
    if not isinstance(payload, Mapping):
        return RoadmapValidationErrors(errors=["roadmap payload must be a JSON object"])

    raw_milestones = payload.get("milestones")
    if raw_milestones is None:
        raw_milestones = []
    if not isinstance(raw_milestones, list):
        return RoadmapValidationErrors(errors=["milestones must be a list"])

    topic = _text(payload.get("topic"), topic)
    query_type = payload.get("queryType")
    if query_type not in QUERY_TYPES:
        if query_type is not None:
            logger.debug("repair | field=queryType | value=%r", query_type)
        query_type = DEFAULT_QUERY_TYPE

    seen: set = set()
    milestones = [_repair_milestone(m, i, seen) for i, m in enumerate(raw_milestones)]

    return RoadmapData(
        topic=topic,
        query_type=query_type,
        overview=_text(payload.get("overview"), f"Learn {topic} step by step"),
        total_estimated_time=_text(payload.get("totalEstimatedTime"), DEFAULT_TOTAL_TIME),
        prerequisites=_string_list(payload.get("prerequisites")),
        tips=_string_list(payload.get("tips")),
        milestones=milestones,
    )


def validate_customization(payload: Any) -> Optional[TopicCustomization]:
    """Return a ``TopicCustomization`` only if every field is a non-empty string."""
    if not isinstance(payload, Mapping):
        return None
    values = {}
    for field in CUSTOMIZATION_FIELDS:
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            logger.debug("customization_missing_field | field=%s", field)
            return None
        values[field] = value.strip()
    return TopicCustomization.model_validate(values)
