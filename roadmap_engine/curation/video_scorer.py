"""
YouTube video quality scoring.

The composite score weights five 0-100 components with a fixed vector::

    engagement 0.35 | channel authority 0.15 | educational 0.20
    relevance 0.20  | technical 0.10
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np

from roadmap_engine.models import Video
from roadmap_engine.utils import days_between, round_half_up, utcnow

logger = logging.getLogger(__name__)

VIDEO_WEIGHTS = np.array([0.35, 0.15, 0.20, 0.20, 0.10])

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)

_VIEW_TIERS = [
    (1_000_000, 60),
    (500_000, 55),
    (100_000, 50),
    (50_000, 45),
    (10_000, 40),
    (5_000, 35),
    (1_000, 30),
]

_DURATION_POINTS = {"medium": 40, "long": 35, "short": 25, "extended": 20, "micro": 10}

_CHANNEL_KEYWORDS = ["tutorial", "guide", "how to", "learn", "explained", "tips", "tricks", "demo", "example"]
_TITLE_KEYWORDS = [
    "tutorial", "guide", "learn", "explained", "tips", "tricks",
    "demo", "example", "walkthrough", "step by step", "complete",
]
_DESCRIPTION_KEYWORDS = [
    "learn", "understand", "master", "practice", "example",
    "demonstration", "walkthrough", "comprehensive", "detailed", "show",
]
_TAG_KEYWORDS = [
    "tutorial", "guide", "tips", "tricks", "demo", "example",
    "learn", "explained", "walkthrough", "complete",
]
_LEVEL_KEYWORDS = {
    "beginner": ["beginner", "basic", "intro", "starting", "first", "simple", "easy"],
    "intermediate": ["intermediate", "advanced", "next level", "building on", "deeper"],
    "advanced": ["advanced", "expert", "master", "professional", "complex", "sophisticated"],
}
_STRUCTURE_KEYWORDS = [
    "part 1", "episode", "chapter", "section", "module", "lesson",
    "step 1", "complete guide", "full course", "comprehensive",
]
_PRACTICAL_KEYWORDS = [
    "example", "demo", "build", "create", "project", "hands-on",
    "practice", "exercise", "workshop", "lab",
]


# ---------------------------------------------------------------------------
# Duration
# ---------------------------------------------------------------------------


def parse_iso_duration(text: str) -> int:
    """Seconds in an ISO-8601 duration such as ``PT1H2M3S``; 0 if invalid."""
    match = _ISO_DURATION.match((text or "").strip().upper())
    if not match:
        return 0
    parts = {k: int(v) for k, v in match.groupdict().items() if v}
    return (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )


def categorize_video_duration(minutes: float) -> str:
    if minutes < 3:
        return "micro"
    if minutes < 10:
        return "short"
    if minutes < 30:
        return "medium"
    if minutes < 60:
        return "long"
    return "extended"


# ---------------------------------------------------------------------------
# Component scores
# ---------------------------------------------------------------------------


def _count(text: str, keywords: Sequence[str]) -> int:
    return sum(1 for k in keywords if k in text)


def calculate_engagement_score(video: Video) -> int:
    """View-count tier (20-60) plus engagement rate bonus (0-40)."""
    if video.view_count <= 0:
        return 0
    view_points = next((pts for floor, pts in _VIEW_TIERS if video.view_count >= floor), 20)
    rate = (video.like_count + video.comment_count) / video.view_count * 1000
    return min(view_points + min(round_half_up(rate * 8), 40), 100)


def calculate_channel_authority(video: Video) -> int:
    subs = video.subscriber_count
    count = video.channel_video_count
    score = 0

    if subs > 1_000_000:
        score += 40
    elif subs > 100_000:
        score += 30
    elif subs > 10_000:
        score += 20
    elif subs > 1_000:
        score += 10

    if count > 100:
        score += 20
    elif count > 50:
        score += 15
    elif count > 20:
        score += 10
    elif count > 5:
        score += 5

    if video.channel_view_count > 0 and count > 0:
        avg = video.channel_view_count / count
        if avg > 100_000:
            score += 20
        elif avg > 10_000:
            score += 15
        elif avg > 1_000:
            score += 10
        elif avg > 100:
            score += 5

    score += min(_count(video.channel_description.lower(), _CHANNEL_KEYWORDS) * 3, 20)
    return min(score, 100)


def calculate_educational_priority(video: Video) -> int:
    """Educational signal with a strong bias towards "how to" content."""
    title = video.title.lower()
    description = video.description.lower()
    tags = [t.lower() for t in video.tags]
    channel = video.channel_description.lower()
    score = 0

    if "how to" in title:
        score += 40
    else:
        score += min(_count(title, _TITLE_KEYWORDS) * 3, 20)

    if "how to" in description:
        score += 15
    score += min(_count(description, _DESCRIPTION_KEYWORDS), 5)

    if any("how to" in t for t in tags):
        score += 15
    score += min(sum(1 for t in tags if any(k in t for k in _TAG_KEYWORDS)), 5)

    if "how to" in channel or "tutorial" in channel:
        score += 20
    elif "guide" in channel or "tips" in channel:
        score += 10

    return min(score, 100)


def calculate_video_relevance(video: Video, query: str, skill_level: Optional[str] = None) -> int:
    title = video.title.lower()
    description = video.description.lower()
    text = f"{title} {description}"
    words = [w for w in query.lower().split() if len(w) > 2]
    score = 0.0

    if words:
        title_hits = sum(1 for w in words if w in title)
        desc_hits = sum(1 for w in words if w in description)
        score += min(title_hits / len(words) * 30, 30)
        score += min(desc_hits / len(words) * 10, 10)

    if skill_level in _LEVEL_KEYWORDS:
        score += min(_count(text, _LEVEL_KEYWORDS[skill_level]) * 5, 25)
    score += min(_count(text, _STRUCTURE_KEYWORDS) * 4, 20)
    score += min(_count(text, _PRACTICAL_KEYWORDS) * 3, 15)
    return min(round_half_up(score), 100)


def calculate_technical_score(video: Video, now: Optional[datetime] = None) -> int:
    """Duration fit, recency, HD and captions."""
    minutes = parse_iso_duration(video.duration) / 60
    score = _DURATION_POINTS[categorize_video_duration(minutes)]

    if video.published_at is not None:
        age = days_between(video.published_at, now or utcnow())
        if age < 365:
            score += 30
        elif age < 730:
            score += 20
        elif age < 1095:
            score += 10

    if video.definition == "hd":
        score += 15
    if video.caption:
        score += 15
    return min(score, 100)


def calculate_video_score(
    video: Video,
    query: str,
    skill_level: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    """Weighted 0-100 composite of the five component scores."""
    components = np.array(
        [
            calculate_engagement_score(video),
            calculate_channel_authority(video),
            calculate_educational_priority(video),
            calculate_video_relevance(video, query, skill_level),
            calculate_technical_score(video, now),
        ],
        dtype=float,
    )
    return round_half_up(min(float(np.dot(VIDEO_WEIGHTS, components)), 100.0))


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def filter_videos_by_quality(
    videos: Sequence[Video],
    query: str,
    min_quality_score: float = 30.0,
    min_view_count: int = 0,
    max_age_in_days: Optional[float] = None,
    preferred_duration: Optional[str] = None,
    require_captions: bool = False,
    skill_level: Optional[str] = None,
    max_results: int = 10,
    now: Optional[datetime] = None,
) -> List[Video]:
    """Score, filter and rank *videos*, best first.

    Returned videos carry their composite score in ``quality_score``; the
    input objects are not modified.
    """
    now = now or utcnow()
    kept: List[Video] = []
    for video in videos:
        if video.view_count < min_view_count:
            continue
        if max_age_in_days is not None and video.published_at is not None:
            if days_between(video.published_at, now) > max_age_in_days:
                continue
        if preferred_duration is not None:
            minutes = parse_iso_duration(video.duration) / 60
            if categorize_video_duration(minutes) != preferred_duration:
                continue
        if require_captions and not video.caption:
            continue
        score = calculate_video_score(video, query, skill_level, now)
        if score < min_quality_score:
            continue
        kept.append(video.model_copy(update={"quality_score": float(score)}))

    kept.sort(key=lambda v: v.quality_score, reverse=True)
    logger.info(
        "videos_filtered | query=%s | in=%d | out=%d", query, len(videos), min(len(kept), max_results)
    )
    return kept[:max_results]
