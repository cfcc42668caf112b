"""
Article quality scoring and filtering.

Every function here is pure: articles in, numbers or new lists out. The
composite score is a fixed-weight blend::

    0.30 authority + 0.25 educational value + 0.20 freshness
    + 0.15 depth + 0.10 code examples (+ 0.05 author credibility)

clamped to [0, 100] and rounded half-up.
"""

import hashlib
import logging
import math
import re
from datetime import datetime
from typing import Any, List, Mapping, NamedTuple, Optional, Sequence, Union

import numpy as np

from roadmap_engine.curation.topic_classifier import contains_phrase
from roadmap_engine.domain_tables import (
    CODE_KEYWORDS,
    CONTENT_TYPE_BONUS,
    DEPTH_SCORES,
    EDUCATIONAL_KEYWORDS,
    SKILL_LEVEL_KEYWORDS,
    SKILL_TO_DEPTH,
    UNKNOWN_DOMAIN_AUTHORITY,
    lookup_domain,
)
from roadmap_engine.models import Article, FilterCriteria
from roadmap_engine.utils import (
    clamp,
    days_between,
    extract_domain,
    parse_timestamp,
    round_half_up,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_QUALITY_SCORE = 40.0

# authority, educational value, freshness, depth, code examples
QUALITY_WEIGHTS = np.array([0.30, 0.25, 0.20, 0.15, 0.10])
AUTHOR_CREDIBILITY_WEIGHT = 0.05

CriteriaLike = Union[FilterCriteria, Mapping[str, Any], None]


# =========================================================================
# Content detectors
# =========================================================================


def detect_content_type(title: str, description: str) -> str:
    """Classify text as tutorial, documentation, guide, research or article."""
    text = f"{title} {description}".lower()
    if any(k in text for k in ("tutorial", "step by step", "how to")):
        return "tutorial"
    if any(contains_phrase(text, k) for k in ("documentation", "api", "reference")):
        return "documentation"
    if any(k in text for k in ("guide", "complete", "comprehensive")):
        return "guide"
    if any(k in text for k in ("research", "study", "analysis")):
        return "research"
    return "article"


def detect_content_depth(title: str, description: str) -> str:
    """Vote beginner vs advanced keywords; no signal means intermediate."""
    text = f"{title} {description}".lower()
    beginner = sum(1 for k in SKILL_LEVEL_KEYWORDS["beginner"] if contains_phrase(text, k))
    advanced = sum(1 for k in SKILL_LEVEL_KEYWORDS["advanced"] if contains_phrase(text, k))
    if advanced > beginner:
        return "advanced"
    if beginner > 0:
        return "basic"
    return "intermediate"


def detect_code_examples(title: str, description: str) -> bool:
    text = f"{title} {description}".lower()
    if "```" in text:
        return True
    return any(k in text for k in CODE_KEYWORDS)


_WORDS_PER_MINUTE = {
    "technical": 150,
    "tutorial": 180,
    "documentation": 160,
    "article": 200,
    "research": 120,
}


def calculate_reading_time(content: str) -> str:
    """Estimate reading time, e.g. ``"7 min read"`` or ``"1h 5m read"``.

    Code-heavy and academic text reads slower; each fenced code block
    counts as 50 extra words.
    """
    lowered = content.lower()
    if re.search(r"```|`|\bfunction\b|\bclass\b|\bimport\b|\bconst\b", content) or re.search(
        r"algorithm|architecture|optimization|performance|scalable", lowered
    ):
        wpm = _WORDS_PER_MINUTE["technical"]
    elif re.search(r"research|study|analysis|methodology|hypothesis", lowered):
        wpm = _WORDS_PER_MINUTE["research"]
    elif "tutorial" in lowered or "step by step" in lowered:
        wpm = _WORDS_PER_MINUTE["tutorial"]
    elif "documentation" in lowered or "api" in lowered:
        wpm = _WORDS_PER_MINUTE["documentation"]
    else:
        wpm = _WORDS_PER_MINUTE["article"]

    words = len(re.sub(r"[^\w\s]", " ", content).split())
    words += (content.count("```") // 2) * 50
    minutes = math.ceil(words / wpm)

    if minutes < 1:
        return "1 min read"
    if minutes < 60:
        return f"{minutes} min read"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours} hour{'s' if hours > 1 else ''} read"
    return f"{hours}h {rest}m read"


_TAG_TOPICS = ("javascript", "python", "react", "nodejs", "css", "html", "api", "database")


def generate_tags(title: str, content: str, content_type: str, content_depth: str) -> List[str]:
    """Content type, depth, detected topics and usage tags, deduplicated."""
    text = f"{title} {content}".lower()
    tags = [content_type, content_depth]
    tags.extend(t for t in _TAG_TOPICS if contains_phrase(text, t))
    if "tutorial" in text or "learn" in text:
        tags.append("educational")
    if "example" in text or "code" in text:
        tags.append("practical")
    if "best practice" in text or "optimization" in text:
        tags.append("best-practices")
    return list(dict.fromkeys(tags))


# =========================================================================
# Component scores
# =========================================================================


def calculate_domain_authority(domain: str) -> int:
    info = lookup_domain(domain)
    return info.authority_score if info else UNKNOWN_DOMAIN_AUTHORITY


def calculate_freshness_score(published_at: Any, now: Optional[datetime] = None) -> int:
    """Step score by age; unknown or unparseable dates score a neutral 50."""
    published = parse_timestamp(published_at)
    if published is None:
        return 50
    age = days_between(published, now or utcnow())
    if age < 30:
        return 100
    if age < 90:
        return 80
    if age < 365:
        return 60
    if age < 730:
        return 40
    return 20


def calculate_educational_value(
    title: str, description: str, content_type: str, has_code_examples: bool
) -> int:
    score = 50 + CONTENT_TYPE_BONUS.get(content_type, 0)
    if has_code_examples:
        score += 15
    text = f"{title} {description}".lower()
    hits = sum(1 for k in EDUCATIONAL_KEYWORDS if k in text)
    score += min(hits * 5, 20)
    return min(score, 100)


def calculate_quality_score(article: Article) -> int:
    """Composite 0-100 quality score for *article* (see module docstring)."""
    components = np.array(
        [
            article.authority_score,
            article.educational_value,
            article.freshness_score,
            DEPTH_SCORES.get(article.content_depth, DEPTH_SCORES["basic"]),
            100.0 if article.has_code_examples else 0.0,
        ],
        dtype=float,
    )
    score = float(np.dot(QUALITY_WEIGHTS, components))
    if article.author_credibility is not None:
        score += AUTHOR_CREDIBILITY_WEIGHT * article.author_credibility
    return round_half_up(clamp(score))


# =========================================================================
# Filtering
# =========================================================================


class AdaptiveThresholds(NamedTuple):
    min_quality_score: float
    min_authority_score: float
    max_age_in_days: float


def get_adaptive_thresholds(
    article_count: int,
    target_results: int,
    min_quality_score: float,
    min_authority_score: float,
    max_age_in_days: float,
) -> AdaptiveThresholds:
    """Relax thresholds when few candidates are available.

    At least ``2 * target`` candidates keeps the base thresholds; at least
    ``target`` scales scores by 0.7 and age by 1.5; fewer scales scores by
    0.5 and doubles the age limit. Score thresholds never drop below 5.
    """
    if article_count >= target_results * 2:
        return AdaptiveThresholds(min_quality_score, min_authority_score, max_age_in_days)
    if article_count >= target_results:
        score_factor, age_factor = 0.7, 1.5
    else:
        score_factor, age_factor = 0.5, 2.0
    return AdaptiveThresholds(
        max(5.0, min_quality_score * score_factor),
        max(5.0, min_authority_score * score_factor),
        max_age_in_days * age_factor,
    )


def _as_criteria(criteria: CriteriaLike) -> FilterCriteria:
    if criteria is None:
        return FilterCriteria()
    if isinstance(criteria, FilterCriteria):
        return criteria
    return FilterCriteria.model_validate(dict(criteria))


def _passes(article: Article, c: FilterCriteria, now: datetime) -> bool:
    min_quality = DEFAULT_MIN_QUALITY_SCORE if c.min_quality_score is None else c.min_quality_score
    if article.quality_score < min_quality:
        return False
    if c.min_authority_score is not None and article.authority_score < c.min_authority_score:
        return False
    if c.require_author and article.author_credibility is None:
        return False
    if c.prioritize_domain_categories:
        info = lookup_domain(article.domain)
        if info is None or info.category not in c.prioritize_domain_categories:
            return False
    if c.domains and article.domain not in c.domains:
        return False
    if c.skill_level is not None and article.content_depth != SKILL_TO_DEPTH[c.skill_level]:
        return False
    if c.content_type is not None and article.content_type != c.content_type:
        return False
    if c.include_code_examples and not article.has_code_examples:
        return False
    if c.max_age_in_days is not None and article.published_at is not None:
        if days_between(article.published_at, now) > c.max_age_in_days:
            return False
    return True


def filter_articles_by_quality(
    articles: Sequence[Article],
    criteria: CriteriaLike = None,
    now: Optional[datetime] = None,
) -> List[Article]:
    """Return the articles meeting every supplied criterion, in input order.

    Without an explicit ``min_quality_score`` the threshold defaults to
    ``DEFAULT_MIN_QUALITY_SCORE``. Articles with no publish date are never
    excluded by ``max_age_in_days``.
    """
    c = _as_criteria(criteria)
    now = now or utcnow()
    kept = [a for a in articles if _passes(a, c, now)]
    logger.debug("articles_filtered | in=%d | out=%d", len(articles), len(kept))
    return kept


# =========================================================================
# Ranking helpers
# =========================================================================


def _specialty_tokens(specialty: str) -> set:
    return {specialty, *specialty.split("-")}


def calculate_topic_relevance(article: Article, topic: str) -> int:
    """Token-overlap relevance of *article* to *topic*.

    +20 per domain specialty sharing a token with the topic, +10 per topic
    token found among the tags, +10 per topic token in title/description,
    +30 when the whole topic phrase appears. Zero overlap scores 0.
    """
    topic_lower = " ".join(topic.lower().split())
    tokens = topic_lower.split()
    if not tokens:
        return 0

    score = 0
    info = lookup_domain(article.domain)
    if info is not None:
        matched = [s for s in info.specialties if _specialty_tokens(s) & set(tokens)]
        score += 20 * len(matched)

    tags = {t.lower() for t in article.tags}
    score += 10 * sum(1 for t in tokens if t in tags)

    text = f"{article.title} {article.description}".lower()
    score += 10 * sum(1 for t in tokens if contains_phrase(text, t))
    if contains_phrase(text, topic_lower):
        score += 30
    return score


def get_domain_category_priority(domain: str, priority_list: Sequence[str]) -> int:
    """``(len(priority_list) - index) * 10`` for the domain's category, else 0."""
    info = lookup_domain(domain)
    if info is None or info.category not in priority_list:
        return 0
    return (len(priority_list) - list(priority_list).index(info.category)) * 10


# =========================================================================
# Raw search result -> Article
# =========================================================================


def build_article(raw: Mapping[str, Any], index: int = 0, now: Optional[datetime] = None) -> Optional[Article]:
    """Turn a raw search hit into a scored ``Article``.

    Returns ``None`` (and logs) when the hit has no usable URL.
    """
    url = str(raw.get("url") or "").strip()
    domain = extract_domain(url) if url else "unknown"
    if domain == "unknown":
        logger.warning("skip_result | reason=invalid_url | url=%r", url)
        return None

    title = str(raw.get("title") or "").strip() or domain
    content = str(raw.get("content") or "")
    content_type = detect_content_type(title, content)
    content_depth = detect_content_depth(title, content)
    has_code = detect_code_examples(title, content)
    description = content[:200] + ("..." if len(content) > 200 else "")
    published = raw.get("published_date") or raw.get("publishedAt")

    article = Article(
        id=f"article_{index}_{hashlib.sha1(url.encode('utf-8')).hexdigest()[:10]}",
        title=title,
        description=description,
        url=url,
        source=domain,
        domain=domain,
        published_at=published,
        reading_time=calculate_reading_time(content),
        tags=generate_tags(title, content, content_type, content_depth),
        educational_value=calculate_educational_value(title, content, content_type, has_code),
        authority_score=calculate_domain_authority(domain),
        freshness_score=calculate_freshness_score(published, now),
        content_depth=content_depth,
        content_type=content_type,
        has_code_examples=has_code,
        author_credibility=70.0 if raw.get("author") else None,
    )
    article.quality_score = calculate_quality_score(article)
    return article
