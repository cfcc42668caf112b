"""
Topic classification and search-query synthesis.

- ``detect_topic_category(topic)`` buckets a topic into programming,
  web_development, data_science or devops (or ``None``).
- ``enhance_search_query(...)`` appends content-type, skill-level and
  category keywords to a query without ever duplicating a keyword, so the
  function is idempotent.
- ``classify_learning_intent(topic)`` picks the roadmap query type.
"""

import functools
import logging
import re
from typing import Iterable, List, Optional

from roadmap_engine.domain_tables import (
    BASIC_EDUCATIONAL_KEYWORDS,
    CONTENT_TYPE_KEYWORDS,
    LEARNING_INTENT_KEYWORDS,
    SKILL_ADAPTATION_PATTERNS,
    SKILL_LEVEL_KEYWORDS,
    TECH_INTENT_KEYWORDS,
    TOPIC_SEARCH_PATTERNS,
    WEB_CONTEXT_KEYWORDS,
)

logger = logging.getLogger(__name__)

DEFAULT_QUERY = "tutorial learn guide"

# Category precedence: devops tools overlap programming tools, and
# "javascript" is resolved separately from the rest of web_development.
_CATEGORY_ORDER = ("devops", "data_science", "web_development", "programming")


# ---------------------------------------------------------------------------
# Phrase matching
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1024)
def _phrase_pattern(phrase: str) -> "re.Pattern[str]":
    return re.compile(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)")


def contains_phrase(text: str, phrase: str) -> bool:
    """``True`` if *phrase* occurs in *text* as whole tokens.

    ``"go"`` matches ``"learn go"`` but not ``"algorithms"``.
    """
    return _phrase_pattern(phrase.lower()).search(text.lower()) is not None


def _any_phrase(text: str, phrases: Iterable[str]) -> bool:
    return any(contains_phrase(text, p) for p in phrases)


def _normalise(query: str) -> str:
    return " ".join(query.lower().split())


def category_keywords(category: str) -> List[str]:
    """Flattened pattern keywords for *category* (empty if unknown)."""
    groups = TOPIC_SEARCH_PATTERNS.get(category, {})
    return [kw for group in groups.values() for kw in group]


@functools.lru_cache(maxsize=1)
def _all_pattern_keywords() -> frozenset:
    return frozenset(kw for cat in TOPIC_SEARCH_PATTERNS for kw in category_keywords(cat))


# ---------------------------------------------------------------------------
# Category detection
# ---------------------------------------------------------------------------


def detect_topic_category(topic: str) -> Optional[str]:
    """Return the topic category for *topic*, or ``None`` if nothing matches."""
    text = _normalise(topic or "")
    if not text:
        return None

    for category in _CATEGORY_ORDER:
        keywords = category_keywords(category)
        if category == "web_development":
            keywords = [k for k in keywords if k != "javascript"]
        if _any_phrase(text, keywords):
            return category
        if category == "web_development" and contains_phrase(text, "javascript"):
            if _any_phrase(text, WEB_CONTEXT_KEYWORDS):
                return "web_development"
            return "programming"

    return None


# ---------------------------------------------------------------------------
# Query enhancement
# ---------------------------------------------------------------------------


def _prefix_pattern_terms(query: str, category: str) -> List[str]:
    """Pattern keywords that only appear as a prefix of a longer token.

    ``"golang"`` yields ``"go"`` and ``"reactjs"`` yields ``"react"``.
    Tokens that are themselves known keywords (``"javascript"``) are skipped.
    """
    known = _all_pattern_keywords()
    single_word = [k for k in category_keywords(category) if " " not in k and len(k) >= 2]
    found: List[str] = []
    for token in query.split():
        if token in known:
            continue
        for kw in single_word:
            if token.startswith(kw) and token != kw and kw not in found:
                found.append(kw)
    return [kw for kw in found if not contains_phrase(query, kw)]


def enhance_search_query(
    query: str,
    skill_level: Optional[str] = None,
    content_type: Optional[str] = None,
    topic_category: Optional[str] = None,
) -> str:
    """Build an educational search query from *query*.

    Appends, in order and only when no keyword of the group is present yet:
    a content-type keyword, a skill-level keyword, and the category's
    skill-adapted keyword. Category pattern terms hidden inside longer
    tokens are then spelled out. A query that gained no educational context
    at all gets ``"tutorial"``.

    Args:
        query: Free-text query. Blank input returns ``DEFAULT_QUERY``.
        skill_level: ``beginner`` / ``intermediate`` / ``advanced``.
        content_type: A key of ``CONTENT_TYPE_KEYWORDS``.
        topic_category: Overrides ``detect_topic_category(query)``.

    Returns:
        The lower-cased enhanced query.
    """
    text = _normalise(query or "")
    if not text:
        return DEFAULT_QUERY

    category = topic_category if topic_category in TOPIC_SEARCH_PATTERNS else None
    if category is None:
        category = detect_topic_category(text)

    groups: List[List[str]] = []
    if content_type in CONTENT_TYPE_KEYWORDS:
        groups.append(CONTENT_TYPE_KEYWORDS[content_type])
    if skill_level in SKILL_LEVEL_KEYWORDS:
        groups.append(SKILL_LEVEL_KEYWORDS[skill_level])
        if category is not None:
            groups.append(SKILL_ADAPTATION_PATTERNS[skill_level][category])

    for keywords in groups:
        if not _any_phrase(text, keywords):
            text = f"{text} {keywords[0]}"

    if category is not None:
        for term in _prefix_pattern_terms(text, category):
            text = f"{text} {term}"

    has_context = any(_any_phrase(text, kws) for kws in groups)
    if not has_context and not _any_phrase(text, BASIC_EDUCATIONAL_KEYWORDS):
        text = f"{text} {BASIC_EDUCATIONAL_KEYWORDS[0]}"

    logger.debug(
        "query_enhanced | query=%s | category=%s | result=%s", query, category, text
    )
    return text


# ---------------------------------------------------------------------------
# Learning intent
# ---------------------------------------------------------------------------


def classify_learning_intent(topic: str) -> str:
    """Map *topic* to a roadmap query type.

    The intent with the most keyword hits wins (ties keep table order).
    Technical topics without an explicit intent are career-focused.
    """
    text = _normalise(topic or "")
    best, best_hits = None, 0
    for intent, keywords in LEARNING_INTENT_KEYWORDS.items():
        hits = sum(1 for kw in keywords if contains_phrase(text, kw))
        if hits > best_hits:
            best, best_hits = intent, hits
    if best is not None:
        return best
    if _any_phrase(text, TECH_INTENT_KEYWORDS) or detect_topic_category(text):
        return "career-focused"
    return "comprehensive-learning"
