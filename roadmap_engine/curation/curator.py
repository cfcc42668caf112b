"""
Article curation pipeline.

``ArticleCurator`` glues the pieces together for one search:

1. enhance the query for the requested skill level / content type,
2. ask the injected search client for raw hits,
3. build and score ``Article`` records,
4. relax thresholds to the number of candidates and filter,
5. rank by topic relevance, domain-category priority, then quality.

The search client is any object with ``search(query, max_results)``
returning a list of raw hit dicts (or a ``{"results": [...]}`` envelope).
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, Sequence, get_args

from roadmap_engine.config import Settings
from roadmap_engine.curation.quality_scorer import (
    build_article,
    calculate_topic_relevance,
    filter_articles_by_quality,
    get_adaptive_thresholds,
    get_domain_category_priority,
)
from roadmap_engine.curation.topic_classifier import enhance_search_query
from roadmap_engine.models import Article, ArticleSearchResult, ContentType, FilterCriteria, RoadmapMilestone
from roadmap_engine.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_PRIORITY = ["official", "documentation", "academic", "tutorial", "community"]
CONTENT_TYPES = get_args(ContentType)


class SearchClient(Protocol):
    def search(self, query: str, max_results: int) -> Any:
        ...


def _unwrap(response: Any) -> List[dict]:
    if response is None:
        return []
    if isinstance(response, dict):
        response = response.get("results", [])
    return [r for r in response if isinstance(r, dict)]


class ArticleCurator:
    """Search, score, filter and rank articles for a topic."""

    def __init__(
        self,
        search_client: SearchClient,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.search_client = search_client
        self.settings = settings or Settings()
        self.clock = clock

    def search(
        self,
        topic: str,
        skill_level: Optional[str] = None,
        content_type: Optional[str] = None,
        max_results: Optional[int] = None,
        prioritize_domain_categories: Optional[Sequence[str]] = None,
        include_code_examples: bool = False,
    ) -> ArticleSearchResult:
        """Run the full pipeline for *topic*.

        Search client failures are logged and produce an empty result;
        they are never raised to the caller.
        """
        max_results = max_results or self.settings.max_results
        priorities = list(prioritize_domain_categories or DEFAULT_CATEGORY_PRIORITY)
        if content_type is not None and content_type not in CONTENT_TYPES:
            logger.warning("invalid_content_type | value=%r", content_type)
            content_type = None
        query = enhance_search_query(topic, skill_level, content_type)
        now = self.clock()

        try:
            raw_hits = _unwrap(self.search_client.search(query, max_results * 2))
        except Exception as exc:
            logger.error("search_failed | query=%s | error=%s", query, exc, exc_info=True)
            return ArticleSearchResult(query=query)

        articles = [
            a for a in (build_article(hit, i, now) for i, hit in enumerate(raw_hits)) if a is not None
        ]

        thresholds = get_adaptive_thresholds(
            len(articles),
            max_results,
            self.settings.min_quality_score,
            self.settings.min_authority_score,
            self.settings.max_age_days,
        )
        criteria = FilterCriteria(
            min_quality_score=thresholds.min_quality_score,
            min_authority_score=thresholds.min_authority_score,
            max_age_in_days=thresholds.max_age_in_days,
            content_type=content_type,
            include_code_examples=include_code_examples,
        )
        logger.info(
            "adaptive_thresholds | candidates=%d | target=%d | min_quality=%.1f | min_authority=%.1f",
            len(articles),
            max_results,
            thresholds.min_quality_score,
            thresholds.min_authority_score,
        )

        kept = filter_articles_by_quality(articles, criteria, now=now)
        ranked = rank_articles(kept, topic, priorities)[:max_results]

        logger.info(
            "articles_curated | topic=%s | candidates=%d | returned=%d", topic, len(articles), len(ranked)
        )
        return ArticleSearchResult(
            query=query, articles=ranked, total_results=len(ranked), candidates=len(articles)
        )

    def articles_for_milestones(
        self,
        milestones: Sequence[RoadmapMilestone],
        topic: str,
        skill_level: Optional[str] = None,
    ) -> dict:
        """One search per milestone; returns ``{milestone_id: [Article, ...]}``."""
        per_milestone = self.settings.articles_per_milestone
        results = {}
        for milestone in milestones:
            found = self.search(
                f"{topic} {milestone.title}",
                skill_level=skill_level or milestone.difficulty,
                max_results=per_milestone,
            )
            results[milestone.id] = found.articles
        return results


def rank_articles(articles: Sequence[Article], topic: str, priorities: Sequence[str]) -> List[Article]:
    """Sort by topic relevance, then category priority, then quality (all descending).

    ``sorted`` is stable, so full ties keep their input order.
    """
    return sorted(
        articles,
        key=lambda a: (
            calculate_topic_relevance(a, topic),
            get_domain_category_priority(a.domain, priorities),
            a.quality_score,
        ),
        reverse=True,
    )
