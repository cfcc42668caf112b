"""
Configuration for the Roadmap Engine.

Settings come from the process environment (optionally populated from a
``.env`` file via ``python-dotenv``) layered over the defaults below.
"""

import logging
import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

# USD per 1k tokens, applied to input and output alike.
MODEL_RATES: Dict[str, float] = {
    "gpt-4o-mini": 0.00015,
    "gpt-4o": 0.005,
    "gpt-3.5-turbo": 0.0015,
}


class Settings(BaseModel):
    """Runtime knobs shared by curation, generation and analytics."""

    openai_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_tokens: int = 3000
    temperature: float = 0.7
    customization_max_tokens: int = 200
    customization_temperature: float = 0.3

    # content per milestone
    videos_per_milestone: int = 3
    articles_per_milestone: int = 1
    total_milestones: int = 5
    default_video_search_limit: int = 6
    default_article_search_limit: int = 6

    # quality thresholds
    min_quality_score: float = 40.0
    min_authority_score: float = 10.0
    max_age_years: int = 5
    max_results: int = 10

    # usage limits
    max_requests_per_minute: int = 10
    max_requests_per_hour: int = 100
    max_daily_cost: float = 5.0
    usage_warning_ratio: float = 0.8

    cache_ttl_seconds: float = 300.0

    @property
    def max_age_days(self) -> int:
        return 365 * self.max_age_years

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Build ``Settings`` from the environment after loading ``.env``."""
    load_dotenv(dotenv_path)
    return Settings(
        openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
        model=os.environ.get("ROADMAP_MODEL", DEFAULT_MODEL),
        max_tokens=_env_int("ROADMAP_MAX_TOKENS", 3000),
        max_requests_per_minute=_env_int("ROADMAP_MAX_REQUESTS_PER_MINUTE", 10),
        max_requests_per_hour=_env_int("ROADMAP_MAX_REQUESTS_PER_HOUR", 100),
    )


def rate_for_model(model: str) -> float:
    """Return the per-1k-token rate for *model*, defaulting to gpt-4o-mini."""
    return MODEL_RATES.get(model, MODEL_RATES[DEFAULT_MODEL])
