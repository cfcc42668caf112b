"""
Roadmap and customization generation on top of an injected AI client.

Two deliberately different failure policies:

- ``generate_roadmap`` raises: ``ConfigurationError`` without an API key
  (before any call), ``UpstreamError`` subclasses for non-2xx statuses,
  ``ParseError`` for unusable output. Transport exceptions raised by the
  client propagate unchanged. Nothing is retried here.
- ``generate_customization`` never raises; every failure yields
  ``TopicCustomization()`` (the fixed default record).

The AI client is any object with
``complete(prompt, system, model, max_tokens, temperature)`` returning a
``CompletionResult`` or an equivalent mapping.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Mapping, Optional, Protocol, Tuple, Union

from roadmap_engine.config import Settings, rate_for_model
from roadmap_engine.curation.topic_classifier import classify_learning_intent
from roadmap_engine.errors import ConfigurationError, ParseError, RateLimitedError, classify_status
from roadmap_engine.generation.roadmap_validator import (
    parse_json_object,
    validate_and_repair_roadmap,
    validate_customization,
)
from roadmap_engine.models import (
    CompletionResult,
    CostUsage,
    RoadmapData,
    RoadmapValidationErrors,
    TopicCustomization,
    UsageCheck,
)
from roadmap_engine.utils import utcnow

logger = logging.getLogger(__name__)
cost_logger = logging.getLogger("roadmap_engine.cost")

ROADMAP_SYSTEM_PROMPT = (
    "You are an expert learning path designer. Always respond with valid JSON only. "
    "Do not include any markdown formatting or additional text outside the JSON object."
)
CUSTOMIZATION_SYSTEM_PROMPT = (
    "You are a professional UI/UX designer. Always respond with valid JSON only. "
    "Do not include any markdown formatting or additional text outside the JSON object."
)

ESTIMATED_ROADMAP_TOKENS = 1800
ESTIMATED_INPUT_SHARE = 0.3


class AIClient(Protocol):
    def complete(
        self, prompt: str, system: str, model: str, max_tokens: int, temperature: float
    ) -> Union[CompletionResult, Mapping[str, Any]]:
        ...


# =========================================================================
# Cost accounting
# =========================================================================


def calculate_estimated_cost(input_tokens: int, output_tokens: int, model: str = "gpt-4o-mini") -> float:
    """Dollar cost of a call at the model's per-1k-token rate."""
    total = max(0, input_tokens) + max(0, output_tokens)
    return round(total / 1000.0 * rate_for_model(model), 8)


def estimate_roadmap_cost(model: str = "gpt-4o-mini") -> float:
    """Expected cost of one roadmap call (1800 tokens, 30% input)."""
    input_tokens = int(ESTIMATED_ROADMAP_TOKENS * ESTIMATED_INPUT_SHARE)
    return calculate_estimated_cost(input_tokens, ESTIMATED_ROADMAP_TOKENS - input_tokens, model)


def log_cost_usage(
    topic: str,
    input_tokens: int,
    output_tokens: int,
    model: str = "gpt-4o-mini",
    timestamp: Optional[datetime] = None,
) -> CostUsage:
    """Package a usage record and emit it on the ``roadmap_engine.cost`` logger."""
    usage = CostUsage(
        topic=topic,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        cost=calculate_estimated_cost(input_tokens, output_tokens, model),
        timestamp=timestamp or utcnow(),
    )
    cost_logger.info(
        "cost_usage | topic=%s | model=%s | tokens=%d | cost=%.6f",
        usage.topic,
        usage.model,
        usage.total_tokens,
        usage.cost,
        extra={"cost_usage": usage.to_wire()},
    )
    return usage


class UsageTracker:
    """Sliding-window request and spend accounting.

    Warns at ``usage_warning_ratio`` of each limit and blocks at the limit.
    """

    def __init__(self, settings: Optional[Settings] = None, clock: Callable[[], datetime] = utcnow) -> None:
        self.settings = settings or Settings()
        self.clock = clock
        self._events: Deque[Tuple[datetime, float]] = deque()

    def record(self, cost: float) -> None:
        self._events.append((self.clock(), cost))
        self._prune()

    def _prune(self) -> None:
        horizon = self.clock() - timedelta(days=1)
        while self._events and self._events[0][0] < horizon:
            self._events.popleft()

    def requests_since(self, delta: timedelta) -> int:
        cutoff = self.clock() - delta
        return sum(1 for ts, _ in self._events if ts >= cutoff)

    def daily_cost(self) -> float:
        self._prune()
        return sum(cost for _, cost in self._events)

    def stats(self) -> dict:
        return {
            "requestsLastMinute": self.requests_since(timedelta(minutes=1)),
            "requestsLastHour": self.requests_since(timedelta(hours=1)),
            "dailyCost": round(self.daily_cost(), 6),
        }

    def check_limits(self) -> UsageCheck:
        s = self.settings
        checks = [
            ("requests per minute", self.requests_since(timedelta(minutes=1)), s.max_requests_per_minute),
            ("requests per hour", self.requests_since(timedelta(hours=1)), s.max_requests_per_hour),
            ("daily cost", self.daily_cost(), s.max_daily_cost),
        ]
        result = UsageCheck()
        for label, used, limit in checks:
            if used >= limit:
                result.allowed = False
                result.reason = result.reason or f"{label} limit reached ({used:g}/{limit:g})"
            elif used >= limit * s.usage_warning_ratio:
                result.warnings.append(f"approaching {label} limit ({used:g}/{limit:g})")
        return result


# =========================================================================
# Prompts
# =========================================================================


def build_roadmap_prompt(
    topic: str, skill_level: str, time_commitment: str, query_type: str, total_milestones: int
) -> str:
    return f"""Create learning roadmap for: "{topic}"

CLASSIFICATION: {query_type}
SKILL LEVEL: {skill_level}
TIME COMMITMENT: {time_commitment}

Return JSON with structure:
{{
  "topic": "{topic}",
  "queryType": "{query_type}",
  "overview": "2-3 sentence overview",
  "totalEstimatedTime": "8-12 weeks",
  "prerequisites": ["prereq1", "prereq2"],
  "tips": ["tip1", "tip2", "tip3"],
  "milestones": [
    {{
      "id": "milestone-0",
      "title": "Milestone title",
      "description": "What will be learned and why it matters",
      "estimatedTime": "2-3 weeks",
      "difficulty": "beginner",
      "levelNumber": 1,
      "practiceActivity": {{
        "title": "Practice activity title",
        "instructions": "Step-by-step instructions",
        "estimatedTime": "30-45 minutes",
        "difficulty": "beginner",
        "codeExample": "optional code",
        "expectedOutcome": "What the learner should achieve"
      }},
      "proTips": ["tip"],
      "commonErrors": ["error and how to avoid it"],
      "resources": [
        {{"type": "video", "searchTerms": ["search term"], "description": "What to look for"}},
        {{"type": "article", "title": "Article title", "url": "https://example.org", "description": "Summary"}}
      ]
    }}
  ]
}}

REQUIREMENTS:
- EXACTLY {total_milestones} milestones, progressive difficulty (beginner to advanced)
- Scale depth to {time_commitment}
- Focus on practical application"""


def build_customization_prompt(topic: str) -> str:
    return f"""Analyze topic: "{topic}"

Classify the topic and select professional styling.

Return JSON only:
{{
  "category": "tech|art|academic|business|sports|other",
  "font": "Google font name",
  "icon": "Lucide icon name",
  "accentColor": "tailwind-color",
  "background": "none"
}}"""


# =========================================================================
# Generator
# =========================================================================


def _coerce_completion(response: Any) -> CompletionResult:
    if isinstance(response, CompletionResult):
        return response
    if isinstance(response, Mapping):
        return CompletionResult.model_validate(dict(response))
    raise ParseError(f"unexpected AI client response type: {type(response).__name__}")


class RoadmapGenerator:
    """Drives one AI client through roadmap and customization requests."""

    def __init__(
        self,
        ai_client: AIClient,
        settings: Optional[Settings] = None,
        usage: Optional[UsageTracker] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.ai_client = ai_client
        self.settings = settings or Settings()
        self.clock = clock
        self.usage = usage or UsageTracker(self.settings, clock)

    # ---- shared request path ----

    def _request(self, prompt: str, system: str, max_tokens: int, temperature: float) -> CompletionResult:
        if not self.settings.has_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        check = self.usage.check_limits()
        for warning in check.warnings:
            logger.warning("usage_warning | %s", warning)
        if not check.allowed:
            raise RateLimitedError(check.reason or "usage limit reached", status_code=429)

        result = _coerce_completion(
            self.ai_client.complete(
                prompt=prompt,
                system=system,
                model=self.settings.model,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        )
        if not 200 <= result.status_code < 300:
            error_cls = classify_status(result.status_code)
            raise error_cls(result.error or "", status_code=result.status_code)
        return result

    def _account(self, topic: str, result: CompletionResult) -> None:
        usage = log_cost_usage(
            topic, result.prompt_tokens, result.completion_tokens, self.settings.model, self.clock()
        )
        self.usage.record(usage.cost)

    # ---- public API ----

    def generate_roadmap(
        self,
        topic: str,
        skill_level: str = "beginner",
        time_commitment: str = "flexible",
    ) -> RoadmapData:
        """Generate and repair a roadmap for *topic*.

        Raises:
            ValueError: *topic* is blank.
            ConfigurationError: No API key.
            UpstreamError: Non-2xx status (or local usage limit, as 429).
            ParseError: No parseable or structurally valid roadmap.
        """
        topic = (topic or "").strip()
        if not topic:
            raise ValueError("topic must not be empty")

        query_type = classify_learning_intent(topic)
        prompt = build_roadmap_prompt(
            topic, skill_level, time_commitment, query_type, self.settings.total_milestones
        )
        result = self._request(
            prompt, ROADMAP_SYSTEM_PROMPT, self.settings.max_tokens, self.settings.temperature
        )
        payload = parse_json_object(result.text)
        roadmap = validate_and_repair_roadmap(payload, topic)
        if isinstance(roadmap, RoadmapValidationErrors):
            raise ParseError("roadmap failed validation: " + "; ".join(roadmap.errors), result.text)

        self._account(topic, result)
        logger.info(
            "roadmap_generated | topic=%s | query_type=%s | milestones=%d",
            topic,
            roadmap.query_type,
            len(roadmap.milestones),
        )
        return roadmap

    def generate_customization(self, topic: str) -> TopicCustomization:
        """Styling metadata for *topic*; falls back to the default record on any failure."""
        try:
            result = self._request(
                build_customization_prompt(topic),
                CUSTOMIZATION_SYSTEM_PROMPT,
                self.settings.customization_max_tokens,
                self.settings.customization_temperature,
            )
            customization = validate_customization(parse_json_object(result.text))
            self._account(topic, result)
        except Exception as exc:
            logger.warning("customization_fallback | topic=%s | reason=%s", topic, exc)
            return TopicCustomization()

        if customization is None:
            logger.warning("customization_fallback | topic=%s | reason=missing fields", topic)
            return TopicCustomization()
        return customization


def generate_roadmap(
    topic: str,
    ai_client: AIClient,
    settings: Optional[Settings] = None,
    skill_level: str = "beginner",
    time_commitment: str = "flexible",
) -> RoadmapData:
    """Functional wrapper around ``RoadmapGenerator.generate_roadmap``."""
    return RoadmapGenerator(ai_client, settings).generate_roadmap(topic, skill_level, time_commitment)


def generate_customization(
    topic: str, ai_client: AIClient, settings: Optional[Settings] = None
) -> TopicCustomization:
    """Functional wrapper around ``RoadmapGenerator.generate_customization``."""
    return RoadmapGenerator(ai_client, settings).generate_customization(topic)
