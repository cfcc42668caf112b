"""
Pydantic models for the Roadmap Engine.

Field names are snake_case in Python and camelCase on the wire
(``Milestone(completedAt=...)`` and ``Milestone(completed_at=...)`` both
work; dump with ``by_alias=True`` for the wire shape).

Curation: articles, videos, filter criteria.
Generation: roadmap payloads, customization, cost usage.
Progress: milestones, learning paths, achievements, derived metrics.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from roadmap_engine.utils import parse_timestamp


# =========================================================================
# Literals
# =========================================================================

MilestoneType = Literal["video", "article", "exercise", "quiz"]
MILESTONE_TYPES = ("video", "article", "exercise", "quiz")

Difficulty = Literal["beginner", "intermediate", "advanced"]
DIFFICULTIES = ("beginner", "intermediate", "advanced")

QueryType = Literal[
    "career-focused",
    "project-based",
    "academic-theory",
    "skill-enhancement",
    "hobby-leisure",
    "comprehensive-learning",
]
QUERY_TYPES = (
    "career-focused",
    "project-based",
    "academic-theory",
    "skill-enhancement",
    "hobby-leisure",
    "comprehensive-learning",
)

ContentDepth = Literal["basic", "intermediate", "advanced"]
ContentType = Literal["tutorial", "documentation", "guide", "article", "research"]
DomainCategory = Literal["official", "academic", "tutorial", "documentation", "community"]
TopicCategory = Literal["programming", "web_development", "data_science", "devops"]
DurationCategory = Literal["micro", "short", "medium", "long", "extended"]
TrendPeriod = Literal["day", "week", "month"]
ExportFormat = Literal["json", "csv", "pdf"]


class CamelModel(BaseModel):
    """Base model accepting both snake_case names and camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =========================================================================
# Curation models
# =========================================================================


class Article(CamelModel):
    """A scored article candidate."""

    id: str
    title: str
    description: str = ""
    url: str
    source: str = ""
    domain: str
    published_at: Optional[datetime] = None
    reading_time: str = ""
    tags: List[str] = Field(default_factory=list)
    quality_score: float = 0.0
    educational_value: float = 0.0
    authority_score: float = 0.0
    freshness_score: float = 0.0
    content_depth: ContentDepth = "intermediate"
    content_type: ContentType = "article"
    has_code_examples: bool = False
    author_credibility: Optional[float] = None

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_published_at(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class FilterCriteria(CamelModel):
    """Predicates for ``filter_articles_by_quality``; unset fields are ignored."""

    min_quality_score: Optional[float] = None
    skill_level: Optional[Difficulty] = None
    content_type: Optional[ContentType] = None
    include_code_examples: bool = False
    max_age_in_days: Optional[float] = None
    domains: Optional[List[str]] = None
    prioritize_domain_categories: Optional[List[DomainCategory]] = None
    min_authority_score: Optional[float] = None
    require_author: bool = False


class ArticleSearchResult(CamelModel):
    """Output of one curated article search."""

    query: str
    articles: List[Article] = Field(default_factory=list)
    total_results: int = 0
    candidates: int = 0


class Video(CamelModel):
    """A YouTube video candidate with channel statistics."""

    id: str
    title: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    channel_title: str = ""
    channel_description: str = ""
    published_at: Optional[datetime] = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    duration: str = "PT0S"
    definition: Literal["hd", "sd"] = "sd"
    caption: bool = False
    subscriber_count: int = 0
    channel_video_count: int = 0
    channel_view_count: int = 0
    quality_score: float = 0.0

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_published_at(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


# =========================================================================
# Generation models
# =========================================================================


class PracticeActivity(CamelModel):
    title: str = "Hands-on practice"
    instructions: str = "Apply what you learned in this milestone to a small exercise."
    estimated_time: str = "30-45 minutes"
    difficulty: Difficulty = "beginner"
    code_example: Optional[str] = None
    expected_outcome: str = "A working example that uses the new concepts."


class RoadmapResource(CamelModel):
    type: str = "article"
    title: Optional[str] = None
    url: Optional[str] = None
    description: str = ""
    duration: Optional[str] = None
    search_terms: List[str] = Field(default_factory=list)


class RoadmapMilestone(CamelModel):
    id: str
    title: str
    description: str
    estimated_time: str
    difficulty: Difficulty
    level_number: int
    practice_activity: PracticeActivity
    pro_tips: List[str] = Field(default_factory=list)
    common_errors: List[str] = Field(default_factory=list)
    resources: List[RoadmapResource] = Field(default_factory=list)


class RoadmapData(CamelModel):
    """A validated, repaired roadmap."""

    kind: Literal["roadmap"] = "roadmap"
    topic: str
    query_type: QueryType = "comprehensive-learning"
    overview: str
    total_estimated_time: str
    prerequisites: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    milestones: List[RoadmapMilestone] = Field(default_factory=list)


class RoadmapValidationErrors(CamelModel):
    """Returned instead of ``RoadmapData`` when a payload cannot be repaired."""

    kind: Literal["errors"] = "errors"
    errors: List[str] = Field(default_factory=list)


class TopicCustomization(CamelModel):
    category: str = "general"
    font: str = "Inter"
    icon: str = "Target"
    accent_color: str = "blue-600"
    background: str = "none"


class CompletionResult(CamelModel):
    """What an AI collaborator returns for one completion request."""

    status_code: int = 200
    text: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    error: Optional[str] = None


class CostUsage(CamelModel):
    """Structured usage record emitted to the cost logger."""

    topic: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: float
    timestamp: datetime


class UsageCheck(CamelModel):
    allowed: bool = True
    reason: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


# =========================================================================
# Progress models
# =========================================================================


class Milestone(CamelModel):
    """One learning unit within a path."""

    id: str
    title: str
    description: str = ""
    type: MilestoneType = "video"
    estimated_time: float = 0.0
    completed: bool = False
    completed_at: Optional[datetime] = None
    time_spent: float = 0.0
    score: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("completed_at", mode="before")
    @classmethod
    def parse_completed_at(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class LearningPath(CamelModel):
    id: str
    topic: str
    milestones: List[Milestone] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    query_type: Optional[QueryType] = None
    overview: str = ""
    total_estimated_time: str = ""
    prerequisites: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class AchievementCriterion(CamelModel):
    type: str
    required: float
    description: str = ""


class Achievement(CamelModel):
    id: str
    title: str
    description: str = ""
    icon: str = "🏆"
    criteria: List[AchievementCriterion] = Field(default_factory=list)
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None

    @field_validator("unlocked_at", mode="before")
    @classmethod
    def parse_unlocked_at(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class ProgressState(CamelModel):
    """Caller-owned progress snapshot; the engine only reads it."""

    learning_paths: Dict[str, LearningPath] = Field(default_factory=dict)
    achievements: List[Achievement] = Field(default_factory=list)
    ai_credit_protection: bool = False

    def all_milestones(self) -> List[Milestone]:
        """Every milestone across all paths, in path then sequence order."""
        return [m for path in self.learning_paths.values() for m in path.milestones]


class ProgressOptions(CamelModel):
    """Knobs for ``calculate_progress_metrics``.

    ``min_time_spent`` is the minutes a completion needs to count as an
    active streak day; ``start``/``end`` limit ``total_time_spent``.
    """

    min_time_spent: float = 0.0
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_range(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class ProgressMetrics(CamelModel):
    total_milestones: int = 0
    completed_milestones: int = 0
    completion_percentage: int = 0
    total_time_spent: float = 0.0
    average_time_per_milestone: float = 0.0
    learning_velocity: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    estimated_time_to_complete: Optional[float] = None
    time_spent_today: float = 0.0
    time_spent_this_week: float = 0.0
    time_spent_this_month: float = 0.0


class ProgressTrend(CamelModel):
    period: TrendPeriod
    direction: Literal["up", "down", "stable"]
    change_percentage: float
    current_count: int
    previous_count: int


class CriterionProgress(CamelModel):
    type: str
    current: float
    required: float
    description: str = ""


class AchievementEligibility(CamelModel):
    achievement_id: str
    is_eligible: bool
    progress: int
    criteria: List[CriterionProgress] = Field(default_factory=list)
    estimated_time_to_unlock: int = 0


class ValidationResult(CamelModel):
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class SkillSummary(CamelModel):
    path_id: str
    topic: str
    status: Literal["not-started", "in-progress", "completed"]
    progress_percentage: int
    completed_milestones: int
    total_milestones: int
    total_time_spent: float
    current_milestone: Optional[Milestone] = None


class ExportOptions(CamelModel):
    format: ExportFormat = "json"
    include_analytics: bool = True
    include_achievements: bool = True
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_range(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)
