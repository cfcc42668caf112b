"""
Static lookup tables shared by curation and progress analytics.

- ``EDUCATIONAL_DOMAINS``: authority score, category and specialties per domain.
- Keyword tables for content types, skill levels and topic categories.
- ``DEFAULT_ACHIEVEMENTS``: the built-in achievement catalog.
"""

from typing import Dict, List, NamedTuple, Optional

from roadmap_engine.models import Achievement, AchievementCriterion


class DomainInfo(NamedTuple):
    domain: str
    authority_score: int
    category: str
    specialties: List[str]


_DOMAIN_ROWS = [
    # official documentation
    ("developer.mozilla.org", 95, "official", ["web-development", "javascript", "css", "html"]),
    ("docs.python.org", 95, "official", ["python", "programming"]),
    ("nodejs.org", 90, "official", ["nodejs", "javascript", "backend"]),
    ("react.dev", 90, "official", ["react", "frontend", "javascript"]),
    ("vuejs.org", 90, "official", ["vue", "frontend", "javascript"]),
    ("angular.io", 90, "official", ["angular", "frontend", "typescript"]),
    # academic
    ("arxiv.org", 85, "academic", ["research", "computer-science", "ai"]),
    ("ieee.org", 85, "academic", ["research", "engineering", "technology"]),
    ("acm.org", 85, "academic", ["research", "computer-science"]),
    # tutorial sites
    ("freecodecamp.org", 80, "tutorial", ["programming", "web-development", "beginner"]),
    ("css-tricks.com", 80, "tutorial", ["css", "frontend", "web-development"]),
    ("smashingmagazine.com", 80, "tutorial", ["web-design", "frontend", "ux"]),
    ("alistapart.com", 80, "tutorial", ["web-design", "accessibility", "standards"]),
    # reference
    ("devdocs.io", 75, "documentation", ["documentation", "reference", "programming"]),
    ("w3schools.com", 70, "tutorial", ["web-development", "beginner", "reference"]),
    ("stackoverflow.com", 75, "community", ["programming", "qa", "community"]),
    ("github.com", 70, "community", ["programming", "open-source", "code"]),
    # cloud vendors
    ("docs.microsoft.com", 90, "official", ["microsoft", "azure", "dotnet", "typescript"]),
    ("cloud.google.com", 90, "official", ["google-cloud", "machine-learning", "kubernetes"]),
    ("aws.amazon.com", 90, "official", ["aws", "cloud", "devops"]),
    ("kubernetes.io", 85, "official", ["kubernetes", "containers", "devops"]),
    ("docker.com", 85, "official", ["docker", "containers", "devops"]),
    # learning platforms
    ("codecademy.com", 75, "tutorial", ["programming", "interactive", "beginner"]),
    ("khan-academy.org", 80, "tutorial", ["computer-science", "mathematics", "beginner"]),
    ("coursera.org", 80, "academic", ["university-courses", "certificates", "comprehensive"]),
    ("edx.org", 80, "academic", ["university-courses", "mit", "harvard"]),
    ("udacity.com", 75, "tutorial", ["nanodegrees", "tech-skills", "career"]),
    # blogs
    ("medium.com", 60, "community", ["diverse-topics", "personal-experience", "variable-quality"]),
    ("dev.to", 65, "community", ["developer-community", "tutorials", "discussions"]),
    ("hackernoon.com", 65, "community", ["tech-news", "startups", "programming"]),
    ("towards-data-science.medium.com", 75, "community", ["data-science", "machine-learning", "analytics"]),
    # language docs
    ("docs.oracle.com", 90, "official", ["java", "database", "enterprise"]),
    ("go.dev", 90, "official", ["golang", "programming", "google"]),
    ("rust-lang.org", 90, "official", ["rust", "systems-programming", "memory-safety"]),
    ("swift.org", 90, "official", ["swift", "ios", "apple"]),
    ("kotlinlang.org", 85, "official", ["kotlin", "android", "jvm"]),
    # framework docs
    ("nextjs.org", 85, "official", ["nextjs", "react", "frontend"]),
    ("svelte.dev", 85, "official", ["svelte", "frontend", "compiler"]),
    ("laravel.com", 85, "official", ["laravel", "php", "backend"]),
    ("flask.palletsprojects.com", 85, "official", ["flask", "python", "microframework"]),
    ("djangoproject.com", 85, "official", ["django", "python", "web-framework"]),
]

EDUCATIONAL_DOMAINS: Dict[str, DomainInfo] = {
    row[0]: DomainInfo(*row) for row in _DOMAIN_ROWS
}

UNKNOWN_DOMAIN_AUTHORITY = 30


def lookup_domain(domain: str) -> Optional[DomainInfo]:
    """Find *domain* in the table, falling back to its registered parent.

    ``docs.djangoproject.com`` resolves to ``djangoproject.com``.
    """
    if not domain:
        return None
    domain = domain.lower()
    if domain.startswith("www."):
        domain = domain[4:]
    info = EDUCATIONAL_DOMAINS.get(domain)
    if info is not None:
        return info
    parts = domain.split(".")
    for i in range(1, len(parts) - 1):
        info = EDUCATIONAL_DOMAINS.get(".".join(parts[i:]))
        if info is not None:
            return info
    return None


# =========================================================================
# Keyword tables
# =========================================================================

CONTENT_TYPE_KEYWORDS: Dict[str, List[str]] = {
    "tutorial": ["tutorial", "step by step", "how to", "learn", "guide", "course", "workshop"],
    "documentation": ["documentation", "reference", "api", "docs", "manual", "specification"],
    "guide": ["guide", "complete guide", "comprehensive", "overview", "walkthrough", "handbook"],
    "article": ["article", "blog post", "explanation", "analysis", "insights", "tips"],
    "research": ["research", "study", "analysis", "paper", "academic", "thesis", "dissertation"],
}

TOPIC_SEARCH_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    "programming": {
        "languages": ["python", "java", "c++", "c#", "go", "rust", "swift", "kotlin", "php", "ruby"],
        "frameworks": ["react", "vue", "angular", "nodejs", "express", "django", "flask", "laravel", "spring"],
        "concepts": ["oop", "functional programming", "async", "promises", "closures", "recursion"],
        "patterns": ["design patterns", "mvc", "mvvm", "repository pattern", "observer pattern"],
        "tools": ["git", "webpack", "babel"],
    },
    "web_development": {
        "frontend": ["html", "css", "javascript", "responsive design", "accessibility", "seo"],
        "backend": ["api", "rest", "graphql", "authentication", "authorization", "database"],
        "fullstack": ["mern stack", "mean stack", "jamstack", "serverless", "microservices"],
    },
    "data_science": {
        "ml": ["machine learning", "deep learning", "neural networks", "tensorflow", "pytorch"],
        "analytics": ["data analysis", "statistics", "pandas", "numpy", "matplotlib", "seaborn"],
        "ai": ["artificial intelligence", "nlp", "computer vision", "reinforcement learning"],
    },
    "devops": {
        "tools": ["docker", "kubernetes", "jenkins", "gitlab", "aws", "azure", "gcp"],
        "practices": [
            "ci/cd", "ci cd", "infrastructure as code", "monitoring",
            "logging", "security", "deployment",
        ],
    },
}

WEB_CONTEXT_KEYWORDS = ["html", "css", "frontend", "website", "web", "browser", "dom"]

SKILL_LEVEL_KEYWORDS: Dict[str, List[str]] = {
    "beginner": [
        "beginner", "getting started", "introduction", "basics", "fundamentals", "first time",
        "hello world", "quick start", "primer", "essentials", "foundation", "starter",
        "zero to hero", "from scratch", "no experience", "newbie", "novice",
    ],
    "intermediate": [
        "intermediate", "deep dive", "optimization", "best practices", "patterns",
        "advanced concepts", "real-world", "production", "scaling", "performance",
        "architecture", "design patterns", "testing", "debugging", "refactoring",
    ],
    "advanced": [
        "advanced", "expert", "mastery", "optimization", "performance", "architecture",
        "enterprise", "scalable", "distributed", "microservices", "system design",
        "algorithm", "data structures", "complex", "sophisticated", "cutting-edge",
    ],
}

SKILL_ADAPTATION_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    "beginner": {
        "programming": ["basics", "syntax", "variables", "functions", "loops", "conditionals"],
        "web_development": ["html basics", "css fundamentals", "javascript intro", "first website"],
        "data_science": ["data types", "basic statistics", "pandas intro", "simple charts"],
        "devops": ["version control", "basic deployment", "simple automation", "cloud basics"],
    },
    "intermediate": {
        "programming": ["design patterns", "testing", "debugging", "performance", "libraries"],
        "web_development": ["frameworks", "apis", "databases", "authentication", "responsive design"],
        "data_science": ["machine learning", "statistical analysis", "data visualization", "feature engineering"],
        "devops": ["ci/cd", "containerization", "monitoring", "infrastructure as code", "security"],
    },
    "advanced": {
        "programming": ["system design", "distributed systems", "algorithms", "optimization", "architecture"],
        "web_development": ["microservices", "scalable architecture", "performance optimization", "security"],
        "data_science": ["deep learning", "mlops", "advanced algorithms", "research", "production ml"],
        "devops": ["kubernetes", "distributed systems", "advanced security", "performance tuning", "disaster recovery"],
    },
}

BASIC_EDUCATIONAL_KEYWORDS = ["tutorial", "learn", "guide"]
EDUCATIONAL_KEYWORDS = ["learn", "understand", "explain", "demonstrate", "example", "practice"]
CODE_KEYWORDS = ["code", "example", "snippet", "implementation", "function", "class", "method"]

# Skill level a learner asks for -> article content depth that serves it.
SKILL_TO_DEPTH: Dict[str, str] = {
    "beginner": "basic",
    "intermediate": "intermediate",
    "advanced": "advanced",
}

CONTENT_TYPE_BONUS: Dict[str, int] = {
    "tutorial": 20,
    "documentation": 15,
    "guide": 15,
    "research": 10,
    "article": 5,
}

DEPTH_SCORES: Dict[str, int] = {"advanced": 100, "intermediate": 70, "basic": 40}

LEARNING_INTENT_KEYWORDS: Dict[str, List[str]] = {
    "career-focused": ["career", "job", "interview", "professional", "certification", "hire", "resume"],
    "project-based": ["build", "project", "create", "app", "portfolio", "clone", "make"],
    "academic-theory": ["theory", "research", "academic", "mathematics", "proof", "principles", "university"],
    "skill-enhancement": ["improve", "advanced", "master", "optimize", "better", "level up", "deepen"],
    "hobby-leisure": ["hobby", "fun", "leisure", "casual", "weekend", "relax", "enjoy"],
}

TECH_INTENT_KEYWORDS = [
    "programming", "coding", "software", "developer", "engineering",
    "python", "javascript", "java", "react", "cloud", "devops", "data science",
]


# =========================================================================
# Achievement catalog
# =========================================================================

CRITERION_TYPES = (
    "milestones_completed",
    "streak_days",
    "completion_percentage",
    "time_spent",
    "practice_sessions",
    "paths_completed",
)


def _achievement(aid: str, title: str, description: str, icon: str,
                 ctype: str, required: float) -> Achievement:
    return Achievement(
        id=aid,
        title=title,
        description=description,
        icon=icon,
        criteria=[AchievementCriterion(type=ctype, required=required, description=description)],
    )


DEFAULT_ACHIEVEMENTS: List[Achievement] = [
    _achievement("first_milestone", "First Steps", "Complete your first milestone", "🎯",
                 "milestones_completed", 1),
    _achievement("speed_learner", "Speed Learner", "Complete 5 milestones", "⚡",
                 "milestones_completed", 5),
    _achievement("dedicated_student", "Dedicated Student", "Keep a 7-day learning streak", "🔥",
                 "streak_days", 7),
    _achievement("halfway_there", "Halfway There", "Reach 50% overall completion", "📈",
                 "completion_percentage", 50),
    _achievement("time_investor", "Time Investor", "Spend 10 hours learning", "⏰",
                 "time_spent", 10),
    _achievement("practice_master", "Practice Master", "Complete 20 exercises or quizzes", "💪",
                 "practice_sessions", 20),
    _achievement("skill_level_complete", "Level Up", "Finish an entire learning path", "🏆",
                 "paths_completed", 1),
]


def default_achievements() -> List[Achievement]:
    """Fresh copies of the catalog, safe for callers to mutate."""
    return [a.model_copy(deep=True) for a in DEFAULT_ACHIEVEMENTS]
