"""
pytest suite for topic classification and search-query synthesis.

Pure keyword logic, no collaborators. Run with::

    pytest tests/test_topic_classifier.py -v
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from roadmap_engine.curation.topic_classifier import (
    DEFAULT_QUERY,
    classify_learning_intent,
    contains_phrase,
    detect_topic_category,
    enhance_search_query,
)


# ---------------------------------------------------------------------------
# Tests: phrase matching
# ---------------------------------------------------------------------------


class TestContainsPhrase:
    """Whole-token matching used by every keyword table."""

    def test_matches_whole_word(self):
        assert contains_phrase("learn go fast", "go")

    def test_ignores_substring(self):
        assert not contains_phrase("algorithms", "go")

    def test_multi_word_phrase(self):
        assert contains_phrase("a step by step intro", "step by step")

    def test_symbols_in_keyword(self):
        assert contains_phrase("modern c++ features", "c++")
        assert contains_phrase("ci/cd pipelines", "ci/cd")

    def test_case_insensitive(self):
        assert contains_phrase("Learn PYTHON", "python")


# ---------------------------------------------------------------------------
# Tests: category detection
# ---------------------------------------------------------------------------


class TestDetectTopicCategory:
    """Category precedence and the javascript special case."""

    @pytest.mark.parametrize(
        "topic, expected",
        [
            ("python", "programming"),
            ("React hooks", "programming"),
            ("css grid layout", "web_development"),
            ("GraphQL API design", "web_development"),
            ("machine learning with python", "data_science"),
            ("pandas dataframes", "data_science"),
            ("docker for beginners", "devops"),
            ("kubernetes and go", "devops"),
        ],
    )
    def test_categories(self, topic, expected):
        assert detect_topic_category(topic) == expected

    def test_javascript_alone_is_programming(self):
        assert detect_topic_category("javascript") == "programming"

    def test_javascript_with_web_context(self):
        assert detect_topic_category("javascript dom manipulation") == "web_development"

    def test_no_match(self):
        assert detect_topic_category("watercolor painting") is None

    def test_substring_does_not_match(self):
        # "go" must not be found inside "algorithms"
        assert detect_topic_category("algorithms") is None

    def test_blank(self):
        assert detect_topic_category("   ") is None


# ---------------------------------------------------------------------------
# Tests: query enhancement
# ---------------------------------------------------------------------------


class TestEnhanceSearchQuery:
    """Keyword appending, ordering and idempotence."""

    def test_empty_returns_default(self):
        assert enhance_search_query("") == DEFAULT_QUERY
        assert enhance_search_query("   ") == DEFAULT_QUERY

    def test_lowercases_and_trims(self):
        assert enhance_search_query("  Python  ") == "python tutorial"

    def test_skill_level_and_adaptation(self):
        result = enhance_search_query("react hooks", skill_level="beginner")
        assert result == "react hooks beginner basics"

    def test_content_type_first(self):
        result = enhance_search_query("react hooks", skill_level="beginner", content_type="documentation")
        assert result == "react hooks documentation beginner basics"

    def test_existing_keyword_not_duplicated(self):
        result = enhance_search_query("python tutorial for beginner", skill_level="beginner",
                                      content_type="tutorial")
        assert result.split().count("tutorial") == 1
        assert result.split().count("beginner") == 1

    def test_prefix_terms_spelled_out(self):
        result = enhance_search_query("golang", topic_category="programming")
        assert result == "golang go tutorial"

    def test_unknown_category_override_ignored(self):
        assert enhance_search_query("python", topic_category="cooking") == "python tutorial"

    def test_no_tutorial_when_context_present(self):
        result = enhance_search_query("docker", skill_level="advanced")
        assert "tutorial" not in result.split()
        assert result.startswith("docker advanced")

    @pytest.mark.parametrize(
        "query, kwargs",
        [
            ("", {}),
            ("Python", {}),
            ("react hooks", {"skill_level": "beginner"}),
            ("golang", {"topic_category": "programming"}),
            ("docker", {"skill_level": "intermediate", "content_type": "guide"}),
            ("machine learning", {"skill_level": "advanced", "content_type": "research"}),
            ("javascript dom", {"skill_level": "beginner"}),
            ("watercolor painting", {"skill_level": "beginner"}),
            ("reactjs vuejs", {"skill_level": "intermediate"}),
        ],
    )
    def test_idempotent(self, query, kwargs):
        once = enhance_search_query(query, **kwargs)
        assert enhance_search_query(once, **kwargs) == once

    def test_deterministic(self):
        a = enhance_search_query("Kubernetes networking", skill_level="intermediate")
        b = enhance_search_query("Kubernetes networking", skill_level="intermediate")
        assert a == b


# ---------------------------------------------------------------------------
# Tests: learning intent
# ---------------------------------------------------------------------------


class TestClassifyLearningIntent:
    """Roadmap query-type selection."""

    def test_project_based(self):
        assert classify_learning_intent("build a portfolio app") == "project-based"

    def test_career(self):
        assert classify_learning_intent("job interview preparation") == "career-focused"

    def test_academic(self):
        assert classify_learning_intent("graph theory proofs and principles") == "academic-theory"

    def test_hobby(self):
        assert classify_learning_intent("weekend hobby photography") == "hobby-leisure"

    def test_tech_topic_defaults_to_career(self):
        assert classify_learning_intent("python") == "career-focused"

    def test_fallback(self):
        assert classify_learning_intent("watercolor painting") == "comprehensive-learning"
