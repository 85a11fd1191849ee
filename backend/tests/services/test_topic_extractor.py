"""Tests for topic, technology and keyword extraction."""

import pytest

from kg_memory.services.context_detection import TopicExtractor
from kg_memory.services.context_detection.text import contains_keyword, extract_keywords, word_set
from kg_memory.services.vocabulary import STOP_WORDS, TopicProfile, Vocabulary


@pytest.fixture
def extractor() -> TopicExtractor:
    return TopicExtractor(Vocabulary.default())


class TestTopics:
    def test_security_and_api_topics(self, extractor):
        result = extractor.extract("Add JWT authentication to the REST api endpoint")
        assert {"security", "api"} <= result.topics

    def test_no_topics_for_unrelated_text(self, extractor):
        result = extractor.extract("Hello there, nice weather today")
        assert result.topics == frozenset()
        assert result.confidence == 0.0

    def test_custom_topic(self):
        vocabulary = Vocabulary.default().with_topic(
            TopicProfile("billing", ("invoice", "billing"), ("payment",))
        )
        result = TopicExtractor(vocabulary).extract("Generate the monthly invoice")
        assert "billing" in result.topics

    def test_confidence_threshold_drops_weak_topics(self, extractor):
        """A single hit among many topic terms scores well under 0.99."""
        text = "Add authentication with react"
        assert "security" in extractor.extract(text).topics

        filtered = extractor.extract(text, confidence_threshold=0.99)
        assert "security" not in filtered.topics
        # Exact technology matches score 1.0 and survive
        assert "react" in filtered.technologies


class TestTechnologies:
    def test_exact_and_alias_matches(self, extractor):
        scores = extractor.technology_scores("Build a reactjs dashboard backed by postgres")
        assert scores["react"] == pytest.approx(0.95)
        assert scores["postgresql"] == pytest.approx(0.95)

    def test_exact_name_scores_one(self, extractor):
        scores = extractor.technology_scores("Containerize with Docker")
        assert scores["docker"] == pytest.approx(1.0)

    def test_dotted_alias(self, extractor):
        scores = extractor.technology_scores("Upgrade the node.js runtime")
        assert "node.js" in scores

    def test_fuzzy_misspelling(self, extractor):
        """'kubernets' is one edit from 'kubernetes' (similarity 0.9)."""
        scores = extractor.technology_scores("Fix the kubernets rollout")
        assert scores["kubernetes"] == pytest.approx(0.9 * 0.8)

    def test_fuzzy_threshold_is_strict(self, extractor):
        """One edit in a four-letter word is exactly 0.75 and does not match."""
        scores = extractor.technology_scores("just a test")
        assert "jest" not in scores


class TestKeywords:
    def test_extract_keywords_skips_stop_and_short_words(self):
        keywords = extract_keywords("Create a React component with CSS styling", STOP_WORDS)
        assert keywords == ["react", "component", "css", "styling"]

    def test_extract_keywords_dedupes_and_limits(self):
        text = " ".join(f"word{i} alpha" for i in range(20))
        keywords = extract_keywords(text, STOP_WORDS, limit=5)
        assert len(keywords) == 5
        assert keywords.count("alpha") == 1

    def test_extract_keywords_skips_numbers(self):
        assert extract_keywords("fix 404 page", STOP_WORDS) == ["fix", "page"]

    def test_contains_keyword_single_word_uses_word_set(self):
        words = word_set("build the ui")
        assert contains_keyword("build the ui", words, "ui")
        assert not contains_keyword("building guides", word_set("building guides"), "ui")

    def test_contains_keyword_phrase(self):
        text = "handle error handling here"
        assert contains_keyword(text, word_set(text), "error handling")
