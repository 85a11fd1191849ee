"""Topic, technology and keyword extraction from task text."""

from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein

from kg_memory.constants import FUZZY_TECH_DISCOUNT, FUZZY_TECH_THRESHOLD, MAX_KEYWORDS
from kg_memory.services.context_detection.text import (
    contains_keyword,
    extract_keywords,
    normalize,
    word_set,
)
from kg_memory.services.vocabulary import Vocabulary

# Words shorter than this are never fuzzy-matched against technology names
_MIN_FUZZY_LENGTH = 4


@dataclass(frozen=True)
class TopicExtraction:
    topics: frozenset[str] = frozenset()
    technologies: frozenset[str] = frozenset()
    keywords: tuple[str, ...] = ()
    topic_scores: dict[str, float] = field(default_factory=dict)
    technology_scores: dict[str, float] = field(default_factory=dict)

    @property
    def confidence(self) -> float:
        return min(1.0, max(self.topic_scores.values(), default=0.0))


class TopicExtractor:
    """Extracts topics and technologies using the vocabulary tables."""

    def __init__(self, vocabulary: Vocabulary | None = None):
        self._vocabulary = vocabulary or Vocabulary.default()

    def topic_scores(self, text: str) -> dict[str, float]:
        normalized = normalize(text)
        words = word_set(normalized)
        scores: dict[str, float] = {}
        for profile in self._vocabulary.topics:
            terms = profile.terms
            if not terms:
                continue
            hits = sum(1 for term in terms if contains_keyword(normalized, words, term))
            if hits:
                scores[profile.name] = min(1.0, hits / len(terms))
        return scores

    def technology_scores(self, text: str) -> dict[str, float]:
        """Technology mentions with a match confidence.

        Exact name 1.0, alias 0.95, otherwise the best Levenshtein similarity
        above the threshold, discounted.
        """
        normalized = normalize(text)
        words = word_set(normalized)
        scores: dict[str, float] = {}
        for entry in self._vocabulary.technologies:
            if contains_keyword(normalized, words, entry.key):
                scores[entry.key] = 1.0
                continue
            if any(contains_keyword(normalized, words, alias) for alias in entry.aliases):
                scores[entry.key] = 0.95
                continue
            best = max(
                (
                    Levenshtein.normalized_similarity(word, entry.key)
                    for word in words
                    if len(word) >= _MIN_FUZZY_LENGTH
                ),
                default=0.0,
            )
            if best > FUZZY_TECH_THRESHOLD:
                scores[entry.key] = best * FUZZY_TECH_DISCOUNT
        return scores

    def extract(
        self, text: str, confidence_threshold: float | None = None
    ) -> TopicExtraction:
        """Extract topics, technologies and keywords.

        When ``confidence_threshold`` is set, topic and technology hits scoring
        below it are dropped.
        """
        topic_scores = self.topic_scores(text)
        tech_scores = self.technology_scores(text)
        if confidence_threshold is not None:
            topic_scores = {k: v for k, v in topic_scores.items() if v >= confidence_threshold}
            tech_scores = {k: v for k, v in tech_scores.items() if v >= confidence_threshold}

        keywords = extract_keywords(text, self._vocabulary.stop_words, limit=MAX_KEYWORDS)
        return TopicExtraction(
            topics=frozenset(topic_scores),
            technologies=frozenset(tech_scores),
            keywords=tuple(keywords),
            topic_scores=topic_scores,
            technology_scores=tech_scores,
        )
