"""Rule-based architectural layer detection.

Score per layer = (keywords present / keywords configured) * layer weight.
The highest score wins; equal scores go to the layer declared first.
"""

from dataclasses import dataclass

from kg_memory.constants import FLOOR_CONFIDENCE, WILDCARD_LAYER
from kg_memory.models import LayerAlternative, clamp_confidence
from kg_memory.services.context_detection.text import contains_keyword, normalize, word_set
from kg_memory.services.vocabulary import Vocabulary

MAX_ALTERNATIVES = 2


@dataclass(frozen=True)
class LayerDetection:
    layer: str
    confidence: float
    indicators: tuple[str, ...] = ()
    alternatives: tuple[LayerAlternative, ...] = ()

    @property
    def matched(self) -> bool:
        return self.layer != WILDCARD_LAYER


class LayerDetector:
    """Keyword-count layer classifier over a Vocabulary."""

    def __init__(self, vocabulary: Vocabulary | None = None):
        self._vocabulary = vocabulary or Vocabulary.default()

    def score_layers(self, text: str) -> list[LayerAlternative]:
        """Score every layer with at least one hit, best first."""
        normalized = normalize(text)
        words = word_set(normalized)

        scored: list[LayerAlternative] = []
        for profile in self._vocabulary.layers:
            if not profile.keywords:
                continue
            hits = tuple(k for k in profile.keywords if contains_keyword(normalized, words, k))
            if not hits:
                continue
            score = len(hits) / len(profile.keywords) * profile.weight
            scored.append(LayerAlternative(profile.tag, score, hits))

        # sorted() is stable, so ties keep declaration order
        return sorted(scored, key=lambda alt: alt.confidence, reverse=True)

    def detect(self, text: str) -> LayerDetection:
        scored = self.score_layers(text)
        if not scored:
            return LayerDetection(WILDCARD_LAYER, FLOOR_CONFIDENCE)

        best = scored[0]
        return LayerDetection(
            layer=best.layer,
            confidence=clamp_confidence(best.confidence),
            indicators=best.indicators,
            alternatives=tuple(scored[1 : 1 + MAX_ALTERNATIVES]),
        )
