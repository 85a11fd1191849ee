"""Rule-based provider: keyword heuristics exposed through the provider interface."""

from kg_memory.models import ProviderContext
from kg_memory.providers.base import ContextProvider
from kg_memory.services.context_detection.layer_detector import LayerDetector
from kg_memory.services.context_detection.topic_extractor import TopicExtractor
from kg_memory.services.vocabulary import Vocabulary


class RuleBasedContextProvider(ContextProvider):
    """Always-available provider backed by the vocabulary tables."""

    kind = "rule-based"

    def __init__(self, vocabulary: Vocabulary | None = None):
        vocabulary = vocabulary or Vocabulary.default()
        self._layers = LayerDetector(vocabulary)
        self._topics = TopicExtractor(vocabulary)

    @property
    def name(self) -> str:
        return "rule-based-heuristic"

    async def is_available(self) -> bool:
        return True

    async def detect_context(self, text: str) -> ProviderContext:
        layer = self._layers.detect(text)
        topics = self._topics.extract(text)
        return ProviderContext(
            layer=layer.layer,
            topics=sorted(topics.topics),
            keywords=list(topics.keywords),
            technologies=sorted(topics.technologies),
            confidence=layer.confidence,
        )
