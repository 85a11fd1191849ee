"""Context detection: provider chain first, rule-based heuristics as the floor.

detect_context never raises. Provider failures fall through to the
rule-based detector; a failure there yields the wildcard layer at floor
confidence.
"""

import logging
import time
from dataclasses import dataclass

from kg_memory.models import DetectionDiagnostics, ProviderContext, TaskContext
from kg_memory.providers import ModelProviderUnavailable, ProviderChain
from kg_memory.services.context_detection.layer_detector import LayerDetector
from kg_memory.services.context_detection.text import merge_unique
from kg_memory.services.context_detection.topic_extractor import TopicExtractor
from kg_memory.services.vocabulary import Vocabulary

logger = logging.getLogger(__name__)

RULE_BASED_NAME = "rule-based"


@dataclass(frozen=True)
class DetectionOptions:
    return_keywords: bool = False
    confidence_threshold: float | None = None


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class ContextDetectionEngine:
    """Turns free task text into a TaskContext."""

    def __init__(
        self,
        provider_chain: ProviderChain | None = None,
        vocabulary: Vocabulary | None = None,
    ):
        self._chain = provider_chain or ProviderChain()
        self._vocabulary = vocabulary or Vocabulary.default()
        self._layer_detector = LayerDetector(self._vocabulary)
        self._topic_extractor = TopicExtractor(self._vocabulary)

    @property
    def provider_chain(self) -> ProviderChain:
        return self._chain

    @property
    def vocabulary(self) -> Vocabulary:
        return self._vocabulary

    async def detect_context(
        self, text: str, options: DetectionOptions | None = None
    ) -> TaskContext:
        options = options or DetectionOptions()
        start = time.perf_counter()
        errors: dict[str, str] = {}

        try:
            if len(self._chain):
                try:
                    result = await self._chain.detect(text)
                except ModelProviderUnavailable as e:
                    errors = e.errors
                    logger.info("All model providers failed, using rule-based detection")
                else:
                    return self._from_provider(
                        result.context,
                        text,
                        options,
                        DetectionDiagnostics(
                            model_provider=result.provider_name,
                            fallback_used=False,
                            provider_index=result.provider_index,
                            provider_errors=result.errors,
                        ),
                        start,
                    )

            return self.detect_rule_based(text, options, provider_errors=errors, start=start)
        except Exception:
            logger.exception("Context detection failed; returning wildcard context")
            return TaskContext.floor(
                DetectionDiagnostics(
                    model_provider=None,
                    fallback_used=True,
                    detection_time_ms=_elapsed_ms(start),
                    provider_errors=errors,
                )
            )

    def _from_provider(
        self,
        context: ProviderContext,
        text: str,
        options: DetectionOptions,
        diagnostics: DetectionDiagnostics,
        start: float,
    ) -> TaskContext:
        keywords: tuple[str, ...] = ()
        if options.return_keywords:
            rule_keywords = self._topic_extractor.extract(text).keywords
            keywords = tuple(merge_unique(context.keywords, rule_keywords))

        return TaskContext(
            layer=context.layer,
            topics=frozenset(context.topics),
            keywords=keywords,
            technologies=frozenset(context.technologies),
            confidence=context.confidence,
            diagnostics=DetectionDiagnostics(
                model_provider=diagnostics.model_provider,
                fallback_used=diagnostics.fallback_used,
                provider_index=diagnostics.provider_index,
                detection_time_ms=_elapsed_ms(start),
                provider_errors=diagnostics.provider_errors,
            ),
        )

    def detect_rule_based(
        self,
        text: str,
        options: DetectionOptions | None = None,
        provider_errors: dict[str, str] | None = None,
        start: float | None = None,
    ) -> TaskContext:
        """Keyword heuristics only; no providers are consulted."""
        options = options or DetectionOptions()
        start = time.perf_counter() if start is None else start

        layer = self._layer_detector.detect(text)
        extraction = self._topic_extractor.extract(text, options.confidence_threshold)

        return TaskContext(
            layer=layer.layer,
            topics=extraction.topics,
            keywords=extraction.keywords if options.return_keywords else (),
            technologies=extraction.technologies,
            confidence=layer.confidence,
            diagnostics=DetectionDiagnostics(
                model_provider=None,
                fallback_used=True,
                detection_time_ms=_elapsed_ms(start),
                provider_errors=dict(provider_errors or {}),
                indicators=layer.indicators,
                alternatives=layer.alternatives,
            ),
        )

    async def available_providers(self) -> list[str]:
        """Names of providers that currently report available, plus rule-based."""
        health = await self._chain.health()
        return [name for name, info in health.items() if info.available] + [RULE_BASED_NAME]

    async def compare_providers(self, text: str) -> dict[str, TaskContext | str]:
        """Run every provider and the rule-based detector on ``text``.

        Diagnostic only: failures are reported as error strings instead of
        falling through.
        """
        results: dict[str, TaskContext | str] = {}
        for index, provider in enumerate(self._chain):
            start = time.perf_counter()
            try:
                context = await self._chain.call(provider, text)
            except Exception as e:
                results[provider.name] = f"error: {e}"
                continue
            results[provider.name] = self._from_provider(
                context,
                text,
                DetectionOptions(return_keywords=True),
                DetectionDiagnostics(model_provider=provider.name, provider_index=index),
                start,
            )
        results[RULE_BASED_NAME] = self.detect_rule_based(
            text, DetectionOptions(return_keywords=True)
        )
        return results
