"""Context detection: infer layer, topics and technologies from task text."""

from .layer_detector import LayerDetection, LayerDetector
from .topic_extractor import TopicExtraction, TopicExtractor
from .engine import ContextDetectionEngine, DetectionOptions  # isort: skip

__all__ = [
    "ContextDetectionEngine",
    "DetectionOptions",
    "LayerDetection",
    "LayerDetector",
    "TopicExtraction",
    "TopicExtractor",
]
