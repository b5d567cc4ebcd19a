"""Cross-project pattern mining and recommendations."""

from chronicle.memory.patterns.classifier import classify_pattern_type
from chronicle.memory.patterns.engine import CrossProjectPatternEngine
from chronicle.memory.patterns.recommender import (
    NullPatternRecommender,
    PatternRecommender,
    confidence_label,
)

__all__ = [
    "CrossProjectPatternEngine",
    "NullPatternRecommender",
    "PatternRecommender",
    "classify_pattern_type",
    "confidence_label",
]
