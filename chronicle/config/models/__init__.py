"""Configuration models."""

from chronicle.config.models.memory import (
    DeduplicationConfig,
    ExtractionConfig,
    IngestionConfig,
    LifecycleConfig,
    MemoryConfig,
    PatternConfig,
    QueryConfig,
    ScoreWeights,
    SummarizationConfig,
)
from chronicle.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from chronicle.config.models.storage import GraphStoreConfig, StorageConfig

__all__ = [
    "DeduplicationConfig",
    "ExtractionConfig",
    "GraphStoreConfig",
    "IngestionConfig",
    "LifecycleConfig",
    "LoggingConfig",
    "MemoryConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "PatternConfig",
    "QueryConfig",
    "ScoreWeights",
    "StorageConfig",
    "SummarizationConfig",
]
