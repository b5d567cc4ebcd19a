"""Memory domain models.

Contains all Pydantic models for the memory system:
- Episodes and entity references recorded by agents
- Monthly summaries produced by consolidation
- Workspace patterns mined across projects
- Query, ingestion and health results
- Lifecycle retention policy and reports
"""

from chronicle.memory.models.entity import EntityRef
from chronicle.memory.models.episode import (
    Episode,
    EpisodeCreate,
    EpisodeFilter,
    EpisodeMetadata,
    EpisodeType,
    ensure_utc,
    utc_now,
)
from chronicle.memory.models.health import GraphStats, HealthStatus, MemoryHealth
from chronicle.memory.models.ingestion import (
    DeduplicationBatchResult,
    DuplicateCheck,
    ExtractedMemory,
    IngestionInput,
    IngestionResult,
    IngestionStats,
    TaskOutput,
    TaskTestResults,
)
from chronicle.memory.models.lifecycle import (
    ArchiveResult,
    CapEnforcementResult,
    LifecyclePolicy,
    LifecyclePolicyUpdate,
    LifecycleReport,
    LifecycleRunResult,
    ProjectLifecycleStatus,
    ProjectRecommendation,
)
from chronicle.memory.models.pattern import (
    PatternAdoptionStats,
    PatternConfidence,
    PatternDetectionResult,
    PatternFilters,
    PatternRecommendation,
    PatternStatus,
    PatternType,
    WorkspacePattern,
)
from chronicle.memory.models.query import MemoryContext, MemoryQuery, MemoryQueryResult
from chronicle.memory.models.summary import (
    MemorySummary,
    SummarizationResult,
    SummarizationStats,
)

__all__ = [
    "ArchiveResult",
    "CapEnforcementResult",
    "DeduplicationBatchResult",
    "DuplicateCheck",
    "EntityRef",
    "Episode",
    "EpisodeCreate",
    "EpisodeFilter",
    "EpisodeMetadata",
    "EpisodeType",
    "ExtractedMemory",
    "GraphStats",
    "HealthStatus",
    "IngestionInput",
    "IngestionResult",
    "IngestionStats",
    "LifecyclePolicy",
    "LifecyclePolicyUpdate",
    "LifecycleReport",
    "LifecycleRunResult",
    "MemoryContext",
    "MemoryHealth",
    "MemoryQuery",
    "MemoryQueryResult",
    "MemorySummary",
    "PatternAdoptionStats",
    "PatternConfidence",
    "PatternDetectionResult",
    "PatternFilters",
    "PatternRecommendation",
    "PatternStatus",
    "PatternType",
    "ProjectLifecycleStatus",
    "ProjectRecommendation",
    "SummarizationResult",
    "SummarizationStats",
    "TaskOutput",
    "TaskTestResults",
    "WorkspacePattern",
    "ensure_utc",
    "utc_now",
]
