"""Memory engine configuration models.

Every threshold, budget and cap used by the engines lives here so the whole
tunable surface can be read (and overridden) in one place.
"""

from pydantic import BaseModel, Field, model_validator


class DeduplicationConfig(BaseModel):
    """Near-duplicate detection on ingestion."""

    duplicate_threshold: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Similarity at or above which a candidate is rejected",
    )
    flag_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Similarity at or above which a candidate is accepted but flagged",
    )
    candidate_limit: int = Field(
        default=50,
        gt=0,
        description="Existing episodes fetched per type for comparison",
    )

    @model_validator(mode="after")
    def _flag_below_duplicate(self) -> "DeduplicationConfig":
        if self.flag_threshold > self.duplicate_threshold:
            raise ValueError("flag_threshold must not exceed duplicate_threshold")
        return self


class ScoreWeights(BaseModel):
    """Weights of the combined relevance score."""

    keyword: float = Field(default=0.5, ge=0.0)
    recency: float = Field(default=0.2, ge=0.0)
    type_priority: float = Field(default=0.2, ge=0.0)
    feedback: float = Field(default=0.1, ge=0.0)


class QueryConfig(BaseModel):
    """Relevance query and agent context assembly."""

    default_max_results: int = Field(default=10, gt=0)
    candidate_multiplier: int = Field(
        default=3,
        gt=0,
        description="Over-fetch factor applied when max_results <= overfetch_cutoff",
    )
    overfetch_cutoff: int = Field(default=10, gt=0)
    time_decay_half_life_days: float = Field(default=30.0, gt=0)
    default_token_budget: int = Field(default=4000, gt=0)
    pattern_context_budget: int = Field(default=2000, ge=0)
    context_max_results: int = Field(
        default=50,
        gt=0,
        description="Candidates ranked when assembling agent context",
    )
    chars_per_token: int = Field(default=4, gt=0)
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    feedback_bonus: float = Field(default=0.1)
    feedback_penalty: float = Field(default=-0.05)


class SummarizationConfig(BaseModel):
    """Monthly consolidation of old episodes."""

    episode_threshold: int = Field(
        default=1000,
        gt=0,
        description="Active episode count that triggers consolidation",
    )
    max_episodes: int = Field(
        default=10000,
        gt=0,
        description="Episodes loaded per consolidation run",
    )
    age_days: int = Field(
        default=30,
        ge=0,
        description="Minimum episode age before it can be consolidated",
    )
    max_summary_length: int = Field(default=2000, gt=3)
    examples_per_type: int = Field(default=10, gt=0)
    pinned_confidence: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Episodes at or above this confidence are never consolidated",
    )
    model: str = Field(default="stub", description="Summarization model tag")


class PatternConfig(BaseModel):
    """Cross-project pattern mining."""

    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    dedup_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Similarity at which a candidate merges into an existing pattern",
    )
    min_episodes: int = Field(default=2, gt=0)
    low_confidence_projects: int = Field(default=2, gt=0)
    medium_confidence_projects: int = Field(default=4, gt=0)
    detection_batch_size: int = Field(default=100, gt=0)
    max_comparisons: int = Field(default=50000, gt=0)
    max_patterns_per_workspace: int = Field(default=500, gt=0)
    max_recommendations: int = Field(default=20, gt=0)
    top_patterns: int = Field(default=5, gt=0)

    @model_validator(mode="after")
    def _tiers_ordered(self) -> "PatternConfig":
        if self.medium_confidence_projects < self.low_confidence_projects:
            raise ValueError(
                "medium_confidence_projects must be >= low_confidence_projects"
            )
        return self


class IngestionConfig(BaseModel):
    """Deduplicated episode ingestion."""

    enabled: bool = Field(default=True)
    max_retries: int = Field(default=3, gt=0)
    retry_base_delay_ms: int = Field(default=100, ge=0)


class ExtractionConfig(BaseModel):
    """Rule-based memory extraction from agent task output."""

    max_memories: int = Field(
        default=20,
        gt=0,
        description="Memories kept per task output, in extraction order",
    )
    min_naming_samples: int = Field(
        default=3,
        gt=0,
        description="Source files needed before a naming convention is inferred",
    )


class LifecycleConfig(BaseModel):
    """Workspace retention defaults. Policies stored per workspace override them."""

    archive_after_days: int = Field(default=365, gt=0)
    max_memories_per_project: int = Field(default=5000, gt=0)
    retain_decisions_forever: bool = Field(default=True)
    retain_patterns_forever: bool = Field(default=True)
    batch_limit: int = Field(
        default=1000,
        gt=0,
        description="Episodes archived by age per run",
    )
    near_cap_ratio: float = Field(default=0.8, gt=0.0, le=1.0)
    sparse_threshold: int = Field(
        default=10,
        ge=0,
        description="Active episodes below which a project is reported as sparse",
    )
    recency_horizon_days: int = Field(
        default=365,
        gt=0,
        description="Age at which the recency part of the retention score reaches 0",
    )
    usage_saturation: int = Field(
        default=10,
        gt=0,
        description="Useful feedback count that maxes out the usage part of the score",
    )


class MemoryConfig(BaseModel):
    """Configuration for all memory engines."""

    deduplication: DeduplicationConfig = Field(default_factory=DeduplicationConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    summarization: SummarizationConfig = Field(default_factory=SummarizationConfig)
    patterns: PatternConfig = Field(default_factory=PatternConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
