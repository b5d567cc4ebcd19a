"""Cross-project pattern models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from chronicle.memory.models.episode import new_id, utc_now


class PatternType(str, Enum):
    ARCHITECTURE = "architecture"
    ERROR = "error"
    TESTING = "testing"
    DEPLOYMENT = "deployment"
    SECURITY = "security"


class PatternConfidence(str, Enum):
    """Tier derived from the number of distinct source projects."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    PatternConfidence.LOW: 1,
    PatternConfidence.MEDIUM: 2,
    PatternConfidence.HIGH: 3,
}


class PatternStatus(str, Enum):
    ACTIVE = "active"
    OVERRIDDEN = "overridden"


class WorkspacePattern(BaseModel):
    """Observation recurring across projects of one workspace.

    occurrence_count always equals the number of distinct source projects.
    """

    id: str = Field(default_factory=new_id)
    workspace_id: str
    pattern_type: PatternType
    content: str
    source_project_ids: list[str] = Field(default_factory=list)
    source_episode_ids: list[str] = Field(default_factory=list)
    occurrence_count: int = 0
    confidence: PatternConfidence = PatternConfidence.LOW
    status: PatternStatus = PatternStatus.ACTIVE
    overridden_by: str | None = None
    override_reason: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _sync_occurrence_count(self) -> "WorkspacePattern":
        unique = list(dict.fromkeys(self.source_project_ids))
        if unique != self.source_project_ids:
            self.source_project_ids = unique
        self.occurrence_count = len(unique)
        return self


class PatternFilters(BaseModel):
    """Filters for listing patterns. status=None matches every status."""

    pattern_type: PatternType | None = None
    confidence: PatternConfidence | None = None
    status: PatternStatus | None = PatternStatus.ACTIVE
    limit: int = Field(default=50, ge=1)


class PatternDetectionResult(BaseModel):
    new_patterns: int = 0
    updated_patterns: int = 0
    total_patterns: int = 0
    detection_duration_ms: int = 0
    comparisons: int = 0
    truncated: bool = Field(
        default=False, description="Comparison budget hit before all pairs ran"
    )
    errors: list[str] = Field(default_factory=list)


class PatternRecommendation(BaseModel):
    pattern: WorkspacePattern
    relevance_score: float
    confidence_label: str


class PatternAdoptionStats(BaseModel):
    total_patterns: int = 0
    by_confidence: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    override_rate: float = 0.0
    average_occurrence_count: float = 0.0
    top_patterns: list[WorkspacePattern] = Field(default_factory=list)
