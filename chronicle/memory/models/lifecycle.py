"""Retention policy and lifecycle report models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from chronicle.memory.models.episode import utc_now

ProjectRecommendation = Literal["over_cap", "near_cap", "sparse", "healthy"]


class LifecyclePolicy(BaseModel):
    """Per-workspace retention rules. Lifecycle only ever archives."""

    workspace_id: str
    archive_after_days: int = Field(default=365, gt=0)
    max_memories_per_project: int = Field(
        default=5000, gt=0, description="Active episode cap per project"
    )
    retain_decisions_forever: bool = True
    retain_patterns_forever: bool = True
    updated_at: datetime = Field(default_factory=utc_now)


class LifecyclePolicyUpdate(BaseModel):
    """Partial policy change; unset fields keep their stored value."""

    archive_after_days: int | None = Field(default=None, gt=0)
    max_memories_per_project: int | None = Field(default=None, gt=0)
    retain_decisions_forever: bool | None = None
    retain_patterns_forever: bool | None = None


class ArchiveResult(BaseModel):
    """Outcome of age-based archival across a workspace."""

    archived: int = 0
    skipped_protected: int = 0
    errors: list[str] = Field(default_factory=list)


class CapEnforcementResult(BaseModel):
    project_id: str
    active_before: int = 0
    active_after: int = 0
    archived: int = 0


class LifecycleRunResult(BaseModel):
    """Outcome of a full lifecycle run. Returned even on partial failure."""

    workspace_id: str
    archived_by_age: int = 0
    archived_by_cap: int = 0
    projects_over_cap: int = 0
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)


class ProjectLifecycleStatus(BaseModel):
    project_id: str
    active_episodes: int = 0
    archived_episodes: int = 0
    recommendation: ProjectRecommendation = "healthy"


class LifecycleReport(BaseModel):
    workspace_id: str
    policy: LifecyclePolicy
    projects: list[ProjectLifecycleStatus] = Field(default_factory=list)
    total_active: int = 0
    total_archived: int = 0
    graph_entities: int = Field(default=0, description="Graph-wide, not per workspace")
    graph_summaries: int = Field(default=0, description="Graph-wide, not per workspace")
    generated_at: datetime = Field(default_factory=utc_now)
