"""Monthly consolidation models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from chronicle.memory.models.episode import new_id, utc_now


class MemorySummary(BaseModel):
    """Consolidation of one project's episodes for one calendar month.

    At most one exists per (project_id, workspace_id, period_start,
    period_end); repeat runs merge into it.
    """

    id: str = Field(default_factory=new_id)
    project_id: str
    workspace_id: str
    period_start: datetime
    period_end: datetime
    original_episode_count: int = Field(default=0, ge=0)
    summary: str = ""
    key_decisions: list[str] = Field(default_factory=list)
    key_patterns: list[str] = Field(default_factory=list)
    archived_episode_ids: list[str] = Field(default_factory=list)
    summarization_model: str = "stub"
    created_at: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)


class SummarizationResult(BaseModel):
    """Outcome of a consolidation run. Returned even on partial failure."""

    summaries_created: int = 0
    episodes_archived: int = 0
    total_processed: int = 0
    duration_ms: int = 0
    skipped: bool = False
    errors: list[str] = Field(default_factory=list)


class SummarizationStats(BaseModel):
    total_summaries: int = 0
    total_archived_episodes: int = 0
    active_episodes: int = 0
    oldest_summary: datetime | None = None
    newest_summary: datetime | None = None
