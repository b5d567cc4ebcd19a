"""Relevance query models."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from chronicle.memory.models.episode import Episode, EpisodeType, ensure_utc


class MemoryQuery(BaseModel):
    """Relevance query scoped to one project."""

    project_id: str
    workspace_id: str
    query: str = ""
    episode_types: list[EpisodeType] | None = None
    entities: list[str] | None = None
    since: datetime | None = None
    include_archived: bool = False
    max_results: int | None = Field(default=None, description="Defaults to configured cap")

    @field_validator("since")
    @classmethod
    def _since_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class MemoryQueryResult(BaseModel):
    """Ranked episodes. total_count is the candidate pool size before the cap."""

    memories: list[Episode] = Field(default_factory=list)
    relevance_scores: list[float] = Field(default_factory=list)
    total_count: int = 0
    query_duration_ms: int = 0


class MemoryContext(BaseModel):
    """Token-budgeted context block for an agent prompt."""

    context: str = ""
    memory_count: int = 0
    token_estimate: int = 0
