"""Deduplication and ingestion models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from chronicle.memory.models.episode import EpisodeMetadata, EpisodeType


class DuplicateCheck(BaseModel):
    is_duplicate: bool = False
    is_flagged: bool = False
    similarity: float = 0.0
    existing_episode_id: str | None = None


class ExtractedMemory(BaseModel):
    """A single memory extracted from agent output, before scoping."""

    episode_type: EpisodeType
    content: str
    entities: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: EpisodeMetadata = Field(default_factory=EpisodeMetadata)


class IngestionInput(BaseModel):
    project_id: str
    workspace_id: str
    agent_type: str
    story_id: str | None = None
    session_id: str | None = None
    memories: list[ExtractedMemory] = Field(default_factory=list)


class IngestionResult(BaseModel):
    episodes_created: int = 0
    episode_ids: list[str] = Field(default_factory=list)
    skipped: int = 0
    flagged: int = 0
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)


class IngestionStats(BaseModel):
    total_episodes: int = 0
    active_episodes: int = 0
    archived_episodes: int = 0
    since: datetime | None = None


class DeduplicationBatchResult(BaseModel):
    """Accepted candidates (flagged ones carry the match in metadata)."""

    accepted: list[ExtractedMemory] = Field(default_factory=list)
    skipped: int = 0
    flagged: int = 0


class TaskTestResults(BaseModel):
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class TaskOutput(BaseModel):
    """What an agent reported after finishing a task.

    Raw material for MemoryExtractor; every field is optional since agents
    report different subsets.
    """

    agent_type: str
    commit_messages: list[str] = Field(default_factory=list)
    files_changed: list[str] = Field(default_factory=list)
    error_message: str | None = None
    exit_code: int | None = None
    test_results: TaskTestResults | None = None
    deployment_url: str | None = None
    pr_url: str | None = None
    branch: str | None = None
    commit_hash: str | None = None
    duration_ms: int | None = Field(default=None, ge=0)
    pipeline_metadata: dict[str, Any] = Field(default_factory=dict)
