"""Episode model for memory domain."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def new_id() -> str:
    return str(uuid4())


class EpisodeType(str, Enum):
    """Kind of observation an episode records."""

    DECISION = "decision"
    PROBLEM = "problem"
    FACT = "fact"
    PATTERN = "pattern"
    PREFERENCE = "preference"


class EpisodeMetadata(BaseModel):
    """Open key/value bag with typed access to the keys the engines use.

    Unknown keys are kept as extra fields so they survive a round-trip
    through the store.
    """

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    pinned: bool = Field(default=False, description="Exclude from consolidation")
    useful_count: int = Field(default=0, ge=0)
    not_useful_count: int = Field(default=0, ge=0)
    possible_duplicate_of: str | None = Field(
        default=None, description="Existing episode this one closely resembles"
    )
    duplicate_similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    session_id: str | None = Field(default=None, description="Agent session that produced it")

    def to_storage(self) -> dict[str, Any]:
        """Serializable dict with unset optional keys dropped."""
        return self.model_dump(mode="json", exclude_none=True)


class Episode(BaseModel):
    """Atomic unit of memory.

    An observation made by an agent while working on a project. Episodes
    are append-only apart from feedback counters and archival fields.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: str = Field(default_factory=new_id, description="Unique identifier")
    project_id: str = Field(..., description="Owning project")
    workspace_id: str = Field(..., description="Owning workspace (tenant)")
    story_id: str | None = Field(default=None, description="Story the work belonged to")
    agent_type: str = Field(..., description="Free-form agent tag, e.g. dev, qa")
    timestamp: datetime = Field(default_factory=utc_now, description="When it was recorded")
    episode_type: EpisodeType
    content: str
    entities: list[str] = Field(default_factory=list, description="Referenced entity names")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: EpisodeMetadata = Field(default_factory=EpisodeMetadata)
    archived: bool = Field(default=False)
    archived_at: datetime | None = None
    summary_id: str | None = Field(default=None, description="Summary that absorbed it")

    @field_validator("timestamp", "archived_at")
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class EpisodeCreate(BaseModel):
    """Input for recording a new episode. Id and timestamp are assigned by the store."""

    project_id: str
    workspace_id: str
    story_id: str | None = None
    agent_type: str
    episode_type: EpisodeType
    content: str
    entities: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    metadata: EpisodeMetadata = Field(default_factory=EpisodeMetadata)


class EpisodeFilter(BaseModel):
    """Scoped episode search."""

    project_id: str
    workspace_id: str
    episode_types: list[EpisodeType] | None = None
    since: datetime | None = Field(default=None, description="Minimum timestamp")
    until: datetime | None = Field(default=None, description="Maximum timestamp")
    entities: list[str] | None = Field(default=None, description="Entity-name allow-list")
    include_archived: bool = False
    limit: int = Field(default=10, ge=1)

    @field_validator("since", "until")
    @classmethod
    def _bounds_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None
