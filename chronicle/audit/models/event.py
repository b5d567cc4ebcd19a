"""MemoryEvent model for audit domain."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class MemoryEventType(str, Enum):
    SUMMARIZATION_COMPLETED = "memory.summarization_completed"
    INGESTION_COMPLETED = "memory.ingestion_completed"
    PATTERN_OVERRIDDEN = "memory.pattern_overridden"
    PATTERN_RESTORED = "memory.pattern_restored"
    PATTERNS_DETECTED = "memory.patterns_detected"
    MEMORIES_ARCHIVED = "memory.memories_archived"
    CAP_ENFORCED = "memory.cap_enforced"
    LIFECYCLE_COMPLETED = "memory.lifecycle_completed"


class MemoryEvent(BaseModel):
    """Notification emitted by the memory engines."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique identifier")
    event_type: MemoryEventType
    workspace_id: str = Field(..., description="Owning workspace")
    project_id: str | None = Field(default=None, description="Related project")
    payload: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    timestamp: datetime = Field(default_factory=utc_now, description="Event time")
