"""Health and graph statistics models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["healthy", "degraded", "unavailable"]


class GraphStats(BaseModel):
    total_episodes: int = 0
    archived_episodes: int = 0
    episodes_by_type: dict[str, int] = Field(default_factory=dict)
    total_entities: int = 0
    total_summaries: int = 0
    total_patterns: int = 0
    last_episode_timestamp: datetime | None = None


class MemoryHealth(BaseModel):
    graph_connected: bool = False
    graph_version: str | None = None
    total_episodes: int = 0
    total_entities: int = 0
    last_episode_timestamp: datetime | None = None
    overall_status: HealthStatus = "unavailable"
