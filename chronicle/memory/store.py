"""EpisodeStore abstract interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from chronicle.memory.models import (
    EntityRef,
    Episode,
    EpisodeCreate,
    EpisodeFilter,
    EpisodeMetadata,
    GraphStats,
    LifecyclePolicy,
    MemorySummary,
    PatternFilters,
    WorkspacePattern,
)


class EpisodeStore(ABC):
    """Abstract interface for the memory graph.

    Owns episodes, entity references, monthly summaries and workspace
    patterns. Every episode path is scoped by (project_id, workspace_id).
    Summary and pattern writes merge on their natural keys so that
    overlapping sweeps converge.
    """

    # Connectivity
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backing store can currently serve requests."""
        pass

    @abstractmethod
    async def server_version(self) -> str | None:
        """Backend version string, or None when unknown."""
        pass

    # Episode operations
    @abstractmethod
    async def add_episode(self, data: EpisodeCreate) -> Episode:
        """Record an episode with a fresh id and timestamp.

        Merges project/workspace anchors and entity references in one
        batched write.
        """
        pass

    @abstractmethod
    async def get_episode(
        self,
        episode_id: str,
        *,
        project_id: str | None = None,
        workspace_id: str | None = None,
    ) -> Episode | None:
        """Get an episode with its entity names, optionally scope-checked."""
        pass

    @abstractmethod
    async def search_episodes(self, filters: EpisodeFilter) -> list[Episode]:
        """Scoped search, newest first."""
        pass

    @abstractmethod
    async def delete_episode(self, episode_id: str) -> bool:
        """Hard-delete an episode and its relationships.

        Compliance workflows only; the engines never call this.
        """
        pass

    @abstractmethod
    async def archive_episode(self, episode_id: str, summary_id: str | None = None) -> bool:
        """Mark a single episode archived. Never removes it."""
        pass

    @abstractmethod
    async def archive_episodes(
        self, episode_ids: list[str], summary_id: str | None = None
    ) -> int:
        """Archive episodes and link them to a summary in one statement.

        Without a summary_id the episodes are archived unlinked, as lifecycle
        retention does.

        Returns:
            Number of episodes archived
        """
        pass

    @abstractmethod
    async def update_episode_metadata(
        self, episode_id: str, metadata: EpisodeMetadata
    ) -> bool:
        """Replace an episode's metadata. False if the episode is missing."""
        pass

    @abstractmethod
    async def count_project_episodes(
        self,
        project_id: str,
        workspace_id: str | None = None,
        *,
        archived: bool | None = None,
        since: datetime | None = None,
    ) -> int:
        """Count a project's episodes.

        workspace_id=None counts across workspaces; archived=None counts both
        active and archived episodes.
        """
        pass

    @abstractmethod
    async def list_project_ids(self, workspace_id: str) -> list[str]:
        """Distinct project ids with recorded episodes in a workspace."""
        pass

    # Entity operations
    @abstractmethod
    async def add_entity_ref(
        self,
        name: str,
        project_id: str,
        workspace_id: str,
        *,
        entity_type: str = "other",
        metadata: dict[str, Any] | None = None,
    ) -> EntityRef:
        """Merge an entity reference by (name, project, workspace)."""
        pass

    @abstractmethod
    async def get_entity_episodes(
        self,
        entity_name: str,
        project_id: str,
        workspace_id: str,
        *,
        limit: int = 50,
    ) -> list[Episode]:
        """Active episodes referencing an entity, newest first."""
        pass

    # Summary operations
    @abstractmethod
    async def upsert_summary(self, summary: MemorySummary) -> MemorySummary:
        """Create or merge the summary for its (project, workspace, period).

        On merge the episode count is added, archived ids are appended, the
        text is replaced and key decisions/patterns are unioned in order.
        Returns the stored summary, whose id is the pre-existing one on merge.
        """
        pass

    @abstractmethod
    async def list_summaries(
        self, project_id: str, workspace_id: str
    ) -> list[MemorySummary]:
        """Summaries for a project, newest period first."""
        pass

    # Pattern operations
    @abstractmethod
    async def create_pattern(self, pattern: WorkspacePattern) -> WorkspacePattern:
        """Persist a new pattern."""
        pass

    @abstractmethod
    async def update_pattern(self, pattern: WorkspacePattern) -> WorkspacePattern:
        """Replace a pattern's mutable fields.

        Raises:
            NotFoundError: If no pattern has this id in its workspace
        """
        pass

    @abstractmethod
    async def get_pattern(self, workspace_id: str, pattern_id: str) -> WorkspacePattern | None:
        """Get a pattern by id within a workspace."""
        pass

    @abstractmethod
    async def list_patterns(
        self, workspace_id: str, filters: PatternFilters | None = None
    ) -> list[WorkspacePattern]:
        """Patterns ordered by occurrence count, then most recently updated."""
        pass

    @abstractmethod
    async def count_patterns(self, workspace_id: str) -> int:
        """All patterns in a workspace, any status."""
        pass

    # Lifecycle policy
    @abstractmethod
    async def get_lifecycle_policy(self, workspace_id: str) -> LifecyclePolicy | None:
        """Stored retention policy, None when the workspace never set one."""
        pass

    @abstractmethod
    async def upsert_lifecycle_policy(self, policy: LifecyclePolicy) -> LifecyclePolicy:
        """Create or replace the policy for its workspace."""
        pass

    # Statistics
    @abstractmethod
    async def get_graph_stats(self) -> GraphStats:
        """Node counts across the whole graph."""
        pass
