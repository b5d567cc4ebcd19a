"""In-memory implementation of EpisodeStore."""

from datetime import datetime
from typing import Any

from chronicle.db.errors import NotFoundError
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
    ensure_utc,
    utc_now,
)
from chronicle.memory.store import EpisodeStore


def _union(existing: list[str], incoming: list[str]) -> list[str]:
    return [*existing, *(item for item in incoming if item not in existing)]


class InMemoryEpisodeStore(EpisodeStore):
    """In-memory implementation of EpisodeStore for testing and development.

    Uses simple dict storage with linear scan for queries. Summary and
    pattern writes follow the same merge semantics as the graph backend.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._episodes: dict[str, Episode] = {}
        self._entities: dict[tuple[str, str, str], EntityRef] = {}
        self._summaries: dict[str, MemorySummary] = {}
        self._summary_links: dict[str, set[str]] = {}
        self._patterns: dict[str, WorkspacePattern] = {}
        self._policies: dict[str, LifecyclePolicy] = {}

    def is_available(self) -> bool:
        return True

    async def server_version(self) -> str | None:
        return "inmemory"

    # Episode operations
    async def add_episode(self, data: EpisodeCreate) -> Episode:
        """Record an episode with a fresh id and timestamp."""
        episode = Episode(**data.model_dump(exclude={"metadata"}), metadata=data.metadata.model_copy())
        self._episodes[episode.id] = episode
        for name in episode.entities:
            await self.add_entity_ref(name, episode.project_id, episode.workspace_id)
        return episode.model_copy(deep=True)

    async def get_episode(
        self,
        episode_id: str,
        *,
        project_id: str | None = None,
        workspace_id: str | None = None,
    ) -> Episode | None:
        """Get an episode by ID."""
        episode = self._episodes.get(episode_id)
        if episode is None:
            return None
        if project_id is not None and episode.project_id != project_id:
            return None
        if workspace_id is not None and episode.workspace_id != workspace_id:
            return None
        return episode.model_copy(deep=True)

    async def search_episodes(self, filters: EpisodeFilter) -> list[Episode]:
        """Scoped search, newest first."""
        types = set(filters.episode_types) if filters.episode_types else None
        entities = set(filters.entities) if filters.entities else None
        results = []
        for episode in self._episodes.values():
            if episode.project_id != filters.project_id:
                continue
            if episode.workspace_id != filters.workspace_id:
                continue
            if not filters.include_archived and episode.archived:
                continue
            if types is not None and episode.episode_type not in types:
                continue
            if filters.since is not None and episode.timestamp < filters.since:
                continue
            if filters.until is not None and episode.timestamp > filters.until:
                continue
            if entities is not None and not entities.intersection(episode.entities):
                continue
            results.append(episode)
        results.sort(key=lambda x: x.timestamp, reverse=True)
        return [ep.model_copy(deep=True) for ep in results[: filters.limit]]

    async def delete_episode(self, episode_id: str) -> bool:
        """Delete an episode."""
        if episode_id not in self._episodes:
            return False
        del self._episodes[episode_id]
        for linked in self._summary_links.values():
            linked.discard(episode_id)
        return True

    async def archive_episode(self, episode_id: str, summary_id: str | None = None) -> bool:
        return await self.archive_episodes([episode_id], summary_id) == 1

    async def archive_episodes(
        self, episode_ids: list[str], summary_id: str | None = None
    ) -> int:
        """Archive episodes and link them to a summary when one is given."""
        archived_at = utc_now()
        count = 0
        for episode_id in dict.fromkeys(episode_ids):
            episode = self._episodes.get(episode_id)
            if episode is None:
                continue
            episode.archived = True
            episode.archived_at = archived_at
            if summary_id is not None:
                episode.summary_id = summary_id
                self._summary_links.setdefault(summary_id, set()).add(episode_id)
            count += 1
        return count

    async def update_episode_metadata(
        self, episode_id: str, metadata: EpisodeMetadata
    ) -> bool:
        episode = self._episodes.get(episode_id)
        if episode is None:
            return False
        episode.metadata = metadata.model_copy()
        return True

    async def count_project_episodes(
        self,
        project_id: str,
        workspace_id: str | None = None,
        *,
        archived: bool | None = None,
        since: datetime | None = None,
    ) -> int:
        since = ensure_utc(since) if since is not None else None
        count = 0
        for episode in self._episodes.values():
            if episode.project_id != project_id:
                continue
            if workspace_id is not None and episode.workspace_id != workspace_id:
                continue
            if archived is not None and episode.archived != archived:
                continue
            if since is not None and episode.timestamp < since:
                continue
            count += 1
        return count

    async def list_project_ids(self, workspace_id: str) -> list[str]:
        project_ids = {
            ep.project_id for ep in self._episodes.values() if ep.workspace_id == workspace_id
        }
        return sorted(project_ids)

    # Entity operations
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
        key = (name, project_id, workspace_id)
        existing = self._entities.get(key)
        if existing is None:
            existing = EntityRef(
                name=name,
                entity_type=entity_type,
                project_id=project_id,
                workspace_id=workspace_id,
                metadata=dict(metadata or {}),
            )
            self._entities[key] = existing
        return existing.model_copy(deep=True)

    async def get_entity_episodes(
        self,
        entity_name: str,
        project_id: str,
        workspace_id: str,
        *,
        limit: int = 50,
    ) -> list[Episode]:
        results = [
            ep
            for ep in self._episodes.values()
            if ep.project_id == project_id
            and ep.workspace_id == workspace_id
            and not ep.archived
            and entity_name in ep.entities
        ]
        results.sort(key=lambda x: x.timestamp, reverse=True)
        return [ep.model_copy(deep=True) for ep in results[:limit]]

    # Summary operations
    async def upsert_summary(self, summary: MemorySummary) -> MemorySummary:
        """Create or merge the summary for its period."""
        for existing in self._summaries.values():
            if (
                existing.project_id == summary.project_id
                and existing.workspace_id == summary.workspace_id
                and existing.period_start == summary.period_start
                and existing.period_end == summary.period_end
            ):
                existing.original_episode_count += summary.original_episode_count
                existing.archived_episode_ids = [
                    *existing.archived_episode_ids,
                    *summary.archived_episode_ids,
                ]
                existing.summary = summary.summary
                existing.key_decisions = _union(existing.key_decisions, summary.key_decisions)
                existing.key_patterns = _union(existing.key_patterns, summary.key_patterns)
                existing.metadata = dict(summary.metadata)
                return existing.model_copy(deep=True)

        stored = summary.model_copy(deep=True)
        self._summaries[stored.id] = stored
        return stored.model_copy(deep=True)

    async def list_summaries(
        self, project_id: str, workspace_id: str
    ) -> list[MemorySummary]:
        results = [
            s
            for s in self._summaries.values()
            if s.project_id == project_id and s.workspace_id == workspace_id
        ]
        results.sort(key=lambda x: x.period_start, reverse=True)
        return [s.model_copy(deep=True) for s in results]

    # Pattern operations
    async def create_pattern(self, pattern: WorkspacePattern) -> WorkspacePattern:
        self._patterns[pattern.id] = pattern.model_copy(deep=True)
        return pattern.model_copy(deep=True)

    async def update_pattern(self, pattern: WorkspacePattern) -> WorkspacePattern:
        existing = self._patterns.get(pattern.id)
        if existing is None or existing.workspace_id != pattern.workspace_id:
            raise NotFoundError(f"Pattern {pattern.id} not found")
        self._patterns[pattern.id] = pattern.model_copy(deep=True)
        return pattern.model_copy(deep=True)

    async def get_pattern(self, workspace_id: str, pattern_id: str) -> WorkspacePattern | None:
        pattern = self._patterns.get(pattern_id)
        if pattern is None or pattern.workspace_id != workspace_id:
            return None
        return pattern.model_copy(deep=True)

    async def list_patterns(
        self, workspace_id: str, filters: PatternFilters | None = None
    ) -> list[WorkspacePattern]:
        filters = filters or PatternFilters(status=None)
        results = []
        for pattern in self._patterns.values():
            if pattern.workspace_id != workspace_id:
                continue
            if filters.status is not None and pattern.status != filters.status:
                continue
            if filters.pattern_type is not None and pattern.pattern_type != filters.pattern_type:
                continue
            if filters.confidence is not None and pattern.confidence != filters.confidence:
                continue
            results.append(pattern)
        results.sort(key=lambda p: (p.occurrence_count, p.updated_at), reverse=True)
        return [p.model_copy(deep=True) for p in results[: filters.limit]]

    async def count_patterns(self, workspace_id: str) -> int:
        return sum(1 for p in self._patterns.values() if p.workspace_id == workspace_id)

    # Lifecycle policy
    async def get_lifecycle_policy(self, workspace_id: str) -> LifecyclePolicy | None:
        policy = self._policies.get(workspace_id)
        return policy.model_copy() if policy else None

    async def upsert_lifecycle_policy(self, policy: LifecyclePolicy) -> LifecyclePolicy:
        self._policies[policy.workspace_id] = policy.model_copy()
        return policy.model_copy()

    # Statistics
    async def get_graph_stats(self) -> GraphStats:
        by_type: dict[str, int] = {}
        for episode in self._episodes.values():
            key = episode.episode_type.value
            by_type[key] = by_type.get(key, 0) + 1
        last = max((ep.timestamp for ep in self._episodes.values()), default=None)
        return GraphStats(
            total_episodes=len(self._episodes),
            archived_episodes=sum(1 for ep in self._episodes.values() if ep.archived),
            episodes_by_type=by_type,
            total_entities=len(self._entities),
            total_summaries=len(self._summaries),
            total_patterns=len(self._patterns),
            last_episode_timestamp=last,
        )
