"""Retention lifecycle: age-based archival and per-project caps.

Lifecycle only ever archives. Archived episodes keep every field and stay
queryable with include_archived, so a policy change never loses history.
Pinned episodes are always kept; decisions and patterns are kept while the
workspace policy retains them.
"""

import time
from datetime import datetime, timedelta

from chronicle.audit import EventSink, MemoryEvent, MemoryEventType, emit_safely
from chronicle.config.models.memory import LifecycleConfig
from chronicle.memory.models import (
    ArchiveResult,
    CapEnforcementResult,
    Episode,
    EpisodeFilter,
    EpisodeType,
    GraphStats,
    LifecyclePolicy,
    LifecyclePolicyUpdate,
    LifecycleReport,
    LifecycleRunResult,
    ProjectLifecycleStatus,
    ProjectRecommendation,
    utc_now,
)
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import LIFECYCLE_ARCHIVED
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)

# Retention score weights; lowest scores are archived first
CONFIDENCE_WEIGHT = 0.4
RECENCY_WEIGHT = 0.3
USAGE_WEIGHT = 0.3


class MemoryLifecycleManager:
    """Applies a workspace's retention policy to its projects."""

    def __init__(
        self,
        store: EpisodeStore,
        config: LifecycleConfig,
        event_sink: EventSink | None = None,
    ):
        """Initialize lifecycle manager.

        Args:
            store: Episode store
            config: Policy defaults, batch size and report thresholds
            event_sink: Receives archival and completion events
        """
        self._store = store
        self._config = config
        self._event_sink = event_sink

    def default_policy(self, workspace_id: str) -> LifecyclePolicy:
        return LifecyclePolicy(
            workspace_id=workspace_id,
            archive_after_days=self._config.archive_after_days,
            max_memories_per_project=self._config.max_memories_per_project,
            retain_decisions_forever=self._config.retain_decisions_forever,
            retain_patterns_forever=self._config.retain_patterns_forever,
        )

    async def get_policy(self, workspace_id: str) -> LifecyclePolicy:
        """Stored policy, or the configured defaults when none is stored or readable."""
        outcome = await attempt(
            self._store.get_lifecycle_policy(workspace_id),
            fallback=None,
            event="lifecycle_policy_fetch_failed",
            workspace_id=workspace_id,
        )
        return outcome.value or self.default_policy(workspace_id)

    async def update_policy(
        self, workspace_id: str, update: LifecyclePolicyUpdate
    ) -> LifecyclePolicy:
        """Merge the set fields into the current policy and store it.

        Raises:
            StoreError: If the policy cannot be written
        """
        current = await self.get_policy(workspace_id)
        changes = update.model_dump(exclude_none=True)
        policy = current.model_copy(update={**changes, "updated_at": utc_now()})
        stored = await self._store.upsert_lifecycle_policy(policy)
        logger.info("lifecycle_policy_updated", workspace_id=workspace_id, **changes)
        return stored

    def is_protected(self, episode: Episode, policy: LifecyclePolicy) -> bool:
        """Whether retention must never archive this episode."""
        if episode.metadata.pinned:
            return True
        if episode.episode_type == EpisodeType.DECISION and policy.retain_decisions_forever:
            return True
        return episode.episode_type == EpisodeType.PATTERN and policy.retain_patterns_forever

    def retention_score(self, episode: Episode, now: datetime) -> float:
        """Blend of confidence, recency and useful feedback, in [0, 1]."""
        age_days = (now - episode.timestamp).total_seconds() / 86400
        recency = min(1.0, max(0.0, 1.0 - age_days / self._config.recency_horizon_days))
        usage = min(1.0, episode.metadata.useful_count / self._config.usage_saturation)
        return (
            CONFIDENCE_WEIGHT * episode.confidence
            + RECENCY_WEIGHT * recency
            + USAGE_WEIGHT * usage
        )

    def recommend(self, active: int, policy: LifecyclePolicy) -> ProjectRecommendation:
        cap = policy.max_memories_per_project
        if active > cap:
            return "over_cap"
        if active > cap * self._config.near_cap_ratio:
            return "near_cap"
        if active < self._config.sparse_threshold:
            return "sparse"
        return "healthy"

    async def archive_old_memories(
        self, workspace_id: str, *, now: datetime | None = None
    ) -> ArchiveResult:
        """Archive unprotected episodes older than the policy allows.

        At most batch_limit episodes are archived per call; later calls pick
        up the rest. Per-project failures are collected in `errors`.
        """
        now = now or utc_now()
        policy = await self.get_policy(workspace_id)
        cutoff = now - timedelta(days=policy.archive_after_days)
        result = ArchiveResult()

        projects = await attempt(
            self._store.list_project_ids(workspace_id),
            fallback=None,
            event="lifecycle_projects_failed",
            workspace_id=workspace_id,
        )
        if projects.value is None:
            result.errors.append(f"Listing projects failed: {projects.error}")
            return result

        for project_id in projects.value:
            remaining = self._config.batch_limit - result.archived
            if remaining <= 0:
                break
            outcome = await attempt(
                self._archive_project_before(project_id, workspace_id, cutoff, policy, remaining),
                fallback=None,
                event="lifecycle_archive_failed",
                project_id=project_id,
                workspace_id=workspace_id,
            )
            if outcome.value is None:
                result.errors.append(f"Archiving project {project_id} failed: {outcome.error}")
                continue
            archived, skipped = outcome.value
            result.archived += archived
            result.skipped_protected += skipped

        LIFECYCLE_ARCHIVED.labels(reason="age").inc(result.archived)
        logger.info(
            "memories_archived",
            workspace_id=workspace_id,
            archived=result.archived,
            skipped_protected=result.skipped_protected,
            cutoff=cutoff.isoformat(),
        )
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=MemoryEventType.MEMORIES_ARCHIVED,
                workspace_id=workspace_id,
                payload={**result.model_dump(mode="json"), "cutoff": cutoff.isoformat()},
            ),
        )
        return result

    async def enforce_project_cap(
        self,
        project_id: str,
        workspace_id: str,
        *,
        now: datetime | None = None,
    ) -> CapEnforcementResult:
        """Archive the lowest-scoring unprotected episodes above the cap.

        Protected episodes count towards the cap but are never archived, so
        a project made up of them can stay above it.

        Raises:
            StoreError: If counting, loading or archiving fails
        """
        now = now or utc_now()
        policy = await self.get_policy(workspace_id)
        active = await self._store.count_project_episodes(
            project_id, workspace_id, archived=False
        )
        result = CapEnforcementResult(
            project_id=project_id, active_before=active, active_after=active
        )
        excess = active - policy.max_memories_per_project
        if excess <= 0:
            return result

        episodes = await self._store.search_episodes(
            EpisodeFilter(project_id=project_id, workspace_id=workspace_id, limit=active)
        )
        candidates = sorted(
            (ep for ep in episodes if not self.is_protected(ep, policy)),
            key=lambda ep: self.retention_score(ep, now),
        )
        episode_ids = [ep.id for ep in candidates[:excess]]
        archived = await self._store.archive_episodes(episode_ids) if episode_ids else 0

        result.archived = archived
        result.active_after = active - archived
        LIFECYCLE_ARCHIVED.labels(reason="cap").inc(archived)
        logger.info(
            "cap_enforced",
            project_id=project_id,
            workspace_id=workspace_id,
            cap=policy.max_memories_per_project,
            active_before=active,
            archived=archived,
        )
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=MemoryEventType.CAP_ENFORCED,
                workspace_id=workspace_id,
                project_id=project_id,
                payload=result.model_dump(mode="json"),
            ),
        )
        return result

    async def run_lifecycle(
        self, workspace_id: str, *, now: datetime | None = None
    ) -> LifecycleRunResult:
        """Age-based archival, then cap enforcement for every project.

        Always returns; failures are collected in `errors`.
        """
        start = time.perf_counter()
        now = now or utc_now()
        result = LifecycleRunResult(workspace_id=workspace_id)

        archive = await self.archive_old_memories(workspace_id, now=now)
        result.archived_by_age = archive.archived
        result.errors.extend(archive.errors)

        projects = await attempt(
            self._store.list_project_ids(workspace_id),
            fallback=[],
            event="lifecycle_projects_failed",
            workspace_id=workspace_id,
        )
        if projects.error:
            result.errors.append(f"Listing projects failed: {projects.error}")
        for project_id in projects.value:
            outcome = await attempt(
                self.enforce_project_cap(project_id, workspace_id, now=now),
                fallback=None,
                event="lifecycle_cap_failed",
                project_id=project_id,
                workspace_id=workspace_id,
            )
            if outcome.value is None:
                result.errors.append(f"Cap enforcement for {project_id} failed: {outcome.error}")
                continue
            if outcome.value.archived:
                result.projects_over_cap += 1
                result.archived_by_cap += outcome.value.archived

        result.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "lifecycle_completed",
            workspace_id=workspace_id,
            archived_by_age=result.archived_by_age,
            archived_by_cap=result.archived_by_cap,
            errors=len(result.errors),
        )
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=MemoryEventType.LIFECYCLE_COMPLETED,
                workspace_id=workspace_id,
                payload=result.model_dump(mode="json"),
            ),
        )
        return result

    async def get_lifecycle_report(self, workspace_id: str) -> LifecycleReport:
        """Per-project counts and recommendations. Empty when the store fails."""
        policy = await self.get_policy(workspace_id)
        outcome = await attempt(
            self._collect_report(workspace_id, policy),
            fallback=LifecycleReport(workspace_id=workspace_id, policy=policy),
            event="lifecycle_report_failed",
            workspace_id=workspace_id,
        )
        return outcome.value

    async def _archive_project_before(
        self,
        project_id: str,
        workspace_id: str,
        cutoff: datetime,
        policy: LifecyclePolicy,
        limit: int,
    ) -> tuple[int, int]:
        episodes = await self._store.search_episodes(
            EpisodeFilter(
                project_id=project_id,
                workspace_id=workspace_id,
                until=cutoff,
                limit=self._config.batch_limit,
            )
        )
        protected = [ep for ep in episodes if self.is_protected(ep, policy)]
        episode_ids = [ep.id for ep in episodes if not self.is_protected(ep, policy)][:limit]
        archived = await self._store.archive_episodes(episode_ids) if episode_ids else 0
        return archived, len(protected)

    async def _collect_report(
        self, workspace_id: str, policy: LifecyclePolicy
    ) -> LifecycleReport:
        report = LifecycleReport(workspace_id=workspace_id, policy=policy)
        for project_id in await self._store.list_project_ids(workspace_id):
            active = await self._store.count_project_episodes(
                project_id, workspace_id, archived=False
            )
            archived = await self._store.count_project_episodes(
                project_id, workspace_id, archived=True
            )
            report.projects.append(
                ProjectLifecycleStatus(
                    project_id=project_id,
                    active_episodes=active,
                    archived_episodes=archived,
                    recommendation=self.recommend(active, policy),
                )
            )
            report.total_active += active
            report.total_archived += archived

        stats = await attempt(
            self._store.get_graph_stats(),
            fallback=GraphStats(),
            event="lifecycle_graph_stats_failed",
        )
        report.graph_entities = stats.value.total_entities
        report.graph_summaries = stats.value.total_summaries
        return report
