"""Cross-project pattern mining.

Episodes from different projects of one workspace are compared pairwise by
keyword similarity. Similar pairs accumulate into candidate groups; groups
become WorkspacePattern nodes, merged into an existing pattern when the
content already matches one. Confidence depends only on how many distinct
projects exhibit the pattern.
"""

import time
from dataclasses import dataclass, field

from chronicle.audit import EventSink, MemoryEvent, MemoryEventType, emit_safely
from chronicle.config.models.memory import PatternConfig
from chronicle.db.errors import NotFoundError
from chronicle.memory.models import (
    Episode,
    EpisodeFilter,
    PatternAdoptionStats,
    PatternConfidence,
    PatternDetectionResult,
    PatternFilters,
    PatternRecommendation,
    PatternStatus,
    PatternType,
    WorkspacePattern,
    utc_now,
)
from chronicle.memory.patterns.classifier import classify_pattern_type
from chronicle.memory.patterns.recommender import confidence_label
from chronicle.memory.store import EpisodeStore
from chronicle.memory.text import keyword_similarity
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import PATTERN_COMPARISONS, PATTERN_DETECTION_RUNS
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)


@dataclass
class CandidateGroup:
    """Similar episodes seen in at least two projects."""

    episodes: list[Episode] = field(default_factory=list)
    project_ids: set[str] = field(default_factory=set)

    def add(self, episode: Episode) -> None:
        if all(existing.id != episode.id for existing in self.episodes):
            self.episodes.append(episode)
        self.project_ids.add(episode.project_id)

    @property
    def representative(self) -> str:
        return self.episodes[0].content


class CrossProjectPatternEngine:
    """Detects, ranks and curates workspace patterns.

    Implements PatternRecommender so it can be injected into the query
    engine.
    """

    def __init__(
        self,
        store: EpisodeStore,
        config: PatternConfig,
        event_sink: EventSink | None = None,
    ):
        """Initialize pattern engine.

        Args:
            store: Episode store
            config: Similarity thresholds, tiers and budgets
            event_sink: Receives detection and override events
        """
        self._store = store
        self._config = config
        self._event_sink = event_sink

    def determine_confidence(self, project_count: int) -> PatternConfidence:
        if project_count <= self._config.low_confidence_projects:
            return PatternConfidence.LOW
        if project_count <= self._config.medium_confidence_projects:
            return PatternConfidence.MEDIUM
        return PatternConfidence.HIGH

    async def detect_patterns(self, workspace_id: str) -> PatternDetectionResult:
        """Mine patterns shared by two or more projects of a workspace.

        A no-op for single-project workspaces. Stops early once the
        comparison budget is spent. Failures leave whatever was written so
        far and are reported in `errors`.
        """
        start = time.perf_counter()
        result = PatternDetectionResult()

        try:
            project_ids = await self._store.list_project_ids(workspace_id)
            if len(project_ids) < 2:
                logger.info(
                    "pattern_detection_skipped",
                    workspace_id=workspace_id,
                    project_count=len(project_ids),
                )
                result.total_patterns = await self._store.count_patterns(workspace_id)
                result.detection_duration_ms = int((time.perf_counter() - start) * 1000)
                PATTERN_DETECTION_RUNS.labels(outcome="noop").inc()
                return result

            project_episodes = await self._load_project_episodes(workspace_id, project_ids, result)
            groups = self._build_candidate_groups(workspace_id, project_episodes, result)
            await self._persist_groups(workspace_id, groups, result)
            result.total_patterns = await self._store.count_patterns(workspace_id)
        except Exception as e:
            logger.error(
                "pattern_detection_failed",
                workspace_id=workspace_id,
                new_patterns=result.new_patterns,
                updated_patterns=result.updated_patterns,
                error=str(e),
            )
            result.errors.append(f"Pattern detection failed: {e}")
            outcome = await attempt(
                self._store.count_patterns(workspace_id),
                fallback=0,
                event="pattern_count_failed",
                workspace_id=workspace_id,
            )
            result.total_patterns = outcome.value

        result.detection_duration_ms = int((time.perf_counter() - start) * 1000)
        PATTERN_COMPARISONS.observe(result.comparisons)
        if result.errors and not (result.new_patterns or result.updated_patterns):
            run_outcome = "failed"
        elif result.truncated:
            run_outcome = "truncated"
        else:
            run_outcome = "completed"
        PATTERN_DETECTION_RUNS.labels(outcome=run_outcome).inc()
        logger.info(
            "pattern_detection_completed",
            workspace_id=workspace_id,
            new_patterns=result.new_patterns,
            updated_patterns=result.updated_patterns,
            total_patterns=result.total_patterns,
            comparisons=result.comparisons,
            truncated=result.truncated,
        )
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=MemoryEventType.PATTERNS_DETECTED,
                workspace_id=workspace_id,
                payload=result.model_dump(mode="json"),
            ),
        )
        return result

    async def get_workspace_patterns(
        self,
        workspace_id: str,
        filters: PatternFilters | None = None,
    ) -> list[WorkspacePattern]:
        """Patterns of a workspace; active only unless filters say otherwise."""
        return await self._store.list_patterns(workspace_id, filters or PatternFilters())

    async def get_pattern_recommendations(
        self,
        workspace_id: str,
        project_id: str,
        task_description: str,
    ) -> list[PatternRecommendation]:
        """Active patterns relevant to a task.

        Higher confidence always ranks first; relevance breaks ties within a
        tier. Overridden patterns are never returned.
        """
        patterns = await self._store.list_patterns(
            workspace_id,
            PatternFilters(
                status=PatternStatus.ACTIVE,
                limit=self._config.max_patterns_per_workspace,
            ),
        )

        recommendations = []
        for pattern in patterns:
            relevance = keyword_similarity(task_description, pattern.content)
            if relevance > 0:
                recommendations.append(
                    PatternRecommendation(
                        pattern=pattern,
                        relevance_score=relevance,
                        confidence_label=confidence_label(pattern.confidence),
                    )
                )

        recommendations.sort(
            key=lambda rec: (rec.pattern.confidence.rank, rec.relevance_score),
            reverse=True,
        )
        return recommendations[: self._config.max_recommendations]

    async def override_pattern(
        self,
        workspace_id: str,
        pattern_id: str,
        user_id: str,
        reason: str,
    ) -> WorkspacePattern:
        """Mark a pattern overridden by a user.

        Raises:
            NotFoundError: If the pattern does not exist
        """
        pattern = await self._require_pattern(workspace_id, pattern_id)
        pattern.status = PatternStatus.OVERRIDDEN
        pattern.overridden_by = user_id
        pattern.override_reason = reason
        pattern.updated_at = utc_now()
        updated = await self._store.update_pattern(pattern)

        logger.info(
            "pattern_overridden",
            workspace_id=workspace_id,
            pattern_id=pattern_id,
            user_id=user_id,
        )
        await self._emit_status_change(MemoryEventType.PATTERN_OVERRIDDEN, updated)
        return updated

    async def restore_pattern(self, workspace_id: str, pattern_id: str) -> WorkspacePattern:
        """Return an overridden pattern to active status.

        Raises:
            NotFoundError: If the pattern does not exist
        """
        pattern = await self._require_pattern(workspace_id, pattern_id)
        pattern.status = PatternStatus.ACTIVE
        pattern.overridden_by = None
        pattern.override_reason = None
        pattern.updated_at = utc_now()
        updated = await self._store.update_pattern(pattern)

        logger.info("pattern_restored", workspace_id=workspace_id, pattern_id=pattern_id)
        await self._emit_status_change(MemoryEventType.PATTERN_RESTORED, updated)
        return updated

    async def get_pattern_adoption_stats(self, workspace_id: str) -> PatternAdoptionStats:
        total = await self._store.count_patterns(workspace_id)
        stats = PatternAdoptionStats(
            by_confidence={c.value: 0 for c in PatternConfidence},
            by_type={t.value: 0 for t in PatternType},
        )
        if total == 0:
            return stats

        patterns = await self._store.list_patterns(
            workspace_id, PatternFilters(status=None, limit=total)
        )
        active = overridden = occurrences = 0
        for pattern in patterns:
            stats.by_confidence[pattern.confidence.value] += 1
            stats.by_type[pattern.pattern_type.value] += 1
            occurrences += pattern.occurrence_count
            if pattern.status == PatternStatus.ACTIVE:
                active += 1
            else:
                overridden += 1

        stats.total_patterns = len(patterns)
        stats.override_rate = overridden / (active + overridden) if active + overridden else 0.0
        stats.average_occurrence_count = occurrences / len(patterns) if patterns else 0.0
        stats.top_patterns = patterns[: self._config.top_patterns]
        return stats

    async def _load_project_episodes(
        self,
        workspace_id: str,
        project_ids: list[str],
        result: PatternDetectionResult,
    ) -> dict[str, list[Episode]]:
        project_episodes: dict[str, list[Episode]] = {}
        for project_id in project_ids:
            outcome = await attempt(
                self._store.search_episodes(
                    EpisodeFilter(
                        project_id=project_id,
                        workspace_id=workspace_id,
                        limit=self._config.detection_batch_size,
                    )
                ),
                fallback=[],
                event="pattern_episode_fetch_failed",
                workspace_id=workspace_id,
                project_id=project_id,
            )
            if outcome.error:
                result.errors.append(f"Failed to load project {project_id}: {outcome.error}")
            if outcome.value:
                project_episodes[project_id] = outcome.value
        return project_episodes

    def _build_candidate_groups(
        self,
        workspace_id: str,
        project_episodes: dict[str, list[Episode]],
        result: PatternDetectionResult,
    ) -> list[CandidateGroup]:
        threshold = self._config.similarity_threshold
        groups: list[CandidateGroup] = []
        project_ids = list(project_episodes)

        for i, project_a in enumerate(project_ids):
            for project_b in project_ids[i + 1 :]:
                for episode_a in project_episodes[project_a]:
                    for episode_b in project_episodes[project_b]:
                        if result.comparisons >= self._config.max_comparisons:
                            result.truncated = True
                            logger.warning(
                                "pattern_comparison_budget_exhausted",
                                workspace_id=workspace_id,
                                max_comparisons=self._config.max_comparisons,
                            )
                            return groups
                        result.comparisons += 1

                        if keyword_similarity(episode_a.content, episode_b.content) < threshold:
                            continue

                        group = next(
                            (
                                g
                                for g in groups
                                if keyword_similarity(g.representative, episode_a.content)
                                >= threshold
                            ),
                            None,
                        )
                        if group is None:
                            group = CandidateGroup()
                            groups.append(group)
                        group.add(episode_a)
                        group.add(episode_b)
        return groups

    async def _persist_groups(
        self,
        workspace_id: str,
        groups: list[CandidateGroup],
        result: PatternDetectionResult,
    ) -> None:
        existing = await self._store.list_patterns(
            workspace_id,
            PatternFilters(status=None, limit=self._config.max_patterns_per_workspace),
        )
        pattern_count = await self._store.count_patterns(workspace_id)

        for group in groups:
            if len(group.episodes) < self._config.min_episodes:
                continue

            match = next(
                (
                    p
                    for p in existing
                    if keyword_similarity(group.representative, p.content)
                    >= self._config.dedup_threshold
                ),
                None,
            )

            if match is not None:
                match.source_project_ids = list(
                    dict.fromkeys([*match.source_project_ids, *sorted(group.project_ids)])
                )
                match.source_episode_ids = list(
                    dict.fromkeys([*match.source_episode_ids, *(ep.id for ep in group.episodes)])
                )
                match.occurrence_count = len(match.source_project_ids)
                match.confidence = self.determine_confidence(match.occurrence_count)
                match.updated_at = utc_now()
                outcome = await attempt(
                    self._store.update_pattern(match),
                    fallback=None,
                    event="pattern_update_failed",
                    workspace_id=workspace_id,
                    pattern_id=match.id,
                )
                if outcome.error:
                    result.errors.append(f"Failed to update pattern {match.id}: {outcome.error}")
                else:
                    result.updated_patterns += 1
                continue

            if pattern_count >= self._config.max_patterns_per_workspace:
                logger.warning(
                    "pattern_limit_reached",
                    workspace_id=workspace_id,
                    max_patterns=self._config.max_patterns_per_workspace,
                )
                break

            project_ids = sorted(group.project_ids)
            pattern = WorkspacePattern(
                workspace_id=workspace_id,
                pattern_type=classify_pattern_type(group.episodes),
                content=group.representative,
                source_project_ids=project_ids,
                source_episode_ids=list(dict.fromkeys(ep.id for ep in group.episodes)),
                confidence=self.determine_confidence(len(project_ids)),
            )
            outcome = await attempt(
                self._store.create_pattern(pattern),
                fallback=None,
                event="pattern_create_failed",
                workspace_id=workspace_id,
            )
            if outcome.value is None:
                result.errors.append(f"Failed to create pattern: {outcome.error}")
                continue
            existing.append(outcome.value)
            pattern_count += 1
            result.new_patterns += 1

    async def _require_pattern(self, workspace_id: str, pattern_id: str) -> WorkspacePattern:
        pattern = await self._store.get_pattern(workspace_id, pattern_id)
        if pattern is None:
            raise NotFoundError(f"Pattern {pattern_id} not found")
        return pattern

    async def _emit_status_change(
        self, event_type: MemoryEventType, pattern: WorkspacePattern
    ) -> None:
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=event_type,
                workspace_id=pattern.workspace_id,
                payload={
                    "pattern_id": pattern.id,
                    "status": pattern.status.value,
                    "overridden_by": pattern.overridden_by,
                    "override_reason": pattern.override_reason,
                },
            ),
        )
