"""Monthly consolidation of old episodes into summary nodes.

Eligible episodes (old, low-confidence, unpinned, non-decision) are grouped
by UTC calendar month. Each month becomes one MemorySummary, merged into any
summary already stored for that month, and its episodes are archived in a
single batched write. Episodes are never deleted.
"""

import time
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from chronicle.audit import EventSink, MemoryEvent, MemoryEventType, emit_safely
from chronicle.config.models.memory import SummarizationConfig
from chronicle.memory.ingestion.errors import SummarizationError
from chronicle.memory.models import (
    Episode,
    EpisodeFilter,
    EpisodeType,
    MemorySummary,
    SummarizationResult,
    SummarizationStats,
    utc_now,
)
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import EPISODES_ARCHIVED, SUMMARIZATION_RUNS
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)

# Sub-headings of the extractive summary, in output order
_SUMMARY_SECTIONS: tuple[tuple[EpisodeType, str], ...] = (
    (EpisodeType.FACT, "Key facts"),
    (EpisodeType.PROBLEM, "Problems resolved"),
    (EpisodeType.PATTERN, "Patterns observed"),
    (EpisodeType.PREFERENCE, "Preferences"),
)


def month_key(timestamp: datetime) -> str:
    """UTC year-month key, e.g. "2026-01"."""
    return timestamp.astimezone(UTC).strftime("%Y-%m")


def month_bounds(key: str) -> tuple[datetime, datetime]:
    """First instant and last millisecond of a "YYYY-MM" month in UTC."""
    start = datetime.strptime(key, "%Y-%m").replace(tzinfo=UTC)
    if start.month == 12:
        next_start = start.replace(year=start.year + 1, month=1)
    else:
        next_start = start.replace(month=start.month + 1)
    return start, next_start - timedelta(milliseconds=1)


def group_by_month(episodes: list[Episode]) -> dict[str, list[Episode]]:
    """Bucket episodes by month key, oldest month first."""
    groups: dict[str, list[Episode]] = defaultdict(list)
    for episode in episodes:
        groups[month_key(episode.timestamp)].append(episode)
    return dict(sorted(groups.items()))


class MemorySummarizer:
    """Threshold-triggered consolidation of a project's episodes."""

    def __init__(
        self,
        store: EpisodeStore,
        config: SummarizationConfig,
        event_sink: EventSink | None = None,
    ):
        """Initialize summarizer.

        Args:
            store: Episode store
            config: Thresholds, age and length limits
            event_sink: Receives a completion event for every run
        """
        self._store = store
        self._config = config
        self._event_sink = event_sink

    async def check_and_summarize(
        self,
        project_id: str,
        workspace_id: str,
        *,
        now: datetime | None = None,
    ) -> SummarizationResult:
        """Consolidate only when active episodes reach the threshold.

        Archived episodes do not count, so a consolidated project does not
        re-trigger on its own history.
        """
        outcome = await attempt(
            self._store.count_project_episodes(project_id, workspace_id, archived=False),
            fallback=None,
            event="summarization_threshold_check_failed",
            project_id=project_id,
            workspace_id=workspace_id,
        )
        if outcome.value is None:
            result = SummarizationResult(
                skipped=True,
                errors=[f"Threshold check failed for project {project_id}: {outcome.error}"],
            )
            await self._emit_completed(project_id, workspace_id, result)
            return result

        if outcome.value < self._config.episode_threshold:
            SUMMARIZATION_RUNS.labels(outcome="skipped").inc()
            logger.debug(
                "summarization_below_threshold",
                project_id=project_id,
                active_episodes=outcome.value,
                threshold=self._config.episode_threshold,
            )
            return SummarizationResult(skipped=True)

        return await self.summarize_project(project_id, workspace_id, now=now)

    async def summarize_project(
        self,
        project_id: str,
        workspace_id: str,
        *,
        now: datetime | None = None,
    ) -> SummarizationResult:
        """Consolidate every eligible episode of a project, regardless of threshold.

        Per-month failures are collected in `errors`; months that succeeded
        stay committed. A completion event is emitted in every case.
        """
        start = time.perf_counter()
        now = now or utc_now()
        result = SummarizationResult()

        outcome = await attempt(
            self._store.search_episodes(
                EpisodeFilter(
                    project_id=project_id,
                    workspace_id=workspace_id,
                    include_archived=False,
                    limit=self._config.max_episodes,
                )
            ),
            fallback=None,
            event="summarization_load_failed",
            project_id=project_id,
            workspace_id=workspace_id,
        )
        if outcome.value is None:
            result.errors.append(f"Summarization failed for project {project_id}: {outcome.error}")
            return await self._finish(project_id, workspace_id, result, start)

        episodes = outcome.value
        eligible = [ep for ep in episodes if self.is_eligible(ep, now)]
        result.total_processed = len(eligible)
        if not eligible:
            return await self._finish(project_id, workspace_id, result, start)

        all_by_month = group_by_month(episodes)
        for key, month_episodes in group_by_month(eligible).items():
            month_outcome = await attempt(
                self._summarize_month(
                    project_id,
                    workspace_id,
                    key,
                    month_episodes,
                    all_by_month.get(key, month_episodes),
                    start,
                ),
                fallback=None,
                event="summarization_month_failed",
                project_id=project_id,
                period=key,
            )
            if month_outcome.value is None:
                result.errors.append(f"Failed to summarize month {key}: {month_outcome.error}")
                continue
            created, archived = month_outcome.value
            result.summaries_created += int(created)
            result.episodes_archived += archived

        return await self._finish(project_id, workspace_id, result, start)

    def is_eligible(self, episode: Episode, now: datetime) -> bool:
        """Whether an episode may be folded into a summary."""
        if episode.episode_type == EpisodeType.DECISION:
            return False
        if episode.metadata.pinned:
            return False
        if episode.confidence >= self._config.pinned_confidence:
            return False
        if episode.archived:
            return False
        cutoff = now - timedelta(days=self._config.age_days)
        return episode.timestamp <= cutoff

    def build_summary_text(
        self,
        episodes: list[Episode],
        period_start: datetime,
        period_end: datetime,
    ) -> str:
        """Deterministic extractive summary: header plus examples per type."""
        parts = [
            f"Period {period_start.date().isoformat()} to {period_end.date().isoformat()}: "
            f"{len(episodes)} episodes summarized."
        ]
        for episode_type, label in _SUMMARY_SECTIONS:
            contents = [ep.content for ep in episodes if ep.episode_type == episode_type]
            if contents:
                examples = contents[: self._config.examples_per_type]
                parts.append(f"{label}: {', '.join(examples)}")

        text = " ".join(parts)
        max_length = self._config.max_summary_length
        if len(text) > max_length:
            return text[: max_length - 3] + "..."
        return text

    async def get_project_summaries(
        self, project_id: str, workspace_id: str
    ) -> list[MemorySummary]:
        """Summaries for a project, newest period first. Empty on failure."""
        outcome = await attempt(
            self._store.list_summaries(project_id, workspace_id),
            fallback=[],
            event="summaries_fetch_failed",
            project_id=project_id,
        )
        return outcome.value

    async def get_summarization_stats(
        self, project_id: str, workspace_id: str
    ) -> SummarizationStats:
        outcome = await attempt(
            self._collect_stats(project_id, workspace_id),
            fallback=SummarizationStats(),
            event="summarization_stats_failed",
            project_id=project_id,
        )
        return outcome.value

    async def pin_episode(self, episode_id: str) -> bool:
        """Protect an episode from consolidation."""
        return await self._set_pinned(episode_id, True)

    async def unpin_episode(self, episode_id: str) -> bool:
        return await self._set_pinned(episode_id, False)

    async def _summarize_month(
        self,
        project_id: str,
        workspace_id: str,
        key: str,
        month_episodes: list[Episode],
        all_month_episodes: list[Episode],
        run_start: float,
    ) -> tuple[bool, int]:
        period_start, period_end = month_bounds(key)
        text = self.build_summary_text(month_episodes, period_start, period_end)
        episode_ids = [ep.id for ep in month_episodes]
        candidate = MemorySummary(
            project_id=project_id,
            workspace_id=workspace_id,
            period_start=period_start,
            period_end=period_end,
            original_episode_count=len(month_episodes),
            summary=text,
            key_decisions=[
                ep.content for ep in all_month_episodes if ep.episode_type == EpisodeType.DECISION
            ],
            key_patterns=[
                ep.content for ep in all_month_episodes if ep.episode_type == EpisodeType.PATTERN
            ],
            archived_episode_ids=episode_ids,
            summarization_model=self._config.model,
            metadata={
                "duration_ms": int((time.perf_counter() - run_start) * 1000),
                "episodes_processed": len(month_episodes),
                "output_size": len(text),
            },
        )

        stored = await self._store.upsert_summary(candidate)
        archived = await self._store.archive_episodes(episode_ids, stored.id)
        if archived != len(episode_ids):
            raise SummarizationError(
                f"Archived {archived} of {len(episode_ids)} episodes",
                project_id=project_id,
                period=key,
            )

        created = stored.id == candidate.id
        EPISODES_ARCHIVED.inc(archived)
        logger.info(
            "month_summarized",
            project_id=project_id,
            period=key,
            summary_id=stored.id,
            merged=not created,
            episodes_archived=archived,
        )
        return created, archived

    async def _collect_stats(self, project_id: str, workspace_id: str) -> SummarizationStats:
        summaries = await self._store.list_summaries(project_id, workspace_id)
        archived = await self._store.count_project_episodes(
            project_id, workspace_id, archived=True
        )
        active = await self._store.count_project_episodes(
            project_id, workspace_id, archived=False
        )
        periods = [s.period_start for s in summaries]
        return SummarizationStats(
            total_summaries=len(summaries),
            total_archived_episodes=archived,
            active_episodes=active,
            oldest_summary=min(periods, default=None),
            newest_summary=max(periods, default=None),
        )

    async def _set_pinned(self, episode_id: str, pinned: bool) -> bool:
        async def update() -> bool:
            episode = await self._store.get_episode(episode_id)
            if episode is None:
                return False
            episode.metadata.pinned = pinned
            return await self._store.update_episode_metadata(episode_id, episode.metadata)

        outcome = await attempt(
            update(),
            fallback=False,
            event="episode_pin_failed",
            episode_id=episode_id,
            pinned=pinned,
        )
        return outcome.value

    async def _finish(
        self,
        project_id: str,
        workspace_id: str,
        result: SummarizationResult,
        start: float,
    ) -> SummarizationResult:
        result.duration_ms = int((time.perf_counter() - start) * 1000)
        SUMMARIZATION_RUNS.labels(outcome="partial" if result.errors else "completed").inc()
        logger.info(
            "summarization_completed",
            project_id=project_id,
            workspace_id=workspace_id,
            summaries_created=result.summaries_created,
            episodes_archived=result.episodes_archived,
            total_processed=result.total_processed,
            errors=len(result.errors),
        )
        await self._emit_completed(project_id, workspace_id, result)
        return result

    async def _emit_completed(
        self, project_id: str, workspace_id: str, result: SummarizationResult
    ) -> None:
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=MemoryEventType.SUMMARIZATION_COMPLETED,
                workspace_id=workspace_id,
                project_id=project_id,
                payload=result.model_dump(mode="json"),
            ),
        )
