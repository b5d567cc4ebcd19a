"""Deduplicated ingestion of agent-extracted memories."""

import asyncio
import time
from datetime import datetime

from chronicle.audit import EventSink, MemoryEvent, MemoryEventType, emit_safely
from chronicle.config.models.memory import IngestionConfig
from chronicle.memory.ingestion.deduplicator import EpisodeDeduplicator
from chronicle.memory.ingestion.errors import IngestionError
from chronicle.memory.models import (
    EpisodeCreate,
    ExtractedMemory,
    IngestionInput,
    IngestionResult,
    IngestionStats,
)
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import EPISODES_INGESTED
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)


class MemoryIngestor:
    """Stores a batch of extracted memories for one agent run.

    Pipeline: deduplicate the batch, store each accepted memory with
    bounded retries, report a completion event.
    """

    def __init__(
        self,
        store: EpisodeStore,
        deduplicator: EpisodeDeduplicator,
        config: IngestionConfig,
        event_sink: EventSink | None = None,
    ):
        """Initialize ingestor.

        Args:
            store: Episode store
            deduplicator: Gate applied before storing
            config: Enable flag and retry policy
            event_sink: Receives memory.ingestion_completed
        """
        self._store = store
        self._deduplicator = deduplicator
        self._config = config
        self._event_sink = event_sink

    async def ingest(self, data: IngestionInput) -> IngestionResult:
        """Deduplicate and store memories.

        Never raises: storage failures are reported in `errors` and the
        completion event is emitted regardless of outcome.
        """
        if not self._config.enabled:
            return IngestionResult(errors=["Memory ingestion is disabled"])

        start = time.perf_counter()
        result = IngestionResult()

        if data.memories:
            try:
                dedup = await self._deduplicator.deduplicate_batch(
                    data.memories, data.project_id, data.workspace_id
                )
                result.skipped = dedup.skipped
                result.flagged = dedup.flagged

                for memory in dedup.accepted:
                    try:
                        episode_id = await self._store_with_retry(memory, data)
                    except IngestionError as e:
                        result.errors.append(str(e))
                        continue
                    result.episode_ids.append(episode_id)
            except Exception as e:
                logger.error(
                    "ingestion_pipeline_failed",
                    project_id=data.project_id,
                    workspace_id=data.workspace_id,
                    error=str(e),
                )
                result.errors.append(f"Ingestion pipeline error: {e}")

        result.episodes_created = len(result.episode_ids)
        result.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "ingestion_completed",
            project_id=data.project_id,
            agent_type=data.agent_type,
            episodes_created=result.episodes_created,
            skipped=result.skipped,
            flagged=result.flagged,
            errors=len(result.errors),
        )
        await emit_safely(
            self._event_sink,
            MemoryEvent(
                event_type=MemoryEventType.INGESTION_COMPLETED,
                workspace_id=data.workspace_id,
                project_id=data.project_id,
                payload=result.model_dump(mode="json"),
            ),
        )
        return result

    async def get_ingestion_stats(
        self,
        project_id: str,
        workspace_id: str,
        since: datetime | None = None,
    ) -> IngestionStats:
        """Episode totals for a project, optionally counted from `since`."""

        async def collect() -> IngestionStats:
            total = await self._store.count_project_episodes(
                project_id, workspace_id, since=since
            )
            archived = await self._store.count_project_episodes(
                project_id, workspace_id, archived=True, since=since
            )
            return IngestionStats(
                total_episodes=total,
                active_episodes=total - archived,
                archived_episodes=archived,
                since=since,
            )

        outcome = await attempt(
            collect(),
            fallback=IngestionStats(since=since),
            event="ingestion_stats_failed",
            project_id=project_id,
        )
        return outcome.value

    async def _store_with_retry(self, memory: ExtractedMemory, data: IngestionInput) -> str:
        metadata = memory.metadata.model_copy()
        if data.session_id is not None:
            metadata.session_id = data.session_id
        episode_data = EpisodeCreate(
            project_id=data.project_id,
            workspace_id=data.workspace_id,
            story_id=data.story_id,
            agent_type=data.agent_type,
            episode_type=memory.episode_type,
            content=memory.content,
            entities=memory.entities,
            confidence=memory.confidence,
            metadata=metadata,
        )

        last_error: Exception | None = None
        for attempt_number in range(self._config.max_retries):
            try:
                episode = await self._store.add_episode(episode_data)
                EPISODES_INGESTED.labels(episode_type=episode.episode_type.value).inc()
                return episode.id
            except Exception as e:
                last_error = e
                logger.warning(
                    "episode_store_attempt_failed",
                    project_id=data.project_id,
                    attempt=attempt_number + 1,
                    max_retries=self._config.max_retries,
                    error=str(e),
                )
                if attempt_number < self._config.max_retries - 1:
                    delay_ms = self._config.retry_base_delay_ms * (2**attempt_number)
                    await asyncio.sleep(delay_ms / 1000)

        raise IngestionError(
            f"Failed to store episode: {last_error}",
            project_id=data.project_id,
            workspace_id=data.workspace_id,
            attempts=self._config.max_retries,
            cause=last_error,
        )
