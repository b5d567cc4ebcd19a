"""Composition root for the memory engine.

Wires the store, engines and event sink from configuration. The pattern
engine is injected into the query engine as its PatternRecommender.

Example usage:

    from chronicle.bootstrap import create_memory_engine

    engine = await create_memory_engine()
    context = await engine.query.query_for_agent_context(
        project_id="proj-1",
        workspace_id="ws-1",
        task_description="Add retry logic to the payment client",
        agent_type="dev",
    )
    await engine.close()
"""

from dataclasses import dataclass

from prometheus_client import start_http_server

from chronicle.audit import EventSink, LoggingEventSink
from chronicle.config import get_settings
from chronicle.config.settings import Settings
from chronicle.db.graph import GraphStore
from chronicle.memory.health import MemoryHealthService
from chronicle.memory.ingestion import (
    EpisodeDeduplicator,
    MemoryExtractor,
    MemoryIngestor,
    MemorySummarizer,
)
from chronicle.memory.lifecycle import MemoryLifecycleManager
from chronicle.memory.patterns import CrossProjectPatternEngine
from chronicle.memory.retrieval import MemoryQueryEngine
from chronicle.memory.store import EpisodeStore
from chronicle.memory.stores import InMemoryEpisodeStore, Neo4jEpisodeStore
from chronicle.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class MemoryEngine:
    """Every memory component, sharing one store and event sink."""

    store: EpisodeStore
    event_sink: EventSink
    extractor: MemoryExtractor
    deduplicator: EpisodeDeduplicator
    ingestor: MemoryIngestor
    query: MemoryQueryEngine
    summarizer: MemorySummarizer
    patterns: CrossProjectPatternEngine
    health: MemoryHealthService
    lifecycle: MemoryLifecycleManager
    graph: GraphStore | None = None

    def is_available(self) -> bool:
        """Whether memory features can be served right now."""
        return self.store.is_available()

    async def close(self) -> None:
        if self.graph is not None:
            await self.graph.close()


def build_engine(
    store: EpisodeStore,
    settings: Settings,
    event_sink: EventSink | None = None,
    graph: GraphStore | None = None,
) -> MemoryEngine:
    """Wire components over an existing store."""
    sink = event_sink or LoggingEventSink()
    memory = settings.memory

    deduplicator = EpisodeDeduplicator(store, memory.deduplication)
    patterns = CrossProjectPatternEngine(store, memory.patterns, sink)
    return MemoryEngine(
        store=store,
        event_sink=sink,
        extractor=MemoryExtractor(memory.extraction),
        deduplicator=deduplicator,
        ingestor=MemoryIngestor(store, deduplicator, memory.ingestion, sink),
        query=MemoryQueryEngine(store, memory.query, recommender=patterns),
        summarizer=MemorySummarizer(store, memory.summarization, sink),
        patterns=patterns,
        health=MemoryHealthService(store),
        lifecycle=MemoryLifecycleManager(store, memory.lifecycle, sink),
        graph=graph,
    )


async def create_memory_engine(
    settings: Settings | None = None,
    event_sink: EventSink | None = None,
) -> MemoryEngine:
    """Create a fully wired engine from configuration.

    With the graph backend, connects and bootstraps the schema. An
    unreachable graph does not raise: the engine is returned with its store
    unavailable and every operation degrades.

    Args:
        settings: Defaults to the cached application settings
        event_sink: Defaults to a sink that logs events
    """
    settings = settings or get_settings()
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_secrets=log_config.redact_secrets,
    )

    metrics_config = settings.observability.metrics
    if metrics_config.exporter_enabled:
        start_http_server(metrics_config.exporter_port)
        logger.info("metrics_exporter_started", port=metrics_config.exporter_port)

    if settings.storage.backend == "inmemory":
        logger.info("memory_engine_created", backend="inmemory")
        return build_engine(InMemoryEpisodeStore(), settings, event_sink)

    graph = GraphStore(settings.storage.graph)
    connected = await graph.connect()
    logger.info("memory_engine_created", backend="neo4j", connected=connected)
    return build_engine(Neo4jEpisodeStore(graph), settings, event_sink, graph=graph)


def create_inmemory_engine(
    settings: Settings | None = None,
    event_sink: EventSink | None = None,
) -> MemoryEngine:
    """Engine over the in-memory store, for tests and notebooks."""
    return build_engine(InMemoryEpisodeStore(), settings or Settings(), event_sink)
