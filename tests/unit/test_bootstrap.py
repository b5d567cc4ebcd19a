"""Tests for engine composition."""

from unittest.mock import AsyncMock, patch

import pytest

from chronicle.audit import InMemoryEventSink, LoggingEventSink, MemoryEventType
from chronicle.bootstrap import build_engine, create_inmemory_engine, create_memory_engine
from chronicle.config.settings import Settings
from chronicle.memory.models import EpisodeType, ExtractedMemory, IngestionInput, TaskOutput
from chronicle.memory.stores import InMemoryEpisodeStore, Neo4jEpisodeStore


class TestBuildEngine:
    def test_components_share_store(self):
        store = InMemoryEpisodeStore()
        engine = build_engine(store, Settings())

        assert engine.store is store
        assert isinstance(engine.event_sink, LoggingEventSink)
        assert engine.is_available() is True
        assert engine.graph is None

    @pytest.mark.asyncio
    async def test_end_to_end_inmemory(self):
        sink = InMemoryEventSink()
        engine = create_inmemory_engine(event_sink=sink)
        for project in ("proj-a", "proj-b"):
            await engine.ingestor.ingest(
                IngestionInput(
                    project_id=project,
                    workspace_id="ws-1",
                    agent_type="dev",
                    memories=[
                        ExtractedMemory(
                            episode_type=EpisodeType.DECISION,
                            content="Use structured logging with request ids",
                        )
                    ],
                )
            )

        detection = await engine.patterns.detect_patterns("ws-1")
        context = await engine.query.query_for_agent_context(
            "proj-a", "ws-1", "add structured logging", "dev"
        )

        assert detection.new_patterns == 1
        assert "### Decisions" in context.context
        assert "### Workspace Patterns" in context.context
        assert "[SUGGESTION]" in context.context
        assert len(sink.of_type(MemoryEventType.INGESTION_COMPLETED)) == 2
        await engine.close()

    @pytest.mark.asyncio
    async def test_task_output_to_lifecycle_report(self):
        engine = create_inmemory_engine(event_sink=InMemoryEventSink())
        output = TaskOutput(
            agent_type="dev",
            commit_messages=["Switched to httpx for the payment client"],
            files_changed=["src/services/payment.service.ts"],
        )

        ingestion = engine.extractor.build_input(output, project_id="proj-a", workspace_id="ws-1")
        result = await engine.ingestor.ingest(ingestion)
        report = await engine.lifecycle.get_lifecycle_report("ws-1")

        assert result.episodes_created == 2
        assert report.total_active == 2
        assert report.projects[0].recommendation == "sparse"


class TestCreateMemoryEngine:
    @pytest.mark.asyncio
    async def test_inmemory_backend(self):
        settings = Settings(storage={"backend": "inmemory"})

        engine = await create_memory_engine(settings)

        assert isinstance(engine.store, InMemoryEpisodeStore)
        health = await engine.health.get_health()
        assert health.overall_status == "healthy"

    @pytest.mark.asyncio
    async def test_unreachable_graph_degrades(self):
        settings = Settings(storage={"backend": "neo4j"})

        with patch("chronicle.bootstrap.GraphStore.connect", AsyncMock(return_value=False)):
            engine = await create_memory_engine(settings)

        assert isinstance(engine.store, Neo4jEpisodeStore)
        assert engine.is_available() is False
        health = await engine.health.get_health()
        assert health.overall_status == "unavailable"
        context = await engine.query.query_for_agent_context("proj-a", "ws-1", "task", "dev")
        assert context.context == ""
        await engine.close()

    @pytest.mark.asyncio
    async def test_metrics_exporter_started(self):
        settings = Settings(
            storage={"backend": "inmemory"},
            observability={"metrics": {"exporter_enabled": True, "exporter_port": 9999}},
        )

        with patch("chronicle.bootstrap.start_http_server") as start:
            await create_memory_engine(settings)

        start.assert_called_once_with(9999)
