"""Tests for MemoryQueryEngine."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from chronicle.config.models.memory import QueryConfig
from chronicle.db.errors import GraphUnavailableError, ValidationError
from chronicle.memory.models import (
    EpisodeType,
    MemoryQuery,
    PatternRecommendation,
    utc_now,
)
from chronicle.memory.retrieval.query import AGENT_TYPE_FILTERS, MemoryQueryEngine
from tests.factories import EpisodeFactory, PatternFactory


@pytest.fixture
def engine(episode_store):
    return MemoryQueryEngine(episode_store, QueryConfig())


class TestQuery:
    """Tests for ranked queries."""

    @pytest.mark.asyncio
    async def test_ranks_by_relevance(self, engine, episode_store, project_id, workspace_id):
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Frontend uses Tailwind CSS",
        )
        relevant = EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Payment client retries with exponential backoff",
        )

        result = await engine.query(
            MemoryQuery(
                project_id=project_id,
                workspace_id=workspace_id,
                query="payment client retries",
            )
        )

        assert result.memories[0].id == relevant.id
        assert result.relevance_scores == sorted(result.relevance_scores, reverse=True)
        assert result.total_count == 2

    @pytest.mark.asyncio
    async def test_respects_max_results(self, engine, episode_store, project_id, workspace_id):
        for i in range(8):
            EpisodeFactory.seed(
                episode_store,
                project_id=project_id,
                workspace_id=workspace_id,
                content=f"Fact {i} about caching",
            )

        result = await engine.query(
            MemoryQuery(
                project_id=project_id,
                workspace_id=workspace_id,
                query="caching",
                max_results=3,
            )
        )

        assert len(result.memories) == 3
        assert len(result.relevance_scores) == 3
        assert result.total_count == 8

    @pytest.mark.asyncio
    async def test_overfetches_small_caps(self, project_id, workspace_id):
        store = MagicMock()
        store.search_episodes = AsyncMock(return_value=[])
        engine = MemoryQueryEngine(store, QueryConfig())

        await engine.query(
            MemoryQuery(project_id=project_id, workspace_id=workspace_id, query="x", max_results=5)
        )

        filters = store.search_episodes.call_args.args[0]
        assert filters.limit == 15

    @pytest.mark.asyncio
    async def test_large_caps_not_overfetched(self, project_id, workspace_id):
        store = MagicMock()
        store.search_episodes = AsyncMock(return_value=[])
        engine = MemoryQueryEngine(store, QueryConfig())

        await engine.query(
            MemoryQuery(project_id=project_id, workspace_id=workspace_id, query="x", max_results=40)
        )

        assert store.search_episodes.call_args.args[0].limit == 40

    @pytest.mark.asyncio
    async def test_scoped_to_project(self, engine, episode_store, project_id, workspace_id):
        EpisodeFactory.seed(
            episode_store,
            project_id="other-project",
            workspace_id=workspace_id,
            content="caching decision",
        )

        result = await engine.query(
            MemoryQuery(project_id=project_id, workspace_id=workspace_id, query="caching")
        )

        assert result.memories == []

    @pytest.mark.asyncio
    async def test_excludes_archived_by_default(
        self, engine, episode_store, project_id, workspace_id
    ):
        episode = EpisodeFactory.seed(
            episode_store, project_id=project_id, workspace_id=workspace_id, content="caching"
        )
        await episode_store.archive_episodes([episode.id], "summary-1")

        hidden = await engine.query(
            MemoryQuery(project_id=project_id, workspace_id=workspace_id, query="caching")
        )
        shown = await engine.query(
            MemoryQuery(
                project_id=project_id,
                workspace_id=workspace_id,
                query="caching",
                include_archived=True,
            )
        )

        assert hidden.memories == []
        assert [m.id for m in shown.memories] == [episode.id]

    @pytest.mark.asyncio
    async def test_store_failure_returns_empty(self, project_id, workspace_id):
        store = MagicMock()
        store.search_episodes = AsyncMock(side_effect=GraphUnavailableError("down"))
        engine = MemoryQueryEngine(store, QueryConfig())

        result = await engine.query(
            MemoryQuery(project_id=project_id, workspace_id=workspace_id, query="anything")
        )

        assert result.memories == []
        assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_invalid_max_results(self, engine, project_id, workspace_id):
        with pytest.raises(ValidationError):
            await engine.query(
                MemoryQuery(
                    project_id=project_id, workspace_id=workspace_id, query="x", max_results=0
                )
            )


class TestQueryForAgentContext:
    """Tests for token-budgeted agent context."""

    @pytest.mark.asyncio
    async def test_budget_limits_large_episodes(
        self, engine, episode_store, project_id, workspace_id
    ):
        for i in range(50):
            EpisodeFactory.seed(
                episode_store,
                project_id=project_id,
                workspace_id=workspace_id,
                content=f"Decision number {i}: " + "A" * 200,
                episode_type=EpisodeType.DECISION,
            )

        context = await engine.query_for_agent_context(
            project_id, workspace_id, "decision", "dev", token_budget=100
        )

        assert context.context != ""
        assert len(context.context) < 400
        assert 0 < context.memory_count < 50

    @pytest.mark.asyncio
    async def test_agent_type_filters_episode_types(
        self, engine, episode_store, project_id, workspace_id
    ):
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Prefers snake case naming",
            episode_type=EpisodeType.PREFERENCE,
        )
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Chose snake case naming",
            episode_type=EpisodeType.DECISION,
        )

        context = await engine.query_for_agent_context(
            project_id, workspace_id, "naming", "planner"
        )

        assert EpisodeType.PREFERENCE not in AGENT_TYPE_FILTERS["planner"]
        assert "### Decisions" in context.context
        assert "### Preferences" not in context.context

    @pytest.mark.asyncio
    async def test_unknown_agent_type_uses_all_types(
        self, engine, episode_store, project_id, workspace_id
    ):
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Prefers snake case naming",
            episode_type=EpisodeType.PREFERENCE,
        )

        context = await engine.query_for_agent_context(
            project_id, workspace_id, "naming", "reviewer"
        )

        assert "### Preferences" in context.context

    @pytest.mark.asyncio
    async def test_empty_project_gives_empty_context(self, engine, project_id, workspace_id):
        context = await engine.query_for_agent_context(project_id, workspace_id, "task", "dev")

        assert context.context == ""
        assert context.memory_count == 0

    @pytest.mark.asyncio
    async def test_negative_budget_rejected(self, engine, project_id, workspace_id):
        with pytest.raises(ValidationError):
            await engine.query_for_agent_context(
                project_id, workspace_id, "task", "dev", token_budget=-1
            )

    @pytest.mark.asyncio
    async def test_appends_workspace_patterns(
        self, episode_store, project_id, workspace_id
    ):
        recommender = MagicMock()
        recommender.get_pattern_recommendations = AsyncMock(
            return_value=[
                PatternRecommendation(
                    pattern=PatternFactory.create(
                        workspace_id=workspace_id, content="Retry with jitter"
                    ),
                    relevance_score=0.4,
                    confidence_label="[SUGGESTION]",
                )
            ]
        )
        engine = MemoryQueryEngine(episode_store, QueryConfig(), recommender=recommender)
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Payment client retries",
            episode_type=EpisodeType.DECISION,
        )

        context = await engine.query_for_agent_context(
            project_id, workspace_id, "payment retries", "dev"
        )

        assert "### Decisions" in context.context
        assert "### Workspace Patterns" in context.context
        assert "[SUGGESTION] Retry with jitter" in context.context
        recommender.get_pattern_recommendations.assert_awaited_once_with(
            workspace_id, project_id, "payment retries"
        )

    @pytest.mark.asyncio
    async def test_pattern_failure_keeps_memories(
        self, episode_store, project_id, workspace_id
    ):
        recommender = MagicMock()
        recommender.get_pattern_recommendations = AsyncMock(side_effect=RuntimeError("boom"))
        engine = MemoryQueryEngine(episode_store, QueryConfig(), recommender=recommender)
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Payment client retries",
            episode_type=EpisodeType.DECISION,
        )

        context = await engine.query_for_agent_context(
            project_id, workspace_id, "payment retries", "dev"
        )

        assert "Payment client retries" in context.context
        assert "Workspace Patterns" not in context.context


class TestRecordRelevanceFeedback:
    """Tests for usefulness feedback."""

    @pytest.mark.asyncio
    async def test_increments_counters(self, engine, episode_store, project_id, workspace_id):
        episode = EpisodeFactory.seed(
            episode_store, project_id=project_id, workspace_id=workspace_id
        )

        assert await engine.record_relevance_feedback(episode.id, True) is True
        assert await engine.record_relevance_feedback(episode.id, True) is True
        assert await engine.record_relevance_feedback(episode.id, False) is True

        stored = await episode_store.get_episode(episode.id)
        assert stored.metadata.useful_count == 2
        assert stored.metadata.not_useful_count == 1

    @pytest.mark.asyncio
    async def test_feedback_changes_ranking(
        self, engine, episode_store, project_id, workspace_id
    ):
        now = utc_now() - timedelta(days=1)
        first = EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="cache invalidation note",
            timestamp=now,
        )
        second = EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="cache invalidation note",
            timestamp=now,
        )
        await engine.record_relevance_feedback(second.id, True)
        await engine.record_relevance_feedback(first.id, False)

        result = await engine.query(
            MemoryQuery(project_id=project_id, workspace_id=workspace_id, query="cache")
        )

        assert [m.id for m in result.memories] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_missing_episode(self, engine):
        assert await engine.record_relevance_feedback("missing", True) is False

    @pytest.mark.asyncio
    async def test_store_failure_returns_false(self):
        store = MagicMock()
        store.get_episode = AsyncMock(side_effect=GraphUnavailableError("down"))
        engine = MemoryQueryEngine(store, QueryConfig())

        assert await engine.record_relevance_feedback("ep-1", True) is False
