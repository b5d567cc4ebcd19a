"""Tests for EpisodeDeduplicator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chronicle.config.models.memory import DeduplicationConfig
from chronicle.db.errors import GraphUnavailableError
from chronicle.memory.ingestion.deduplicator import EpisodeDeduplicator
from chronicle.memory.models import EpisodeType, ExtractedMemory
from tests.factories import EpisodeFactory


@pytest.fixture
def deduplicator(episode_store):
    return EpisodeDeduplicator(episode_store, DeduplicationConfig())


def _memory(content, episode_type=EpisodeType.DECISION):
    return ExtractedMemory(episode_type=episode_type, content=content)


class TestCalculateSimilarity:
    def test_symmetric(self):
        a, b = "Use Redis for session caching", "Session caching uses Memcached"
        assert EpisodeDeduplicator.calculate_similarity(
            a, b
        ) == EpisodeDeduplicator.calculate_similarity(b, a)

    def test_empty_edges(self):
        assert EpisodeDeduplicator.calculate_similarity("", "") == 1.0
        assert EpisodeDeduplicator.calculate_similarity("x", "") == 0.0


class TestCheckDuplicate:
    """Tests for single-candidate classification."""

    @pytest.mark.asyncio
    async def test_exact_duplicate(self, deduplicator, episode_store, project_id, workspace_id):
        existing = EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Use Redis for session caching",
            episode_type=EpisodeType.DECISION,
        )

        check = await deduplicator.check_duplicate(
            _memory("Use Redis for session caching"), project_id, workspace_id
        )

        assert check.is_duplicate is True
        assert check.similarity == 1.0
        assert check.existing_episode_id == existing.id

    @pytest.mark.asyncio
    async def test_near_duplicate_flagged(
        self, deduplicator, episode_store, project_id, workspace_id
    ):
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="one two three four five six seven eight nine ten",
            episode_type=EpisodeType.DECISION,
        )

        check = await deduplicator.check_duplicate(
            _memory("one two three four five six seven eight nine"), project_id, workspace_id
        )

        assert check.is_duplicate is False
        assert check.is_flagged is True
        assert check.similarity == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_other_type_is_not_compared(
        self, deduplicator, episode_store, project_id, workspace_id
    ):
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="Use Redis for session caching",
            episode_type=EpisodeType.FACT,
        )

        check = await deduplicator.check_duplicate(
            _memory("Use Redis for session caching"), project_id, workspace_id
        )

        assert check.is_duplicate is False
        assert check.similarity == 0.0

    @pytest.mark.asyncio
    async def test_store_failure_fails_open(self, project_id, workspace_id):
        store = MagicMock()
        store.search_episodes = AsyncMock(side_effect=GraphUnavailableError("down"))
        deduplicator = EpisodeDeduplicator(store, DeduplicationConfig())

        check = await deduplicator.check_duplicate(
            _memory("anything at all"), project_id, workspace_id
        )

        assert check.is_duplicate is False
        assert check.is_flagged is False


class TestDeduplicateBatch:
    """Tests for batch deduplication."""

    @pytest.mark.asyncio
    async def test_skips_and_flags(self, deduplicator, episode_store, project_id, workspace_id):
        existing = EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="one two three four five six seven eight nine ten",
            episode_type=EpisodeType.DECISION,
        )

        result = await deduplicator.deduplicate_batch(
            [
                _memory("one two three four five six seven eight nine ten"),
                _memory("one two three four five six seven eight nine"),
                _memory("completely unrelated content"),
            ],
            project_id,
            workspace_id,
        )

        assert result.skipped == 1
        assert result.flagged == 1
        assert len(result.accepted) == 2
        flagged = result.accepted[0]
        assert flagged.metadata.possible_duplicate_of == existing.id
        assert flagged.metadata.duplicate_similarity == pytest.approx(0.9)
        assert result.accepted[1].metadata.possible_duplicate_of is None

    @pytest.mark.asyncio
    async def test_duplicates_within_batch(self, deduplicator, project_id, workspace_id):
        result = await deduplicator.deduplicate_batch(
            [_memory("Adopt trunk based development"), _memory("adopt trunk based development.")],
            project_id,
            workspace_id,
        )

        assert len(result.accepted) == 1
        assert result.skipped == 1

    @pytest.mark.asyncio
    async def test_fetches_once_per_type(self, project_id, workspace_id):
        store = MagicMock()
        store.search_episodes = AsyncMock(return_value=[])
        deduplicator = EpisodeDeduplicator(store, DeduplicationConfig(candidate_limit=7))

        await deduplicator.deduplicate_batch(
            [
                _memory("a b c"),
                _memory("d e f"),
                _memory("g h i", EpisodeType.FACT),
            ],
            project_id,
            workspace_id,
        )

        assert store.search_episodes.await_count == 2
        assert all(call.args[0].limit == 7 for call in store.search_episodes.call_args_list)

    @pytest.mark.asyncio
    async def test_input_not_mutated(self, deduplicator, episode_store, project_id, workspace_id):
        EpisodeFactory.seed(
            episode_store,
            project_id=project_id,
            workspace_id=workspace_id,
            content="one two three four five six seven eight nine ten",
            episode_type=EpisodeType.DECISION,
        )
        candidate = _memory("one two three four five six seven eight nine")

        await deduplicator.deduplicate_batch([candidate], project_id, workspace_id)

        assert candidate.metadata.possible_duplicate_of is None


class TestDeduplicationConfig:
    def test_flag_threshold_above_duplicate_rejected(self):
        with pytest.raises(ValueError):
            DeduplicationConfig(duplicate_threshold=0.8, flag_threshold=0.9)
