"""Tests for MemorySummarizer."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from chronicle.audit import MemoryEventType
from chronicle.config.models.memory import SummarizationConfig
from chronicle.db.errors import GraphUnavailableError
from chronicle.memory.ingestion.summarizer import (
    MemorySummarizer,
    group_by_month,
    month_bounds,
    month_key,
)
from chronicle.memory.models import EpisodeMetadata, EpisodeType
from tests.factories import EpisodeFactory

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
JANUARY = datetime(2026, 1, 10, tzinfo=UTC)
FEBRUARY = datetime(2026, 2, 20, tzinfo=UTC)


@pytest.fixture
def config():
    return SummarizationConfig(episode_threshold=3)


@pytest.fixture
def summarizer(episode_store, config, event_sink):
    return MemorySummarizer(episode_store, config, event_sink)


def _seed(store, project_id, workspace_id, content, timestamp, **kwargs):
    return EpisodeFactory.seed(
        store,
        project_id=project_id,
        workspace_id=workspace_id,
        content=content,
        timestamp=timestamp,
        **kwargs,
    )


class TestMonthHelpers:
    def test_month_key_uses_utc(self):
        late = datetime(2026, 1, 31, 23, 30, tzinfo=UTC)
        assert month_key(late) == "2026-01"

    def test_month_bounds(self):
        start, end = month_bounds("2026-02")
        assert start == datetime(2026, 2, 1, tzinfo=UTC)
        assert end == datetime(2026, 2, 28, 23, 59, 59, 999000, tzinfo=UTC)

    def test_month_bounds_december(self):
        start, end = month_bounds("2025-12")
        assert start == datetime(2025, 12, 1, tzinfo=UTC)
        assert end.year == 2025 and end.month == 12 and end.day == 31

    def test_group_by_month_sorted(self):
        episodes = [
            EpisodeFactory.create(timestamp=FEBRUARY),
            EpisodeFactory.create(timestamp=JANUARY),
        ]
        assert list(group_by_month(episodes)) == ["2026-01", "2026-02"]


class TestIsEligible:
    """Tests for consolidation eligibility."""

    def test_old_low_confidence_fact(self, summarizer):
        assert summarizer.is_eligible(EpisodeFactory.create(timestamp=JANUARY), NOW) is True

    def test_recent_episode(self, summarizer):
        episode = EpisodeFactory.create(timestamp=NOW - timedelta(days=5))
        assert summarizer.is_eligible(episode, NOW) is False

    def test_decision_never_eligible(self, summarizer):
        episode = EpisodeFactory.create(timestamp=JANUARY, episode_type=EpisodeType.DECISION)
        assert summarizer.is_eligible(episode, NOW) is False

    def test_high_confidence_never_eligible(self, summarizer):
        episode = EpisodeFactory.create(timestamp=JANUARY, confidence=0.95)
        assert summarizer.is_eligible(episode, NOW) is False

    def test_pinned_never_eligible(self, summarizer):
        episode = EpisodeFactory.create(
            timestamp=JANUARY, metadata=EpisodeMetadata(pinned=True)
        )
        assert summarizer.is_eligible(episode, NOW) is False


class TestBuildSummaryText:
    def test_header_and_sections(self, summarizer):
        start, end = month_bounds("2026-01")
        episodes = [
            EpisodeFactory.create(content="API uses REST", episode_type=EpisodeType.FACT),
            EpisodeFactory.create(content="Fixed N+1 query", episode_type=EpisodeType.PROBLEM),
        ]

        text = summarizer.build_summary_text(episodes, start, end)

        assert text.startswith("Period 2026-01-01 to 2026-01-31: 2 episodes summarized.")
        assert "Key facts: API uses REST" in text
        assert "Problems resolved: Fixed N+1 query" in text

    def test_truncated_to_max_length(self, episode_store):
        summarizer = MemorySummarizer(episode_store, SummarizationConfig(max_summary_length=50))
        start, end = month_bounds("2026-01")
        episodes = [EpisodeFactory.create(content="x" * 200)]

        text = summarizer.build_summary_text(episodes, start, end)

        assert len(text) == 50
        assert text.endswith("...")

    def test_deterministic(self, summarizer):
        start, end = month_bounds("2026-01")
        episodes = [EpisodeFactory.create(content="API uses REST")]
        assert summarizer.build_summary_text(
            episodes, start, end
        ) == summarizer.build_summary_text(episodes, start, end)


class TestSummarizeProject:
    """Tests for consolidation runs."""

    @pytest.mark.asyncio
    async def test_one_summary_per_month(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)
        _seed(episode_store, project_id, workspace_id, "jan fact two", JANUARY)
        _seed(episode_store, project_id, workspace_id, "feb fact", FEBRUARY)

        result = await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        assert result.summaries_created == 2
        assert result.episodes_archived == 3
        assert result.total_processed == 3
        assert result.errors == []
        summaries = await summarizer.get_project_summaries(project_id, workspace_id)
        assert [s.original_episode_count for s in summaries] == [1, 2]

    @pytest.mark.asyncio
    async def test_archives_without_deleting(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        episode = _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)

        await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        stored = await episode_store.get_episode(episode.id)
        assert stored is not None
        assert stored.archived is True
        assert stored.summary_id is not None
        summaries = await summarizer.get_project_summaries(project_id, workspace_id)
        assert stored.summary_id == summaries[0].id
        assert summaries[0].archived_episode_ids == [episode.id]

    @pytest.mark.asyncio
    async def test_protected_episodes_stay_active(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        decision = _seed(
            episode_store,
            project_id,
            workspace_id,
            "Chose Postgres",
            JANUARY,
            episode_type=EpisodeType.DECISION,
        )
        pattern = _seed(
            episode_store,
            project_id,
            workspace_id,
            "Repository layer everywhere",
            JANUARY,
            episode_type=EpisodeType.PATTERN,
        )
        confident = _seed(
            episode_store, project_id, workspace_id, "Sure fact", JANUARY, confidence=0.99
        )

        await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        assert (await episode_store.get_episode(decision.id)).archived is False
        assert (await episode_store.get_episode(confident.id)).archived is False
        assert (await episode_store.get_episode(pattern.id)).archived is True
        summary = (await summarizer.get_project_summaries(project_id, workspace_id))[0]
        assert summary.key_decisions == ["Chose Postgres"]
        assert summary.key_patterns == ["Repository layer everywhere"]

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        rerun = await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        assert rerun.summaries_created == 0
        assert rerun.episodes_archived == 0
        assert len(await summarizer.get_project_summaries(project_id, workspace_id)) == 1

    @pytest.mark.asyncio
    async def test_late_episodes_merge_into_existing_month(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)
        _seed(
            episode_store,
            project_id,
            workspace_id,
            "first pattern kept verbatim",
            JANUARY,
            episode_type=EpisodeType.PATTERN,
        )
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)
        _seed(
            episode_store,
            project_id,
            workspace_id,
            "late second pattern",
            JANUARY + timedelta(days=5),
            episode_type=EpisodeType.PATTERN,
        )

        result = await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        assert result.summaries_created == 0
        assert result.episodes_archived == 1
        summaries = await summarizer.get_project_summaries(project_id, workspace_id)
        assert len(summaries) == 1
        assert summaries[0].original_episode_count == 3
        assert len(summaries[0].archived_episode_ids) == 3
        assert summaries[0].key_patterns == [
            "first pattern kept verbatim",
            "late second pattern",
        ]
        assert summaries[0].key_decisions == []

    @pytest.mark.asyncio
    async def test_month_decisions_kept_across_merges(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        decision = _seed(
            episode_store,
            project_id,
            workspace_id,
            "Adopt event sourcing for billing",
            JANUARY,
            episode_type=EpisodeType.DECISION,
        )
        _seed(episode_store, project_id, workspace_id, "billing fact", JANUARY)
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)
        _seed(episode_store, project_id, workspace_id, "late billing fact", JANUARY)

        await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        summary = (await summarizer.get_project_summaries(project_id, workspace_id))[0]
        assert summary.key_decisions == ["Adopt event sourcing for billing"]
        assert decision.id not in summary.archived_episode_ids
        assert (await episode_store.get_episode(decision.id)).archived is False

    @pytest.mark.asyncio
    async def test_emits_event(self, summarizer, event_sink, project_id, workspace_id):
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        events = event_sink.of_type(MemoryEventType.SUMMARIZATION_COMPLETED)
        assert len(events) == 1
        assert events[0].payload["summaries_created"] == 0

    @pytest.mark.asyncio
    async def test_load_failure_reported(self, event_sink, project_id, workspace_id):
        store = MagicMock()
        store.search_episodes = AsyncMock(side_effect=GraphUnavailableError("down"))
        summarizer = MemorySummarizer(store, SummarizationConfig(), event_sink)

        result = await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        assert len(result.errors) == 1
        assert result.summaries_created == 0
        assert len(event_sink.events) == 1

    @pytest.mark.asyncio
    async def test_month_failure_keeps_other_months(
        self, episode_store, event_sink, project_id, workspace_id
    ):
        _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)
        _seed(episode_store, project_id, workspace_id, "feb fact", FEBRUARY)
        real_upsert = episode_store.upsert_summary
        calls = 0

        async def flaky_upsert(summary):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise GraphUnavailableError("blip")
            return await real_upsert(summary)

        episode_store.upsert_summary = flaky_upsert
        summarizer = MemorySummarizer(episode_store, SummarizationConfig(), event_sink)

        result = await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        assert result.summaries_created == 1
        assert result.episodes_archived == 1
        assert len(result.errors) == 1
        assert "2026-01" in result.errors[0]


class TestCheckAndSummarize:
    """Tests for threshold-triggered consolidation."""

    @pytest.mark.asyncio
    async def test_below_threshold_skips(
        self, summarizer, episode_store, event_sink, project_id, workspace_id
    ):
        _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)

        result = await summarizer.check_and_summarize(project_id, workspace_id, now=NOW)

        assert result.skipped is True
        assert event_sink.events == []

    @pytest.mark.asyncio
    async def test_at_threshold_summarizes(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        for i in range(3):
            _seed(episode_store, project_id, workspace_id, f"jan fact {i}", JANUARY)

        result = await summarizer.check_and_summarize(project_id, workspace_id, now=NOW)

        assert result.skipped is False
        assert result.episodes_archived == 3

    @pytest.mark.asyncio
    async def test_archived_episodes_do_not_count(
        self, summarizer, episode_store, project_id, workspace_id
    ):
        for i in range(3):
            _seed(episode_store, project_id, workspace_id, f"jan fact {i}", JANUARY)
        await summarizer.check_and_summarize(project_id, workspace_id, now=NOW)

        again = await summarizer.check_and_summarize(project_id, workspace_id, now=NOW)

        assert again.skipped is True

    @pytest.mark.asyncio
    async def test_count_failure_skips_with_error(self, event_sink, project_id, workspace_id):
        store = MagicMock()
        store.count_project_episodes = AsyncMock(side_effect=GraphUnavailableError("down"))
        summarizer = MemorySummarizer(store, SummarizationConfig(), event_sink)

        result = await summarizer.check_and_summarize(project_id, workspace_id)

        assert result.skipped is True
        assert len(result.errors) == 1
        assert len(event_sink.events) == 1


class TestPinningAndStats:
    @pytest.mark.asyncio
    async def test_pin_and_unpin(self, summarizer, episode_store, project_id, workspace_id):
        episode = _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)

        assert await summarizer.pin_episode(episode.id) is True
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)
        assert (await episode_store.get_episode(episode.id)).archived is False

        assert await summarizer.unpin_episode(episode.id) is True
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)
        assert (await episode_store.get_episode(episode.id)).archived is True

    @pytest.mark.asyncio
    async def test_pin_missing_episode(self, summarizer):
        assert await summarizer.pin_episode("missing") is False

    @pytest.mark.asyncio
    async def test_stats(self, summarizer, episode_store, project_id, workspace_id):
        _seed(episode_store, project_id, workspace_id, "jan fact", JANUARY)
        _seed(episode_store, project_id, workspace_id, "feb fact", FEBRUARY)
        _seed(episode_store, project_id, workspace_id, "fresh fact", NOW)
        await summarizer.summarize_project(project_id, workspace_id, now=NOW)

        stats = await summarizer.get_summarization_stats(project_id, workspace_id)

        assert stats.total_summaries == 2
        assert stats.total_archived_episodes == 2
        assert stats.active_episodes == 1
        assert stats.oldest_summary == datetime(2026, 1, 1, tzinfo=UTC)
        assert stats.newest_summary == datetime(2026, 2, 1, tzinfo=UTC)
