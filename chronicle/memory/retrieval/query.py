"""Relevance query engine.

Retrieves scoped candidate episodes, ranks them with RelevanceScorer and
assembles token-budgeted context for agents. Read paths fail open: a store
outage yields an empty result, never an exception.
"""

import time

from chronicle.config.models.memory import QueryConfig
from chronicle.db.errors import ValidationError
from chronicle.memory.models import (
    EpisodeFilter,
    EpisodeType,
    MemoryContext,
    MemoryQuery,
    MemoryQueryResult,
    utc_now,
)
from chronicle.memory.patterns.recommender import NullPatternRecommender, PatternRecommender
from chronicle.memory.retrieval.context import ContextBuilder
from chronicle.memory.retrieval.scoring import RelevanceScorer
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import CONTEXT_MEMORIES, QUERY_LATENCY
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)

AGENT_TYPE_FILTERS: dict[str, list[EpisodeType]] = {
    "dev": [EpisodeType.DECISION, EpisodeType.PROBLEM, EpisodeType.FACT],
    "qa": [EpisodeType.PATTERN, EpisodeType.PROBLEM, EpisodeType.FACT],
    "planner": [EpisodeType.DECISION, EpisodeType.PATTERN],
    "devops": [EpisodeType.FACT, EpisodeType.PROBLEM, EpisodeType.PATTERN],
}


class MemoryQueryEngine:
    """Ranks episodes for a task and renders them as agent context."""

    def __init__(
        self,
        store: EpisodeStore,
        config: QueryConfig,
        recommender: PatternRecommender | None = None,
    ):
        """Initialize query engine.

        Args:
            store: Episode store
            config: Scoring weights, budgets and caps
            recommender: Source of workspace patterns for agent context
        """
        self._store = store
        self._config = config
        self._recommender: PatternRecommender = recommender or NullPatternRecommender()
        self._scorer = RelevanceScorer(config)
        self._context = ContextBuilder(config)

    @property
    def scorer(self) -> RelevanceScorer:
        return self._scorer

    async def query(self, request: MemoryQuery) -> MemoryQueryResult:
        """Rank candidate episodes by relevance to `request.query`.

        Small result caps over-fetch candidates so ranking has material to
        choose from. total_count reports the candidate pool size.

        Raises:
            ValidationError: If max_results is below 1
        """
        max_results = request.max_results or self._config.default_max_results
        if request.max_results is not None and request.max_results < 1:
            raise ValidationError(f"max_results must be >= 1, got {request.max_results}")

        start = time.perf_counter()
        if max_results <= self._config.overfetch_cutoff:
            candidate_count = max_results * self._config.candidate_multiplier
        else:
            candidate_count = max_results

        outcome = await attempt(
            self._store.search_episodes(
                EpisodeFilter(
                    project_id=request.project_id,
                    workspace_id=request.workspace_id,
                    episode_types=request.episode_types,
                    entities=request.entities,
                    since=request.since,
                    include_archived=request.include_archived,
                    limit=candidate_count,
                )
            ),
            fallback=[],
            event="memory_query_failed",
            project_id=request.project_id,
            workspace_id=request.workspace_id,
        )
        candidates = outcome.value

        now = utc_now()
        scored = sorted(
            ((self._scorer.score(ep, request.query, now), ep) for ep in candidates),
            key=lambda pair: pair[0],
            reverse=True,
        )[:max_results]

        elapsed = time.perf_counter() - start
        QUERY_LATENCY.observe(elapsed)
        return MemoryQueryResult(
            memories=[ep for _, ep in scored],
            relevance_scores=[score for score, _ in scored],
            total_count=len(candidates),
            query_duration_ms=int(elapsed * 1000),
        )

    async def query_for_agent_context(
        self,
        project_id: str,
        workspace_id: str,
        task_description: str,
        agent_type: str,
        token_budget: int | None = None,
    ) -> MemoryContext:
        """Assemble a markdown memory block sized to a token budget.

        The agent type selects which episode types are retrieved. Workspace
        patterns are appended under a sub-budget when a recommender is wired.
        """
        budget = self._config.default_token_budget if token_budget is None else token_budget
        if budget < 0:
            raise ValidationError(f"token_budget must be >= 0, got {budget}")

        result = await self.query(
            MemoryQuery(
                project_id=project_id,
                workspace_id=workspace_id,
                query=task_description,
                episode_types=AGENT_TYPE_FILTERS.get(agent_type, list(EpisodeType)),
                max_results=self._config.context_max_results,
            )
        )

        memories = self._context.build_memory_sections(result.memories, budget)
        remaining = budget - memories.tokens
        patterns_budget = min(remaining, self._config.pattern_context_budget)

        patterns_text = ""
        pattern_tokens = 0
        if patterns_budget > 0:
            outcome = await attempt(
                self._recommender.get_pattern_recommendations(
                    workspace_id, project_id, task_description
                ),
                fallback=[],
                event="workspace_patterns_fetch_failed",
                workspace_id=workspace_id,
                project_id=project_id,
            )
            patterns = self._context.build_patterns_section(outcome.value, patterns_budget)
            patterns_text = patterns.text
            pattern_tokens = patterns.tokens

        context = "\n\n".join(part for part in (memories.text, patterns_text) if part)
        CONTEXT_MEMORIES.labels(agent_type=agent_type).observe(memories.memory_count)
        logger.debug(
            "agent_context_assembled",
            project_id=project_id,
            agent_type=agent_type,
            candidates=len(result.memories),
            memory_count=memories.memory_count,
            token_budget=budget,
        )
        return MemoryContext(
            context=context,
            memory_count=memories.memory_count,
            token_estimate=memories.tokens + pattern_tokens,
        )

    async def record_relevance_feedback(self, episode_id: str, was_useful: bool) -> bool:
        """Increment an episode's useful/not-useful counter.

        Returns:
            False if the episode does not exist or persisting failed
        """

        async def update() -> bool:
            episode = await self._store.get_episode(episode_id)
            if episode is None:
                logger.warning("feedback_episode_not_found", episode_id=episode_id)
                return False
            if was_useful:
                episode.metadata.useful_count += 1
            else:
                episode.metadata.not_useful_count += 1
            return await self._store.update_episode_metadata(episode_id, episode.metadata)

        outcome = await attempt(
            update(),
            fallback=False,
            event="feedback_record_failed",
            episode_id=episode_id,
        )
        return outcome.value
