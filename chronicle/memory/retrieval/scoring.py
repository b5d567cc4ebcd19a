"""Multi-factor relevance scoring.

score = w_kw * keyword + w_rec * recency + w_type * type_priority + w_fb * feedback,
clamped to [0, 1]. Weights, half-life and feedback deltas come from QueryConfig.
"""

import math
from datetime import datetime

from chronicle.config.models.memory import QueryConfig
from chronicle.memory.models import Episode, EpisodeMetadata, EpisodeType, utc_now
from chronicle.memory.text import keyword_similarity

TYPE_PRIORITY: dict[EpisodeType, float] = {
    EpisodeType.DECISION: 1.0,
    EpisodeType.PROBLEM: 0.9,
    EpisodeType.FACT: 0.7,
    EpisodeType.PATTERN: 0.6,
    EpisodeType.PREFERENCE: 0.5,
}

_DEFAULT_TYPE_PRIORITY = 0.5
_LN2 = 0.693


class RelevanceScorer:
    """Scores episodes against a task description."""

    def __init__(self, config: QueryConfig):
        self._config = config

    def keyword_relevance(self, query: str, content: str) -> float:
        return keyword_similarity(query, content)

    def time_recency(self, timestamp: datetime, now: datetime | None = None) -> float:
        """Exponential decay by age; 0.5 at one half-life, 1.0 for future timestamps."""
        now = now or utc_now()
        age_days = (now - timestamp).total_seconds() / 86400
        if age_days <= 0:
            return 1.0
        return math.exp(-_LN2 * age_days / self._config.time_decay_half_life_days)

    def type_priority(self, episode_type: EpisodeType | str) -> float:
        try:
            return TYPE_PRIORITY[EpisodeType(episode_type)]
        except ValueError:
            return _DEFAULT_TYPE_PRIORITY

    def feedback_bonus(self, metadata: EpisodeMetadata) -> float:
        if metadata.useful_count > metadata.not_useful_count:
            return self._config.feedback_bonus
        if metadata.not_useful_count > metadata.useful_count:
            return self._config.feedback_penalty
        return 0.0

    def score(self, episode: Episode, query: str, now: datetime | None = None) -> float:
        weights = self._config.weights
        raw = (
            weights.keyword * self.keyword_relevance(query, episode.content)
            + weights.recency * self.time_recency(episode.timestamp, now)
            + weights.type_priority * self.type_priority(episode.episode_type)
            + weights.feedback * self.feedback_bonus(episode.metadata)
        )
        return min(1.0, max(0.0, raw))
