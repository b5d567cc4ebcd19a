"""Keyword-bucket classification of pattern type."""

from collections import Counter

from chronicle.memory.models import Episode, EpisodeType, PatternType

PATTERN_KEYWORDS: dict[PatternType, tuple[str, ...]] = {
    PatternType.TESTING: ("test", "spec", "mock", "assert", "jest", "coverage"),
    PatternType.DEPLOYMENT: ("deploy", "ci", "cd", "pipeline", "docker", "kubernetes", "build"),
    PatternType.SECURITY: ("auth", "encrypt", "secret", "token", "permission", "credential", "vault"),
    PatternType.ARCHITECTURE: (
        "architecture", "state", "component", "pattern", "framework", "design", "module",
    ),
    PatternType.ERROR: ("error", "bug", "fix", "retry", "failure", "exception", "crash"),
}

# Fallback when no vocabulary matches at all
_EPISODE_TYPE_MAPPING: dict[EpisodeType, PatternType] = {
    EpisodeType.DECISION: PatternType.ARCHITECTURE,
    EpisodeType.PROBLEM: PatternType.ERROR,
    EpisodeType.PATTERN: PatternType.ARCHITECTURE,
    EpisodeType.FACT: PatternType.ARCHITECTURE,
    EpisodeType.PREFERENCE: PatternType.ARCHITECTURE,
}


def keyword_scores(text: str) -> dict[PatternType, int]:
    """Number of distinct vocabulary words present (as substrings) per type."""
    lowered = text.lower()
    return {
        pattern_type: sum(1 for keyword in keywords if keyword in lowered)
        for pattern_type, keywords in PATTERN_KEYWORDS.items()
    }


def classify_pattern_type(episodes: list[Episode]) -> PatternType:
    """Infer the pattern type of a group of episodes.

    The single best-scoring vocabulary wins; a tie for best goes to
    architecture. With no matches at all, the group's majority episode type
    decides.
    """
    scores = keyword_scores(" ".join(ep.content for ep in episodes))
    best = max(scores.values(), default=0)
    if best > 0:
        leaders = [pattern_type for pattern_type, score in scores.items() if score == best]
        return leaders[0] if len(leaders) == 1 else PatternType.ARCHITECTURE

    counts = Counter(ep.episode_type for ep in episodes)
    if not counts:
        return PatternType.ARCHITECTURE
    dominant, _ = counts.most_common(1)[0]
    return _EPISODE_TYPE_MAPPING.get(dominant, PatternType.ARCHITECTURE)
