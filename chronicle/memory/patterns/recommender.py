"""Pattern recommendation interface consumed by the query engine."""

from typing import Protocol

from chronicle.memory.models import PatternConfidence, PatternRecommendation

CONFIDENCE_LABELS: dict[PatternConfidence, str] = {
    PatternConfidence.HIGH: "[AUTO-APPLY]",
    PatternConfidence.MEDIUM: "[RECOMMENDED]",
    PatternConfidence.LOW: "[SUGGESTION]",
}


def confidence_label(confidence: PatternConfidence) -> str:
    return CONFIDENCE_LABELS[confidence]


class PatternRecommender(Protocol):
    """Supplies workspace patterns relevant to a task."""

    async def get_pattern_recommendations(
        self,
        workspace_id: str,
        project_id: str,
        task_description: str,
    ) -> list[PatternRecommendation]: ...


class NullPatternRecommender:
    """Recommender used when no pattern engine is wired."""

    async def get_pattern_recommendations(
        self,
        workspace_id: str,
        project_id: str,
        task_description: str,
    ) -> list[PatternRecommendation]:
        return []
