"""Near-duplicate detection for incoming memories.

Candidates are compared against existing episodes of the same type in the
same project by token-set Jaccard similarity. Duplicate checks fail open:
a store error means "not a duplicate", never a blocked ingestion.
"""

from chronicle.config.models.memory import DeduplicationConfig
from chronicle.memory.models import (
    DeduplicationBatchResult,
    DuplicateCheck,
    Episode,
    EpisodeFilter,
    EpisodeType,
    ExtractedMemory,
)
from chronicle.memory.store import EpisodeStore
from chronicle.memory.text import content_similarity
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import DEDUP_OUTCOMES
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)


class EpisodeDeduplicator:
    """Classifies candidate memories as duplicate, flagged or new."""

    def __init__(self, store: EpisodeStore, config: DeduplicationConfig):
        """Initialize deduplicator.

        Args:
            store: Episode store to compare against
            config: Thresholds and candidate limit
        """
        self._store = store
        self._config = config

    @staticmethod
    def calculate_similarity(a: str, b: str) -> float:
        """Jaccard similarity of normalized token sets."""
        return content_similarity(a, b)

    async def check_duplicate(
        self,
        candidate: ExtractedMemory,
        project_id: str,
        workspace_id: str,
    ) -> DuplicateCheck:
        """Compare one candidate against stored episodes of its type."""
        existing = await self._fetch_existing(candidate.episode_type, project_id, workspace_id)
        check = self._classify(candidate.content, existing)
        DEDUP_OUTCOMES.labels(outcome=_outcome(check)).inc()
        return check

    async def deduplicate_batch(
        self,
        candidates: list[ExtractedMemory],
        project_id: str,
        workspace_id: str,
    ) -> DeduplicationBatchResult:
        """Deduplicate a batch against the store and against itself.

        Existing episodes are fetched once per distinct type. Each candidate
        is then compared with those and with earlier accepted members of the
        batch. Flagged candidates are accepted with the match recorded in
        their metadata.
        """
        existing_by_type: dict[EpisodeType, list[Episode]] = {}
        for episode_type in dict.fromkeys(c.episode_type for c in candidates):
            existing_by_type[episode_type] = await self._fetch_existing(
                episode_type, project_id, workspace_id
            )

        result = DeduplicationBatchResult()
        for candidate in candidates:
            check = self._classify(
                candidate.content,
                existing_by_type.get(candidate.episode_type, []),
            )
            intra = self._classify_against_batch(candidate, result.accepted)
            if intra.similarity > check.similarity:
                check = intra

            DEDUP_OUTCOMES.labels(outcome=_outcome(check)).inc()
            if check.is_duplicate:
                result.skipped += 1
                continue

            accepted = candidate.model_copy(deep=True)
            if check.is_flagged:
                result.flagged += 1
                accepted.metadata.possible_duplicate_of = check.existing_episode_id
                accepted.metadata.duplicate_similarity = round(check.similarity, 4)
            result.accepted.append(accepted)

        logger.debug(
            "batch_deduplicated",
            project_id=project_id,
            candidates=len(candidates),
            accepted=len(result.accepted),
            skipped=result.skipped,
            flagged=result.flagged,
        )
        return result

    async def _fetch_existing(
        self,
        episode_type: EpisodeType,
        project_id: str,
        workspace_id: str,
    ) -> list[Episode]:
        outcome = await attempt(
            self._store.search_episodes(
                EpisodeFilter(
                    project_id=project_id,
                    workspace_id=workspace_id,
                    episode_types=[episode_type],
                    limit=self._config.candidate_limit,
                )
            ),
            fallback=[],
            event="dedup_check_failed",
            project_id=project_id,
            episode_type=episode_type.value,
        )
        return outcome.value

    def _classify(self, content: str, existing: list[Episode]) -> DuplicateCheck:
        best_similarity = 0.0
        best_id: str | None = None
        for episode in existing:
            similarity = self.calculate_similarity(content, episode.content)
            if similarity > best_similarity:
                best_similarity = similarity
                best_id = episode.id
        return self._verdict(best_similarity, best_id)

    def _classify_against_batch(
        self,
        candidate: ExtractedMemory,
        accepted: list[ExtractedMemory],
    ) -> DuplicateCheck:
        best_similarity = 0.0
        for other in accepted:
            if other.episode_type != candidate.episode_type:
                continue
            best_similarity = max(
                best_similarity, self.calculate_similarity(candidate.content, other.content)
            )
        return self._verdict(best_similarity, None)

    def _verdict(self, similarity: float, existing_id: str | None) -> DuplicateCheck:
        if similarity >= self._config.duplicate_threshold:
            return DuplicateCheck(
                is_duplicate=True, similarity=similarity, existing_episode_id=existing_id
            )
        if similarity >= self._config.flag_threshold:
            return DuplicateCheck(
                is_flagged=True, similarity=similarity, existing_episode_id=existing_id
            )
        return DuplicateCheck(similarity=similarity)


def _outcome(check: DuplicateCheck) -> str:
    if check.is_duplicate:
        return "duplicate"
    if check.is_flagged:
        return "flagged"
    return "accepted"
