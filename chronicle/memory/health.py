"""Memory subsystem health and graph statistics."""

from chronicle.memory.models import GraphStats, MemoryHealth
from chronicle.memory.store import EpisodeStore
from chronicle.observability.logging import get_logger
from chronicle.utils.fallible import attempt

logger = get_logger(__name__)


class MemoryHealthService:
    """Reports whether memory features can be served.

    healthy: store connected and statistics readable.
    degraded: store connected but statistics failed.
    unavailable: store not connected.
    """

    def __init__(self, store: EpisodeStore):
        self._store = store

    async def get_health(self) -> MemoryHealth:
        if not self._store.is_available():
            return MemoryHealth(overall_status="unavailable")

        version = await attempt(
            self._store.server_version(),
            fallback=None,
            event="health_version_failed",
        )
        stats = await attempt(
            self._store.get_graph_stats(),
            fallback=None,
            event="health_stats_failed",
        )
        if stats.value is None:
            return MemoryHealth(
                graph_connected=True,
                graph_version=version.value,
                overall_status="degraded",
            )

        return MemoryHealth(
            graph_connected=True,
            graph_version=version.value,
            total_episodes=stats.value.total_episodes,
            total_entities=stats.value.total_entities,
            last_episode_timestamp=stats.value.last_episode_timestamp,
            overall_status="healthy",
        )

    async def get_graph_stats(self) -> GraphStats:
        """Node counts; zeros when the store is unreachable."""
        if not self._store.is_available():
            return GraphStats()
        outcome = await attempt(
            self._store.get_graph_stats(),
            fallback=GraphStats(),
            event="graph_stats_failed",
        )
        return outcome.value
