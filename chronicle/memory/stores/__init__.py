"""Episode stores: graph-backed and in-memory."""

from chronicle.memory.store import EpisodeStore
from chronicle.memory.stores.inmemory import InMemoryEpisodeStore
from chronicle.memory.stores.neo4j import Neo4jEpisodeStore

__all__ = [
    "EpisodeStore",
    "InMemoryEpisodeStore",
    "Neo4jEpisodeStore",
]
