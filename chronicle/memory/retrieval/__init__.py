"""Relevance ranking and agent context assembly."""

from chronicle.memory.retrieval.context import ContextBuilder
from chronicle.memory.retrieval.query import AGENT_TYPE_FILTERS, MemoryQueryEngine
from chronicle.memory.retrieval.scoring import TYPE_PRIORITY, RelevanceScorer

__all__ = [
    "AGENT_TYPE_FILTERS",
    "TYPE_PRIORITY",
    "ContextBuilder",
    "MemoryQueryEngine",
    "RelevanceScorer",
]
