"""Test factories for creating test data."""

from tests.factories.memory import EpisodeFactory, PatternFactory

__all__ = [
    "EpisodeFactory",
    "PatternFactory",
]
