"""Configuration for Chronicle.

    from chronicle.config import get_settings

    threshold = get_settings().memory.summarization.episode_threshold
"""

from functools import lru_cache

from chronicle.config.settings import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once. `reload_settings()` re-reads files and env."""
    return Settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
