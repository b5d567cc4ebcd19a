"""Shared test fixtures for the Chronicle test suite."""

from collections.abc import Callable, Generator, Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from uuid import uuid4

import pytest

from chronicle.audit import InMemoryEventSink
from chronicle.memory.stores.inmemory import InMemoryEpisodeStore


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _write(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _write


@pytest.fixture
def env_override(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[dict[str, str]], AbstractContextManager[None]]:
    """Temporarily set environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"CHRONICLE_ENV": "staging"}):
                ...
    """

    @contextmanager
    def _override(overrides: dict[str, str]) -> Iterator[None]:
        with monkeypatch.context() as patch:
            for key, value in overrides.items():
                patch.setenv(key, value)
            yield

    return _override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Drop cached settings around every test."""
    from chronicle.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def episode_store() -> InMemoryEpisodeStore:
    """Create an empty in-memory episode store."""
    return InMemoryEpisodeStore()


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    """Create an event sink that records emitted events."""
    return InMemoryEventSink()


@pytest.fixture
def workspace_id() -> str:
    return f"ws-{uuid4()}"


@pytest.fixture
def project_id() -> str:
    return f"proj-{uuid4()}"

