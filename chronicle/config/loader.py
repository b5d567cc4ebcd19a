"""Layered TOML configuration.

Chronicle reads at most two files from the config directory: `default.toml`
and `{CHRONICLE_ENV}.toml`. Both are optional; model defaults cover anything
they leave out.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_DIR_VAR = "CHRONICLE_CONFIG_DIR"
ENVIRONMENT_VAR = "CHRONICLE_ENV"
DEFAULT_ENVIRONMENT = "development"


@dataclass(frozen=True)
class ConfigLayer:
    """One TOML file that contributed to the merged configuration."""

    name: str
    path: Path
    values: dict[str, Any]


def get_config_dir() -> Path:
    """Directory holding the TOML files.

    CHRONICLE_CONFIG_DIR wins and must exist. Otherwise the first `config/`
    found from the working directory upwards, else `./config`.
    """
    explicit = os.environ.get(CONFIG_DIR_VAR)
    if explicit:
        path = Path(explicit)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {explicit}")
        return path

    cwd = Path.cwd()
    for candidate in (cwd, *cwd.parents):
        if (candidate / "config").is_dir():
            return candidate / "config"
    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_VAR, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    return tomllib.loads(file_path.read_text(encoding="utf-8"))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base. Tables merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def resolve_layers(
    config_dir: Path | None = None,
    environment: str | None = None,
) -> list[ConfigLayer]:
    """The TOML files that exist, lowest priority first."""
    config_dir = config_dir or get_config_dir()
    environment = environment or get_environment()

    layers = []
    for name in ("default", environment):
        path = config_dir / f"{name}.toml"
        if path.is_file():
            layers.append(ConfigLayer(name=name, path=path, values=load_toml(path)))
    return layers


def load_config() -> dict[str, Any]:
    """Merged TOML configuration; empty when no file exists."""
    config: dict[str, Any] = {}
    for layer in resolve_layers():
        config = deep_merge(config, layer.values)
    return config
