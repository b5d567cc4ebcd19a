"""Root settings model.

Sources, highest priority first: constructor arguments, CHRONICLE_* environment
variables (nested with "__", e.g. CHRONICLE_MEMORY__SUMMARIZATION__EPISODE_THRESHOLD=500),
config/{CHRONICLE_ENV}.toml, config/default.toml, then the model defaults.
"""

from typing import Any

from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from chronicle.config.loader import load_config
from chronicle.config.models.memory import MemoryConfig
from chronicle.config.models.observability import ObservabilityConfig
from chronicle.config.models.storage import StorageConfig


class LayeredTomlSource(PydanticBaseSettingsSource):
    """Settings source backed by the merged TOML layers."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._values = load_config()

    def get_field_value(
        self, field: FieldInfo, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = self._values.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return {
            name: self._values[name]
            for name in self.settings_cls.model_fields
            if name in self._values
        }


class Settings(BaseSettings):
    """Root configuration object."""

    model_config = SettingsConfigDict(
        env_prefix="CHRONICLE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="chronicle", description="Service name bound to log events")
    debug: bool = False

    storage: StorageConfig = Field(default_factory=StorageConfig)
    memory: MemoryConfig = Field(
        default_factory=MemoryConfig,
        description="Thresholds, budgets and caps of the memory engines",
    )
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, LayeredTomlSource(settings_cls)
