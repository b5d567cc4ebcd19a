"""Observability configuration models."""

from typing import Literal

from pydantic import BaseModel, Field


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    format: Literal["json", "console"] = Field(
        default="json", description="json for production, console for development"
    )
    redact_secrets: bool = Field(
        default=True, description="Redact credentials and emails from log events"
    )


class MetricsConfig(BaseModel):
    """Prometheus metrics configuration."""

    exporter_enabled: bool = Field(
        default=False, description="Serve /metrics over HTTP from the engine process"
    )
    exporter_port: int = Field(default=9464, gt=0, lt=65536)


class ObservabilityConfig(BaseModel):
    """Observability section."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
