"""Settings sections for powervs-check, validated by pydantic."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from powervs_check.model import DiscoveryStrategy


class ServiceSettings(BaseModel):
    """Tool identification used in log records."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="powervs-check", min_length=1, description="Service name")
    version: str = Field(default="0.1.0", min_length=1, description="Service version")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Log level"
    )
    format: Literal["json", "text"] = Field(default="text", description="Log output format")


class CloudSettings(BaseModel):
    """Credentials handed to the provider client factory."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr | None = Field(default=None, description="IBM Cloud API key")
    provider_factory: str | None = Field(
        default=None,
        description="Dotted path 'package.module:callable' building the provider clients",
    )


class DiscoverySettings(BaseModel):
    """Discovery strategy and deadlines for provider calls."""

    model_config = ConfigDict(frozen=True)

    strategy: DiscoveryStrategy = Field(
        default=DiscoveryStrategy.NAME_MATCH,
        description="Resolve resources by listing names or by tag search",
    )
    call_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Deadline applied to every provider call and page walk",
    )


class WatchSettings(BaseModel):
    """Polling behaviour of the readiness phases."""

    model_config = ConfigDict(frozen=True)

    interval_seconds: float = Field(default=10.0, gt=0, description="Sleep between polls")
    max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Maximum polls per phase; unset polls until ready",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Wall-clock limit per phase; unset polls until ready",
    )
    command_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Deadline for a single status-source invocation",
    )
    oc_binary: str = Field(default="oc", min_length=1, description="OpenShift CLI executable")
    saved_json_dir: Path | None = Field(
        default=None,
        description="Replay saved status documents from this directory instead of running oc",
    )


class MetricsSettings(BaseModel):
    """Optional Prometheus metrics."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Record Prometheus metrics")
    prefix: str = Field(default="powervs_check", min_length=1, description="Metric name prefix")
    port: int | None = Field(
        default=None, ge=1, le=65535, description="Expose metrics over HTTP on this port"
    )

    @model_validator(mode="after")
    def _port_requires_enabled(self) -> MetricsSettings:
        if self.port is not None and not self.enabled:
            raise ValueError("metrics.port requires metrics.enabled")
        return self


class AppSettings(BaseModel):
    """Root application settings."""

    model_config = ConfigDict(frozen=True)

    service: ServiceSettings = Field(default_factory=ServiceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cloud: CloudSettings = Field(default_factory=CloudSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
