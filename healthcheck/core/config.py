"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class _TargetConfig(BaseModel):
    """Fields shared by every monitored target.

    Accepts both snake_case keys and the camelCase keys written by the
    original configuration UI (``checkFrequency``, ``checkMaxAttempts``...).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, allow_inf_nan=False)

    enabled: bool = False
    check_frequency: float = Field(default=60.0, gt=0, alias="checkFrequency")
    check_max_attempts: int = Field(default=3, ge=1, alias="checkMaxAttempts")
    notifications_enabled: bool = Field(default=True, alias="notificationsEnabled")
    email_enabled: bool = Field(default=False, alias="emailEnabled")
    email_to: list[str] = Field(default_factory=list, alias="emailTo")


class HostConfig(_TargetConfig):
    """Host thresholds — CPU is high-bad, free memory/disk are low-bad."""

    cpu_warning: float = Field(default=80.0, alias="cpuWarning")
    cpu_alarm: float = Field(default=90.0, alias="cpuAlarm")
    mem_warning: float = Field(default=20.0, alias="memWarning")
    mem_alarm: float = Field(default=10.0, alias="memAlarm")
    disk_warning: float = Field(default=20.0, alias="diskWarning")
    disk_alarm: float = Field(default=10.0, alias="diskAlarm")
    disk_path: str = Field(default="/", alias="diskPath")


class ProviderConfig(_TargetConfig):
    """Provider delta-rate thresholds (deltas/s, low-bad)."""

    delta_warning: float = Field(default=1.0, alias="deltaWarning")
    delta_alarm: float = Field(default=0.5, alias="deltaAlarm")


class EmailConfig(BaseModel):
    """SMTP delivery configuration."""

    enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 25
    username: str = ""
    password: SecretStr = SecretStr("")
    use_tls: bool = False
    sender: str = "healthcheck@localhost"
    recipients: list[str] = Field(default_factory=list)
    timeout_secs: float = 10.0


class NotificationsConfig(BaseModel):
    """Notification tree addressing."""

    prefix: str = "healthcheck"


class StatisticsConfig(BaseModel):
    """Provider statistics source — an HTTP endpoint returning per-provider rates."""

    url: str = ""
    timeout_secs: float = 5.0


class ServerConfig(BaseModel):
    """HTTP status API configuration."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080
    username: str = ""
    password: SecretStr = SecretStr("")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    decision_level: str = "INFO"
    decision_file: str = ""


class Settings(BaseModel):
    """Root settings container.

    ``host`` and ``providers`` stay raw so each target is validated on its
    own by :func:`healthcheck.health.targets.build_targets`; one malformed
    provider must not stop the others from being scheduled.
    """

    host: Any = Field(default_factory=dict)
    providers: dict[str, Any] = Field(default_factory=dict)
    email: EmailConfig = EmailConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    statistics: StatisticsConfig = StatisticsConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("providers", mode="before")
    @classmethod
    def _empty_providers(cls, value: Any) -> Any:
        # A bare ``providers:`` key parses as None.
        return {} if value is None else value


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
