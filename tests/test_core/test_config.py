"""Tests for healthcheck/core/config.py — YAML loading, defaults, aliases, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from healthcheck.core.config import (
    EmailConfig,
    HostConfig,
    LoggingConfig,
    ProviderConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_host_config(self) -> None:
        cfg = HostConfig()
        assert cfg.enabled is False
        assert cfg.cpu_warning == 80.0
        assert cfg.cpu_alarm == 90.0
        assert cfg.mem_warning == 20.0
        assert cfg.mem_alarm == 10.0
        assert cfg.disk_warning == 20.0
        assert cfg.disk_alarm == 10.0
        assert cfg.check_frequency == 60.0
        assert cfg.check_max_attempts == 3

    def test_default_provider_config(self) -> None:
        cfg = ProviderConfig()
        assert cfg.delta_warning == 1.0
        assert cfg.delta_alarm == 0.5
        assert cfg.email_enabled is False
        assert cfg.notifications_enabled is True

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.host == {}
        assert s.providers == {}
        assert s.email.enabled is False
        assert s.notifications.prefix == "healthcheck"
        assert s.server.port == 8080


class TestTargetValidation:
    def test_camel_case_aliases(self) -> None:
        cfg = HostConfig.model_validate({
            "enabled": True,
            "cpuWarning": 70,
            "checkFrequency": 15,
            "checkMaxAttempts": 5,
        })
        assert cfg.cpu_warning == 70
        assert cfg.check_frequency == 15
        assert cfg.check_max_attempts == 5

    def test_snake_case_names(self) -> None:
        cfg = ProviderConfig.model_validate({"delta_alarm": 0.1, "check_frequency": 5})
        assert cfg.delta_alarm == 0.1
        assert cfg.check_frequency == 5

    def test_zero_frequency_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProviderConfig.model_validate({"checkFrequency": 0})

    def test_zero_attempts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            HostConfig.model_validate({"checkMaxAttempts": 0})

    def test_non_numeric_threshold_rejected(self) -> None:
        with pytest.raises(ValidationError):
            HostConfig.model_validate({"cpuAlarm": "lots"})

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_threshold_rejected(self, value: float) -> None:
        with pytest.raises(ValidationError):
            HostConfig.model_validate({"cpuAlarm": value})
        with pytest.raises(ValidationError):
            ProviderConfig.model_validate({"deltaAlarm": value})

    def test_overlapping_thresholds_allowed(self) -> None:
        cfg = HostConfig.model_validate({"cpuWarning": 95, "cpuAlarm": 90})
        assert cfg.cpu_warning > cfg.cpu_alarm


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "host": {"enabled": True, "cpuAlarm": 95},
            "providers": {"serial0": {"enabled": True, "deltaAlarm": 0.2}},
            "email": {
                "enabled": True,
                "smtp_host": "mail.test",
                "password": "hunter2",
                "recipients": ["ops@test"],
            },
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.host["cpuAlarm"] == 95
        assert settings.providers["serial0"]["deltaAlarm"] == 0.2
        assert settings.email.smtp_host == "mail.test"
        assert settings.email.password.get_secret_value() == "hunter2"
        assert settings.email.recipients == ["ops@test"]
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "console"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 8080
        assert settings.providers == {}

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.email.smtp_port == 25

    def test_empty_target_entries_load(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("host:\nproviders:\n  bad:\n  good:\n    enabled: true\n")
        settings = load_settings(config_file)
        assert settings.host is None
        assert settings.providers == {"bad": None, "good": {"enabled": True}}

    def test_bare_providers_key(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("providers:\n")
        assert load_settings(config_file).providers == {}

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"server": {"port": 9999}}))
        loaded = load_settings(config_file)
        assert get_settings() is loaded
        assert get_settings().server.port == 9999


class TestSecretStr:
    def test_smtp_password_repr_does_not_leak(self) -> None:
        cfg = EmailConfig(password="super-secret")  # type: ignore[arg-type]
        repr_str = repr(cfg)
        assert "super-secret" not in repr_str
        assert "**********" in repr_str
