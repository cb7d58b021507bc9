"""Validated, immutable per-target configuration built once at startup."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from healthcheck.core.config import HostConfig, ProviderConfig, Settings
from healthcheck.core.types import Direction, MetricSpec, TargetKind, Threshold
from healthcheck.health.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

HOST_TARGET_ID = "host"


class TargetSpec(BaseModel):
    """Everything a scheduled check needs, frozen at registration time."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    kind: TargetKind
    check_frequency: float
    max_attempts: int
    metrics: tuple[MetricSpec, ...]
    notifications_enabled: bool = True
    email_enabled: bool = False
    email_to: tuple[str, ...] = ()
    disk_path: str = "/"


def host_target(config: HostConfig) -> TargetSpec:
    """Build the host target: CPU high-bad, free memory/disk low-bad."""
    metrics = (
        MetricSpec(
            metric="cpu",
            field="averageUsage",
            threshold=Threshold(
                warning=config.cpu_warning,
                alarm=config.cpu_alarm,
                direction=Direction.HIGH_BAD,
            ),
        ),
        MetricSpec(
            metric="memory",
            field="freeMemPercentage",
            threshold=Threshold(
                warning=config.mem_warning,
                alarm=config.mem_alarm,
                direction=Direction.LOW_BAD,
            ),
        ),
        MetricSpec(
            metric="disk",
            field="freePercentage",
            threshold=Threshold(
                warning=config.disk_warning,
                alarm=config.disk_alarm,
                direction=Direction.LOW_BAD,
            ),
        ),
    )
    return TargetSpec(
        target_id=HOST_TARGET_ID,
        kind=TargetKind.HOST,
        check_frequency=config.check_frequency,
        max_attempts=config.check_max_attempts,
        metrics=metrics,
        notifications_enabled=config.notifications_enabled,
        email_enabled=config.email_enabled,
        email_to=tuple(config.email_to),
        disk_path=config.disk_path,
    )


def provider_target(provider_id: str, config: ProviderConfig) -> TargetSpec:
    """Build a provider target. A falling delta rate is unhealthy (low-bad)."""
    metrics = (
        MetricSpec(
            metric="deltaRate",
            field="deltaRate",
            threshold=Threshold(
                warning=config.delta_warning,
                alarm=config.delta_alarm,
                direction=Direction.LOW_BAD,
            ),
        ),
    )
    return TargetSpec(
        target_id=provider_id,
        kind=TargetKind.PROVIDER,
        check_frequency=config.check_frequency,
        max_attempts=config.check_max_attempts,
        metrics=metrics,
        notifications_enabled=config.notifications_enabled,
        email_enabled=config.email_enabled,
        email_to=tuple(config.email_to),
    )


def _validate(target_id: str, model: type[BaseModel], raw: Any) -> Any:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(target_id, "expected a mapping")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(target_id, reasons) from exc


def build_targets(
    settings: Settings,
) -> tuple[list[TargetSpec], list[ConfigurationError]]:
    """Validate every configured target independently.

    Returns:
        (enabled targets, configuration errors). Disabled targets appear in
        neither list; a malformed target only lands in the error list.
    """
    targets: list[TargetSpec] = []
    errors: list[ConfigurationError] = []

    try:
        host_cfg: HostConfig = _validate(HOST_TARGET_ID, HostConfig, settings.host)
        if host_cfg.enabled:
            targets.append(host_target(host_cfg))
    except ConfigurationError as exc:
        errors.append(exc)

    for provider_id, raw in settings.providers.items():
        try:
            if provider_id == HOST_TARGET_ID:
                raise ConfigurationError(
                    provider_id, f"'{HOST_TARGET_ID}' is reserved for the host target",
                )
            cfg: ProviderConfig = _validate(provider_id, ProviderConfig, raw)
        except ConfigurationError as exc:
            errors.append(exc)
            continue
        if cfg.enabled:
            targets.append(provider_target(provider_id, cfg))

    for err in errors:
        logger.error(
            "target_config_invalid",
            target_id=err.target_id,
            reason=err.reason,
        )

    return targets, errors
