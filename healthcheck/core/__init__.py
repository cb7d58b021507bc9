"""Core module — config, types, logging."""

from healthcheck.core.config import Settings, get_settings, load_settings, reset_settings
from healthcheck.core.logging import setup_logging
from healthcheck.core.types import (
    CheckResult,
    Direction,
    HealthState,
    MetricSpec,
    Notification,
    StreakSnapshot,
    TargetKind,
    TargetStatus,
    Threshold,
    worst,
)

__all__ = [
    "CheckResult",
    "Direction",
    "HealthState",
    "MetricSpec",
    "Notification",
    "Settings",
    "StreakSnapshot",
    "TargetKind",
    "TargetStatus",
    "Threshold",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
    "worst",
]
