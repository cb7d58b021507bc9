"""Health checks — classification, debounce, notifications, email, scheduling."""

from healthcheck.health.checks import HostCheck, ProviderCheck, TargetCheck
from healthcheck.health.classifier import classify, classify_sample
from healthcheck.health.collectors import (
    HostMetricsCollector,
    HttpProviderStatistics,
    ProviderStatisticsSource,
    PsutilHostCollector,
    StaticProviderStatistics,
)
from healthcheck.health.debouncer import FailureDebouncer, StreakPhase, StreakUpdate
from healthcheck.health.email import EmailEscalator, MailTransport, SmtpMailTransport
from healthcheck.health.exceptions import (
    CollectionError,
    ConfigurationError,
    DeliveryError,
    HealthcheckError,
    MissingProviderStatsError,
)
from healthcheck.health.notifications import (
    InMemoryNotificationSink,
    NotificationPublisher,
    NotificationSink,
)
from healthcheck.health.scheduler import HealthScheduler
from healthcheck.health.status import OverallStatus, StatusBoard
from healthcheck.health.targets import TargetSpec, build_targets

__all__ = [
    "CollectionError",
    "ConfigurationError",
    "DeliveryError",
    "EmailEscalator",
    "FailureDebouncer",
    "HealthScheduler",
    "HealthcheckError",
    "HostCheck",
    "HostMetricsCollector",
    "HttpProviderStatistics",
    "InMemoryNotificationSink",
    "MailTransport",
    "MissingProviderStatsError",
    "NotificationPublisher",
    "NotificationSink",
    "OverallStatus",
    "ProviderCheck",
    "ProviderStatisticsSource",
    "PsutilHostCollector",
    "SmtpMailTransport",
    "StaticProviderStatistics",
    "StatusBoard",
    "StreakPhase",
    "StreakUpdate",
    "TargetCheck",
    "TargetSpec",
    "build_targets",
    "classify",
    "classify_sample",
]
