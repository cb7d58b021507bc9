"""Convenience factory for wiring the health check stack."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from healthcheck.core.config import Settings
from healthcheck.core.types import TargetKind
from healthcheck.health.checks import HostCheck, ProviderCheck, TargetCheck
from healthcheck.health.collectors import (
    HostMetricsCollector,
    HttpProviderStatistics,
    ProviderStatisticsSource,
    PsutilHostCollector,
    StaticProviderStatistics,
)
from healthcheck.health.debouncer import FailureDebouncer
from healthcheck.health.email import EmailEscalator, MailTransport, SmtpMailTransport
from healthcheck.health.exceptions import ConfigurationError
from healthcheck.health.notifications import (
    InMemoryNotificationSink,
    NotificationPublisher,
    NotificationSink,
)
from healthcheck.health.scheduler import HealthScheduler
from healthcheck.health.status import StatusBoard
from healthcheck.health.targets import build_targets

logger = structlog.get_logger(__name__)


@dataclass
class HealthStack:
    """Everything ``create_health_stack`` built, for the caller to run and close."""

    scheduler: HealthScheduler
    board: StatusBoard
    debouncer: FailureDebouncer
    sink: NotificationSink
    publisher: NotificationPublisher
    escalator: EmailEscalator | None
    statistics: ProviderStatisticsSource
    host_collector: HostMetricsCollector | None
    config_errors: list[ConfigurationError] = field(default_factory=list)

    async def close(self) -> None:
        await self.scheduler.stop()
        if self.host_collector is not None:
            await self.host_collector.close()
        await self.statistics.close()
        if self.escalator is not None:
            await self.escalator.transport.close()
        await self.sink.close()


def create_health_stack(
    settings: Settings,
    sink: NotificationSink | None = None,
    host_collector: HostMetricsCollector | None = None,
    statistics: ProviderStatisticsSource | None = None,
    transport: MailTransport | None = None,
) -> HealthStack:
    """Build scheduler, checks and collaborators from config.

    Collaborators default to the production adapters; pass fakes to embed
    or test. Targets that fail validation are logged and left unscheduled.
    """
    debouncer = FailureDebouncer()
    board = StatusBoard(debouncer)
    scheduler = HealthScheduler(debouncer, board)

    sink = sink or InMemoryNotificationSink()
    publisher = NotificationPublisher(sink, prefix=settings.notifications.prefix)

    escalator: EmailEscalator | None = None
    if transport is None and settings.email.enabled:
        transport = SmtpMailTransport(settings.email)
    if transport is not None:
        escalator = EmailEscalator(transport, default_recipients=settings.email.recipients)

    if statistics is None:
        if settings.statistics.url:
            statistics = HttpProviderStatistics(settings.statistics)
        else:
            statistics = StaticProviderStatistics()

    targets, errors = build_targets(settings)

    for spec in targets:
        if spec.email_enabled and escalator is None:
            logger.warning("email_not_configured", target_id=spec.target_id)

        check: TargetCheck
        if spec.kind == TargetKind.HOST:
            if host_collector is None:
                host_collector = PsutilHostCollector(disk_path=spec.disk_path)
            check = HostCheck(spec, host_collector, debouncer, publisher, board, escalator)
        else:
            check = ProviderCheck(spec, statistics, debouncer, publisher, board, escalator)
        scheduler.add(check)

    return HealthStack(
        scheduler=scheduler,
        board=board,
        debouncer=debouncer,
        sink=sink,
        publisher=publisher,
        escalator=escalator,
        statistics=statistics,
        host_collector=host_collector,
        config_errors=errors,
    )
