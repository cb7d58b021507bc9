"""Notification sink and the publisher that keeps it in sync with check results."""

from __future__ import annotations

import abc
from typing import Any

import structlog

from healthcheck.core.logging import DECISION_LOGGER
from healthcheck.core.types import CheckResult, HealthState, Notification, TargetKind

# Dedicated structured logger for decision records.
decision_logger = structlog.get_logger(DECISION_LOGGER)

logger = structlog.get_logger(__name__)

NOTIFICATIONS_ROOT = "notifications"


class NotificationSink(abc.ABC):
    """Hierarchical key/value store that downstream consumers watch."""

    @abc.abstractmethod
    async def publish(self, path: str, value: dict[str, Any] | None) -> None:
        """Set ``path`` to ``value``; ``None`` clears it."""

    @abc.abstractmethod
    async def read(self, path: str) -> dict[str, Any] | None:
        """Return the current value at ``path``, or None if clear/absent."""

    async def close(self) -> None:
        """Release resources. No-op by default."""


class InMemoryNotificationSink(NotificationSink):
    """Process-local notification tree, served by the HTTP status API."""

    def __init__(self) -> None:
        self._values: dict[str, dict[str, Any]] = {}

    async def publish(self, path: str, value: dict[str, Any] | None) -> None:
        if value is None:
            self._values.pop(path, None)
        else:
            self._values[path] = value

    async def read(self, path: str) -> dict[str, Any] | None:
        return self._values.get(path)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return dict(self._values)


def notification_path(
    prefix: str,
    kind: TargetKind,
    target_id: str,
    metric: str,
    field: str,
) -> str:
    """Build the notification path for one metric field.

    Host:     ``notifications.<prefix>.host.<metric>.<field>``
    Provider: ``notifications.<prefix>.provider.<id>.<metric>.<field>``
    """
    parts = [NOTIFICATIONS_ROOT, prefix, kind.value]
    if kind == TargetKind.PROVIDER:
        parts.append(target_id)
    parts.extend([metric, field])
    return ".".join(parts)


def format_message(kind: TargetKind, target_id: str, result: CheckResult) -> str:
    label = "Host" if kind == TargetKind.HOST else f"Provider {target_id}"
    return (
        f"{label} {result.metric} {result.field} is {result.value:g}"
        f" ({result.state.value})"
    )


class NotificationPublisher:
    """Publishes a set for every non-ok result and a single clear on recovery.

    Sets are re-issued every cycle while the metric stays non-ok; the sink
    is expected to treat identical sets idempotently. A clear is only sent
    when the sink still holds a value, so repeated OK cycles are silent.
    """

    def __init__(self, sink: NotificationSink, prefix: str = "healthcheck") -> None:
        self._sink = sink
        self._prefix = prefix

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    def path_for(self, kind: TargetKind, target_id: str, result: CheckResult) -> str:
        return notification_path(
            self._prefix, kind, target_id, result.metric, result.field,
        )

    async def publish(
        self,
        kind: TargetKind,
        target_id: str,
        result: CheckResult,
    ) -> bool:
        """Sync one result with the sink. Returns True if the sink was written."""
        path = self.path_for(kind, target_id, result)

        try:
            if result.state != HealthState.OK:
                note = Notification(
                    state=result.state,
                    message=format_message(kind, target_id, result),
                )
                await self._sink.publish(path, note.model_dump(mode="json"))
                self._log_decision("notification_set", path, result)
                return True

            if await self._sink.read(path) is None:
                return False
            await self._sink.publish(path, None)
            self._log_decision("notification_cleared", path, result)
            return True
        except Exception:
            logger.exception(
                "notification_publish_error",
                path=path,
                target_id=target_id,
                state=result.state.value,
            )
            return False

    def _log_decision(self, action: str, path: str, result: CheckResult) -> None:
        decision_logger.info(
            "decision",
            action=action,
            path=path,
            state=result.state.value,
            metric=result.metric,
            field=result.field,
            value=result.value,
        )
