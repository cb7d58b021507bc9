"""FailureDebouncer — per (target, metric) failure streaks and email flags.

Each (target, metric) pair moves through three phases::

    HEALTHY (streak=0) ──non-ok──▶ DEGRADED(n) ──streak ≥ max──▶ ESCALATED
        ▲                              │                             │
        └────────────── ok ────────────┴──────────── ok ─────────────┘

ESCALATED is only reached once the escalation email has actually been
delivered (:meth:`FailureDebouncer.mark_sent`). Until then every non-ok
observation at or beyond the attempt threshold re-requests escalation, so
a failed delivery is retried on the next cycle of the same incident.

All methods are synchronous and never await, so on the event loop each
update is atomic with respect to status reads. Per-target serialisation of
whole cycles is handled by the caller (see ``healthcheck.health.checks``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import structlog

from healthcheck.core.types import HealthState, StreakSnapshot

logger = structlog.get_logger(__name__)


class StreakPhase(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    ESCALATED = "escalated"


@dataclass
class _Streak:
    count: int = 0
    email_sent: bool = False


@dataclass(frozen=True)
class StreakUpdate:
    """Outcome of one observation."""

    streak: int
    escalate: bool = False
    recovered: bool = False


class FailureDebouncer:
    """Turns a stream of classifications into discrete escalation events."""

    def __init__(self) -> None:
        self._streaks: dict[tuple[str, str], _Streak] = {}

    def observe(
        self,
        target_id: str,
        metric: str,
        state: HealthState,
        max_attempts: int,
        email_enabled: bool,
    ) -> StreakUpdate:
        """Record one classification and report whether to escalate.

        An OK observation unconditionally resets the streak and the sent
        flag. A non-ok observation increments the streak; escalation is
        requested when email is enabled, the streak has reached
        ``max_attempts`` and no email has been sent for this incident yet.
        """
        key = (target_id, metric)

        if state == HealthState.OK:
            entry = self._streaks.get(key)
            if entry is None or entry.count == 0:
                return StreakUpdate(streak=0)
            logger.info(
                "streak_reset",
                target_id=target_id,
                metric=metric,
                previous_streak=entry.count,
                email_sent=entry.email_sent,
            )
            entry.count = 0
            entry.email_sent = False
            return StreakUpdate(streak=0, recovered=True)

        entry = self._streaks.setdefault(key, _Streak())
        entry.count += 1
        escalate = (
            email_enabled
            and entry.count >= max_attempts
            and not entry.email_sent
        )
        logger.debug(
            "streak_incremented",
            target_id=target_id,
            metric=metric,
            state=state.value,
            streak=entry.count,
            max_attempts=max_attempts,
            escalate=escalate,
        )
        return StreakUpdate(streak=entry.count, escalate=escalate)

    def mark_sent(self, target_id: str, metric: str) -> None:
        """Record a delivered escalation email (DEGRADED → ESCALATED)."""
        entry = self._streaks.get((target_id, metric))
        if entry is None or entry.count == 0:
            # The metric recovered while the email was in flight.
            return
        entry.email_sent = True

    def phase(self, target_id: str, metric: str) -> StreakPhase:
        entry = self._streaks.get((target_id, metric))
        if entry is None or entry.count == 0:
            return StreakPhase.HEALTHY
        if entry.email_sent:
            return StreakPhase.ESCALATED
        return StreakPhase.DEGRADED

    def streak(self, target_id: str, metric: str) -> int:
        entry = self._streaks.get((target_id, metric))
        return entry.count if entry is not None else 0

    def snapshot(self, target_id: str) -> dict[str, StreakSnapshot]:
        """Copy of every streak recorded for a target, keyed by metric."""
        return {
            metric: StreakSnapshot(streak=entry.count, email_sent=entry.email_sent)
            for (tid, metric), entry in self._streaks.items()
            if tid == target_id
        }

    def forget(self, target_id: str) -> None:
        """Drop all state for one target."""
        for key in [k for k in self._streaks if k[0] == target_id]:
            del self._streaks[key]

    def clear(self) -> None:
        self._streaks.clear()
