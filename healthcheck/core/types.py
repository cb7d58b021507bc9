"""Domain types for health checks — states, thresholds, results, snapshots."""

from __future__ import annotations

import time
from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class HealthState(StrEnum):
    """Ordinal health classification — ``ok < warn < alarm``."""

    OK = "ok"
    WARN = "warn"
    ALARM = "alarm"

    @property
    def rank(self) -> int:
        return _STATE_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HealthState):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, HealthState):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, HealthState):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, HealthState):
            return NotImplemented
        return self.rank >= other.rank


_STATE_RANK: dict[HealthState, int] = {
    HealthState.OK: 0,
    HealthState.WARN: 1,
    HealthState.ALARM: 2,
}


def worst(states: Iterable[HealthState]) -> HealthState:
    """Return the most severe state, or OK for an empty iterable."""
    return max(states, default=HealthState.OK, key=lambda s: s.rank)


class Direction(StrEnum):
    """Which side of the thresholds is unhealthy."""

    HIGH_BAD = "high_bad"  # e.g. CPU usage
    LOW_BAD = "low_bad"    # e.g. free memory %, delta rate


class TargetKind(StrEnum):
    """Kind of monitored target."""

    HOST = "host"
    PROVIDER = "provider"


class Threshold(BaseModel):
    """Warning/alarm pair for one metric field."""

    model_config = ConfigDict(frozen=True)

    warning: float
    alarm: float
    direction: Direction


class MetricSpec(BaseModel):
    """Where a reading lives in a sample and how to judge it."""

    model_config = ConfigDict(frozen=True)

    metric: str
    field: str
    threshold: Threshold


class CheckResult(BaseModel):
    """Classification of one metric field for one check cycle."""

    model_config = ConfigDict(frozen=True)

    state: HealthState
    metric: str
    field: str
    value: float

    @property
    def ok(self) -> bool:
        return self.state == HealthState.OK


class StreakSnapshot(BaseModel):
    """Read-only copy of a failure streak."""

    streak: int = 0
    email_sent: bool = False


class Notification(BaseModel):
    """Value published to the notification tree for a non-ok metric."""

    state: HealthState
    method: list[str] = Field(default_factory=lambda: ["visual", "sound"])
    message: str
    timestamp: float = Field(default_factory=time.time)


class TargetStatus(BaseModel):
    """Snapshot of one target returned by the status query surface."""

    target_id: str
    kind: TargetKind
    state: HealthState = HealthState.OK
    last_checked: float | None = None
    last_error: str | None = None
    results: dict[str, CheckResult] = Field(default_factory=dict)
    streaks: dict[str, StreakSnapshot] = Field(default_factory=dict)
