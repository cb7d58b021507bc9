"""StatusBoard — read-only snapshots of the latest cycle per target."""

from __future__ import annotations

import time
from collections.abc import Mapping
from enum import StrEnum

from healthcheck.core.types import CheckResult, HealthState, TargetKind, TargetStatus, worst
from healthcheck.health.debouncer import FailureDebouncer


class OverallStatus(StrEnum):
    UP = "UP"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


_OVERALL: dict[HealthState, OverallStatus] = {
    HealthState.OK: OverallStatus.UP,
    HealthState.WARN: OverallStatus.DEGRADED,
    HealthState.ALARM: OverallStatus.DOWN,
}


class _Entry:
    __slots__ = ("kind", "results", "last_checked", "last_error")

    def __init__(self, kind: TargetKind) -> None:
        self.kind = kind
        self.results: dict[str, CheckResult] = {}
        self.last_checked: float | None = None
        self.last_error: str | None = None


class StatusBoard:
    """Latest results per registered target, joined with streak counters.

    Only registered (i.e. scheduled) targets are visible; a disabled or
    misconfigured target has no entry and ``status()`` returns None.
    """

    def __init__(self, debouncer: FailureDebouncer) -> None:
        self._debouncer = debouncer
        self._entries: dict[str, _Entry] = {}

    def register(self, target_id: str, kind: TargetKind) -> None:
        self._entries.setdefault(target_id, _Entry(kind))

    def unregister(self, target_id: str) -> None:
        self._entries.pop(target_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def record(self, target_id: str, results: Mapping[str, CheckResult]) -> None:
        entry = self._entries.get(target_id)
        if entry is None:
            return
        entry.results = dict(results)
        entry.last_checked = time.time()
        entry.last_error = None

    def record_error(self, target_id: str, error: str) -> None:
        entry = self._entries.get(target_id)
        if entry is None:
            return
        entry.last_error = error

    # ── Query surface ───────────────────────────────────────────

    def status(self, target_id: str) -> TargetStatus | None:
        entry = self._entries.get(target_id)
        if entry is None:
            return None
        return TargetStatus(
            target_id=target_id,
            kind=entry.kind,
            state=worst(r.state for r in entry.results.values()),
            last_checked=entry.last_checked,
            last_error=entry.last_error,
            results=dict(entry.results),
            streaks=self._debouncer.snapshot(target_id),
        )

    def _by_kind(self, kind: TargetKind) -> list[TargetStatus]:
        snaps = []
        for target_id in sorted(self._entries):
            if self._entries[target_id].kind == kind:
                snap = self.status(target_id)
                if snap is not None:
                    snaps.append(snap)
        return snaps

    def hosts(self) -> list[TargetStatus]:
        return self._by_kind(TargetKind.HOST)

    def providers(self) -> list[TargetStatus]:
        return self._by_kind(TargetKind.PROVIDER)

    def overall(self) -> OverallStatus:
        state = worst(
            r.state
            for entry in self._entries.values()
            for r in entry.results.values()
        )
        return _OVERALL[state]
