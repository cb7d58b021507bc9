"""Tests for FailureDebouncer — streaks, escalation, recovery, isolation."""

from __future__ import annotations

from healthcheck.core.types import HealthState
from healthcheck.health.debouncer import FailureDebouncer, StreakPhase

OK = HealthState.OK
WARN = HealthState.WARN
ALARM = HealthState.ALARM


def _run(
    deb: FailureDebouncer,
    states: list[HealthState],
    max_attempts: int = 3,
    email_enabled: bool = True,
    deliver: bool = True,
) -> int:
    """Feed states for ("t", "cpu"); return number of escalations requested."""
    escalations = 0
    for state in states:
        update = deb.observe("t", "cpu", state, max_attempts, email_enabled)
        if update.escalate:
            escalations += 1
            if deliver:
                deb.mark_sent("t", "cpu")
    return escalations


class TestStreaks:
    def test_first_failure_starts_streak(self) -> None:
        deb = FailureDebouncer()
        update = deb.observe("t", "cpu", WARN, 3, True)
        assert update.streak == 1
        assert not update.escalate
        assert deb.phase("t", "cpu") == StreakPhase.DEGRADED

    def test_streak_counts_warn_and_alarm(self) -> None:
        deb = FailureDebouncer()
        _run(deb, [WARN, ALARM, WARN], max_attempts=10)
        assert deb.streak("t", "cpu") == 3

    def test_ok_resets(self) -> None:
        deb = FailureDebouncer()
        _run(deb, [WARN, WARN], max_attempts=10)
        update = deb.observe("t", "cpu", OK, 10, True)
        assert update.streak == 0
        assert update.recovered
        assert deb.phase("t", "cpu") == StreakPhase.HEALTHY

    def test_ok_when_healthy_is_not_a_recovery(self) -> None:
        deb = FailureDebouncer()
        update = deb.observe("t", "cpu", OK, 3, True)
        assert not update.recovered
        assert deb.snapshot("t") == {}


class TestEscalation:
    def test_exactly_max_attempts_sends_one(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [WARN, WARN, ALARM]) == 1
        assert deb.phase("t", "cpu") == StreakPhase.ESCALATED

    def test_one_short_sends_none(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [WARN, WARN]) == 0

    def test_no_repeat_while_incident_open(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [ALARM] * 10) == 1
        assert deb.streak("t", "cpu") == 10

    def test_recovery_before_threshold_restarts_streak(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [WARN, WARN, OK, WARN]) == 0
        assert deb.streak("t", "cpu") == 1

    def test_recovery_after_escalation_allows_new_email(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [ALARM, ALARM, ALARM]) == 1
        assert _run(deb, [OK]) == 0
        snap = deb.snapshot("t")["cpu"]
        assert snap.streak == 0
        assert snap.email_sent is False
        assert _run(deb, [ALARM, ALARM]) == 0
        assert _run(deb, [ALARM]) == 1

    def test_max_attempts_one(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [WARN], max_attempts=1) == 1

    def test_email_disabled_never_escalates(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [ALARM] * 5, email_enabled=False) == 0
        assert deb.streak("t", "cpu") == 5
        assert deb.phase("t", "cpu") == StreakPhase.DEGRADED

    def test_failed_delivery_retried_next_cycle(self) -> None:
        deb = FailureDebouncer()
        assert _run(deb, [ALARM, ALARM, ALARM], deliver=False) == 1
        assert deb.phase("t", "cpu") == StreakPhase.DEGRADED
        # Next non-ok cycle asks again; delivery succeeds this time.
        assert _run(deb, [ALARM]) == 1
        assert _run(deb, [ALARM]) == 0

    def test_sent_flag_implies_streak_at_threshold(self) -> None:
        deb = FailureDebouncer()
        _run(deb, [WARN, WARN, WARN, WARN])
        snap = deb.snapshot("t")["cpu"]
        assert snap.email_sent
        assert snap.streak >= 3

    def test_mark_sent_after_recovery_is_ignored(self) -> None:
        deb = FailureDebouncer()
        _run(deb, [ALARM, ALARM, ALARM], deliver=False)
        deb.observe("t", "cpu", OK, 3, True)
        deb.mark_sent("t", "cpu")
        assert deb.snapshot("t")["cpu"].email_sent is False


class TestIsolation:
    def test_metrics_independent(self) -> None:
        deb = FailureDebouncer()
        deb.observe("t", "cpu", ALARM, 3, True)
        deb.observe("t", "disk", OK, 3, True)
        deb.observe("t", "memory", WARN, 3, True)
        deb.observe("t", "memory", WARN, 3, True)
        snap = deb.snapshot("t")
        assert snap["cpu"].streak == 1
        assert snap["memory"].streak == 2
        assert "disk" not in snap

    def test_targets_independent(self) -> None:
        deb = FailureDebouncer()
        deb.observe("a", "deltaRate", ALARM, 3, True)
        deb.observe("b", "deltaRate", OK, 3, True)
        assert deb.streak("a", "deltaRate") == 1
        assert deb.streak("b", "deltaRate") == 0

    def test_forget_and_clear(self) -> None:
        deb = FailureDebouncer()
        deb.observe("a", "deltaRate", ALARM, 3, True)
        deb.observe("b", "deltaRate", ALARM, 3, True)
        deb.forget("a")
        assert deb.snapshot("a") == {}
        assert deb.streak("b", "deltaRate") == 1
        deb.clear()
        assert deb.snapshot("b") == {}
