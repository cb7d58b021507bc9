"""Per-target check pipelines: fetch → classify → debounce → publish → escalate."""

from __future__ import annotations

import abc
import asyncio

import structlog

from healthcheck.core.types import CheckResult, TargetKind
from healthcheck.health.classifier import classify_sample
from healthcheck.health.collectors import (
    HostMetricsCollector,
    MetricSample,
    ProviderStatisticsSource,
)
from healthcheck.health.debouncer import FailureDebouncer
from healthcheck.health.email import EmailEscalator
from healthcheck.health.exceptions import (
    CollectionError,
    DeliveryError,
    MissingProviderStatsError,
)
from healthcheck.health.notifications import NotificationPublisher
from healthcheck.health.status import StatusBoard
from healthcheck.health.targets import TargetSpec

logger = structlog.get_logger(__name__)


class TargetCheck(abc.ABC):
    """One target's check cycle, bound to an immutable :class:`TargetSpec`.

    Cycles of the same target may overlap when collection is slower than
    the check period. Each cycle takes a sequence number when it starts;
    state is only mutated under the target's lock, and a cycle whose
    collection finishes after a newer cycle was already applied is dropped.
    """

    def __init__(
        self,
        spec: TargetSpec,
        debouncer: FailureDebouncer,
        publisher: NotificationPublisher,
        board: StatusBoard,
        escalator: EmailEscalator | None = None,
    ) -> None:
        self._spec = spec
        self._debouncer = debouncer
        self._publisher = publisher
        self._board = board
        self._escalator = escalator
        self._lock = asyncio.Lock()
        self._started_seq = 0
        self._applied_seq = 0
        self._active = True

    @property
    def spec(self) -> TargetSpec:
        return self._spec

    @property
    def target_id(self) -> str:
        return self._spec.target_id

    @property
    def kind(self) -> TargetKind:
        return self._spec.kind

    @property
    def active(self) -> bool:
        return self._active

    def deactivate(self) -> None:
        """Make every in-flight and future cycle a no-op."""
        self._active = False

    @abc.abstractmethod
    async def sample(self) -> MetricSample:
        """Fetch this cycle's sample.

        Raises:
            CollectionError / MissingProviderStatsError: skip this cycle.
        """

    async def cycle(self) -> dict[str, CheckResult] | None:
        """Run one check cycle. Returns the applied results, or None if skipped."""
        self._started_seq += 1
        seq = self._started_seq

        try:
            sample = await self.sample()
        except MissingProviderStatsError as exc:
            logger.info("provider_stats_missing", target_id=self.target_id, reason=str(exc))
            self._board.record_error(self.target_id, str(exc))
            return None
        except CollectionError as exc:
            logger.warning("collection_failed", target_id=self.target_id, reason=str(exc))
            self._board.record_error(self.target_id, str(exc))
            return None

        try:
            results = classify_sample(sample, self._spec.metrics)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "sample_malformed",
                target_id=self.target_id,
                error=repr(exc),
            )
            self._board.record_error(self.target_id, f"malformed sample: {exc!r}")
            return None

        async with self._lock:
            if not self._active:
                logger.debug("cycle_discarded", target_id=self.target_id, seq=seq)
                return None
            if seq < self._applied_seq:
                logger.debug(
                    "stale_cycle_discarded",
                    target_id=self.target_id,
                    seq=seq,
                    applied_seq=self._applied_seq,
                )
                return None
            self._applied_seq = seq
            await self._apply(results)

        return results

    async def _apply(self, results: dict[str, CheckResult]) -> None:
        spec = self._spec
        email_enabled = spec.email_enabled and self._escalator is not None

        escalating: list[str] = []
        streak = 0
        for metric, result in results.items():
            update = self._debouncer.observe(
                spec.target_id,
                metric,
                result.state,
                spec.max_attempts,
                email_enabled,
            )
            if update.escalate:
                escalating.append(metric)
                streak = max(streak, update.streak)

        self._board.record(spec.target_id, results)
        logger.debug(
            "cycle_complete",
            target_id=spec.target_id,
            states={m: r.state.value for m, r in results.items()},
        )

        if spec.notifications_enabled:
            for result in results.values():
                await self._publisher.publish(spec.kind, spec.target_id, result)

        if escalating and self._escalator is not None:
            await self._escalate(results, escalating, streak)

    async def _escalate(
        self,
        results: dict[str, CheckResult],
        escalating: list[str],
        streak: int,
    ) -> None:
        spec = self._spec
        try:
            await self._escalator.escalate(  # type: ignore[union-attr]
                spec.kind,
                spec.target_id,
                results,
                streak=streak,
                max_attempts=spec.max_attempts,
                recipients=spec.email_to,
            )
        except DeliveryError as exc:
            # Sent flag stays false: the next non-ok cycle retries.
            logger.warning(
                "email_delivery_failed",
                target_id=spec.target_id,
                metrics=escalating,
                reason=str(exc),
            )
            return

        for metric in escalating:
            self._debouncer.mark_sent(spec.target_id, metric)


class HostCheck(TargetCheck):
    """Checks CPU, free memory and free disk of the host."""

    def __init__(
        self,
        spec: TargetSpec,
        collector: HostMetricsCollector,
        debouncer: FailureDebouncer,
        publisher: NotificationPublisher,
        board: StatusBoard,
        escalator: EmailEscalator | None = None,
    ) -> None:
        super().__init__(spec, debouncer, publisher, board, escalator)
        self._collector = collector

    async def sample(self) -> MetricSample:
        return await self._collector.fetch()


class ProviderCheck(TargetCheck):
    """Checks the delta rate of one data-pipeline provider."""

    def __init__(
        self,
        spec: TargetSpec,
        source: ProviderStatisticsSource,
        debouncer: FailureDebouncer,
        publisher: NotificationPublisher,
        board: StatusBoard,
        escalator: EmailEscalator | None = None,
    ) -> None:
        super().__init__(spec, debouncer, publisher, board, escalator)
        self._source = source

    async def sample(self) -> MetricSample:
        stats = await self._source.stats_for(self.target_id)
        if stats is None:
            raise MissingProviderStatsError(f"no statistics for provider {self.target_id}")
        return dict(stats)
