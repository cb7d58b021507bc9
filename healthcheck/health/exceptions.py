"""Exception hierarchy for the health check subsystem."""

from __future__ import annotations


class HealthcheckError(Exception):
    """Base exception for all health check errors."""


class CollectionError(HealthcheckError):
    """A metrics collector failed; the cycle is skipped."""


class MissingProviderStatsError(HealthcheckError):
    """No current statistics for a provider; the cycle is skipped."""


class DeliveryError(HealthcheckError):
    """An outbound email could not be delivered."""


class ConfigurationError(HealthcheckError):
    """A target's configuration is malformed; the target is not scheduled."""

    def __init__(self, target_id: str, reason: str) -> None:
        super().__init__(f"{target_id}: {reason}")
        self.target_id = target_id
        self.reason = reason
