"""Metric sources — host sampling via psutil, provider statistics via HTTP."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Mapping
from typing import Any

import httpx
import psutil
import structlog

from healthcheck.core.config import StatisticsConfig
from healthcheck.health.exceptions import CollectionError

logger = structlog.get_logger(__name__)

MetricSample = dict[str, Any]


class HostMetricsCollector(abc.ABC):
    """Produces one host sample per cycle."""

    @abc.abstractmethod
    async def fetch(self) -> MetricSample:
        """Return ``{cpu: {averageUsage}, memory: {freeMemPercentage},
        disk: {freePercentage}}``.

        Raises:
            CollectionError: sampling failed; the cycle should be skipped.
        """

    async def close(self) -> None:
        """Release resources. No-op by default."""


class PsutilHostCollector(HostMetricsCollector):
    """Samples the local machine with psutil, off the event loop."""

    def __init__(self, disk_path: str = "/", cpu_interval_secs: float = 1.0) -> None:
        self._disk_path = disk_path
        self._cpu_interval = cpu_interval_secs

    def _sample(self) -> MetricSample:
        cpu = psutil.cpu_percent(interval=self._cpu_interval)
        mem = psutil.virtual_memory()
        disk = psutil.disk_usage(self._disk_path)
        return {
            "cpu": {"averageUsage": float(cpu)},
            "memory": {
                "freeMemPercentage": (mem.available / mem.total) * 100.0 if mem.total else 0.0,
            },
            "disk": {
                "freePercentage": (disk.free / disk.total) * 100.0 if disk.total else 0.0,
            },
        }

    async def fetch(self) -> MetricSample:
        try:
            return await asyncio.to_thread(self._sample)
        except (psutil.Error, OSError) as exc:
            raise CollectionError(f"host sampling failed: {exc}") from exc


class ProviderStatisticsSource(abc.ABC):
    """Current per-provider statistics."""

    @abc.abstractmethod
    async def stats_for(self, provider_id: str) -> Mapping[str, Any] | None:
        """Return ``{deltaRate: number}`` or None if the provider has no stats.

        Raises:
            CollectionError: the source itself could not be read.
        """

    async def close(self) -> None:
        """Release resources. No-op by default."""


class StaticProviderStatistics(ProviderStatisticsSource):
    """In-memory statistics, updated by whoever owns the data pipeline."""

    def __init__(self, stats: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._stats: dict[str, dict[str, Any]] = {
            k: dict(v) for k, v in (stats or {}).items()
        }

    def update(self, provider_id: str, **values: Any) -> None:
        self._stats.setdefault(provider_id, {}).update(values)

    def remove(self, provider_id: str) -> None:
        self._stats.pop(provider_id, None)

    async def stats_for(self, provider_id: str) -> Mapping[str, Any] | None:
        stats = self._stats.get(provider_id)
        return dict(stats) if stats is not None else None


class HttpProviderStatistics(ProviderStatisticsSource):
    """Reads ``{providerId: {deltaRate: ...}}`` from a JSON endpoint."""

    def __init__(self, config: StatisticsConfig) -> None:
        self._config = config
        self._http: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_secs),
            )
        return self._http

    async def stats_for(self, provider_id: str) -> Mapping[str, Any] | None:
        try:
            response = await self._get_client().get(self._config.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CollectionError(
                f"statistics endpoint returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CollectionError(f"statistics request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise CollectionError("statistics endpoint returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise CollectionError("statistics endpoint returned a non-object")

        stats = body.get(provider_id)
        return stats if isinstance(stats, dict) else None

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
