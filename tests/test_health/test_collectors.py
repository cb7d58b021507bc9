"""Tests for metric sources — psutil host sampling and provider statistics."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import psutil
import pytest

from healthcheck.core.config import StatisticsConfig
from healthcheck.health.collectors import (
    HttpProviderStatistics,
    PsutilHostCollector,
    StaticProviderStatistics,
)
from healthcheck.health.exceptions import CollectionError

STATS_URL = "http://signalk.test/stats"


def _response(status: int = 200, json_data: object = None, text: str | None = None) -> httpx.Response:
    """Build a mock httpx.Response."""
    kwargs: dict[str, object] = {}
    if text is not None:
        kwargs["text"] = text
    else:
        kwargs["json"] = json_data
    return httpx.Response(
        status_code=status,
        request=httpx.Request("GET", STATS_URL),
        **kwargs,  # type: ignore[arg-type]
    )


class TestPsutilHostCollector:
    async def test_sample_shape(self) -> None:
        collector = PsutilHostCollector(disk_path="/data", cpu_interval_secs=0)
        with (
            patch("healthcheck.health.collectors.psutil.cpu_percent", return_value=42.5),
            patch(
                "healthcheck.health.collectors.psutil.virtual_memory",
                return_value=SimpleNamespace(total=1000, available=250),
            ),
            patch(
                "healthcheck.health.collectors.psutil.disk_usage",
                return_value=SimpleNamespace(total=200, free=50),
            ) as mock_disk,
        ):
            sample = await collector.fetch()

        assert sample == {
            "cpu": {"averageUsage": 42.5},
            "memory": {"freeMemPercentage": 25.0},
            "disk": {"freePercentage": 25.0},
        }
        mock_disk.assert_called_once_with("/data")

    async def test_os_error_becomes_collection_error(self) -> None:
        collector = PsutilHostCollector(disk_path="/missing", cpu_interval_secs=0)
        with (
            patch("healthcheck.health.collectors.psutil.cpu_percent", return_value=1.0),
            patch(
                "healthcheck.health.collectors.psutil.virtual_memory",
                return_value=SimpleNamespace(total=1000, available=250),
            ),
            patch(
                "healthcheck.health.collectors.psutil.disk_usage",
                side_effect=FileNotFoundError("/missing"),
            ),
        ):
            with pytest.raises(CollectionError):
                await collector.fetch()

    async def test_psutil_error_becomes_collection_error(self) -> None:
        collector = PsutilHostCollector(cpu_interval_secs=0)
        with patch(
            "healthcheck.health.collectors.psutil.cpu_percent",
            side_effect=psutil.AccessDenied(),
        ):
            with pytest.raises(CollectionError):
                await collector.fetch()


class TestStaticProviderStatistics:
    async def test_known_provider(self) -> None:
        source = StaticProviderStatistics({"p1": {"deltaRate": 3.0}})
        assert await source.stats_for("p1") == {"deltaRate": 3.0}

    async def test_unknown_provider_is_none(self) -> None:
        source = StaticProviderStatistics()
        assert await source.stats_for("nope") is None

    async def test_update_and_remove(self) -> None:
        source = StaticProviderStatistics()
        source.update("p1", deltaRate=0.2)
        assert await source.stats_for("p1") == {"deltaRate": 0.2}
        source.remove("p1")
        assert await source.stats_for("p1") is None


class TestHttpProviderStatistics:
    def _source(self) -> HttpProviderStatistics:
        return HttpProviderStatistics(StatisticsConfig(url=STATS_URL))

    async def test_returns_provider_entry(self) -> None:
        source = self._source()
        resp = _response(json_data={"p1": {"deltaRate": 4.2}, "p2": {"deltaRate": 0}})
        with patch.object(httpx.AsyncClient, "get", new=AsyncMock(return_value=resp)):
            assert await source.stats_for("p1") == {"deltaRate": 4.2}
        await source.close()

    async def test_missing_provider_is_none(self) -> None:
        source = self._source()
        resp = _response(json_data={"p1": {"deltaRate": 4.2}})
        with patch.object(httpx.AsyncClient, "get", new=AsyncMock(return_value=resp)):
            assert await source.stats_for("p9") is None
        await source.close()

    async def test_http_status_error(self) -> None:
        source = self._source()
        resp = _response(status=503, json_data={})
        with patch.object(httpx.AsyncClient, "get", new=AsyncMock(return_value=resp)):
            with pytest.raises(CollectionError, match="503"):
                await source.stats_for("p1")
        await source.close()

    async def test_transport_error(self) -> None:
        source = self._source()
        with patch.object(
            httpx.AsyncClient,
            "get",
            new=AsyncMock(side_effect=httpx.ConnectError("connection refused")),
        ):
            with pytest.raises(CollectionError):
                await source.stats_for("p1")
        await source.close()

    async def test_invalid_json(self) -> None:
        source = self._source()
        resp = _response(text="<html>")
        with patch.object(httpx.AsyncClient, "get", new=AsyncMock(return_value=resp)):
            with pytest.raises(CollectionError, match="invalid JSON"):
                await source.stats_for("p1")
        await source.close()

    async def test_close_without_client(self) -> None:
        await self._source().close()  # should not raise
