"""Tests for the channel health-check harness."""

from __future__ import annotations

import asyncio
from typing import Any

from src.channels.base import NotificationChannel
from src.channels.breaker import CircuitBreaker
from src.channels.exceptions import ChannelConfigError, TransportError
from src.channels.health import all_healthy, check_channels
from src.channels.registry import ChannelRegistry
from src.core.types import HealthStatus
from src.store.base import MemoryStateStore


class _Probe(NotificationChannel):
    def __init__(self, name: str, mode: str = "ok", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.name = name  # type: ignore[misc]
        self.mode = mode
        self.sent: list[str] = []

    def check_config(self, target: str | None = None) -> None:
        if self.mode == "unconfigured":
            raise ChannelConfigError("no credentials")

    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        if self.mode == "fail":
            raise TransportError("HTTP 500", status=500)
        if self.mode == "hang":
            await asyncio.sleep(10)
        self.sent.append(alert_type)


class TestCheckChannels:
    async def test_statuses(self) -> None:
        registry = ChannelRegistry(
            [_Probe("slack"), _Probe("sms", "fail"), _Probe("email", "unconfigured")]
        )
        results = await check_channels(registry, only=["slack", "sms", "email", "fax"])
        by_name = {r.channel: r for r in results}
        assert by_name["slack"].status == HealthStatus.OK
        assert by_name["sms"].status == HealthStatus.FAIL
        assert by_name["sms"].detail.startswith("TRANSPORT_FAILURE")
        assert by_name["email"].status == HealthStatus.FAIL
        assert "CONFIG_ERROR" in by_name["email"].detail
        assert by_name["fax"].status == HealthStatus.UNAVAILABLE
        assert all_healthy(results) is False

    async def test_probe_sends_test_alert(self) -> None:
        probe = _Probe("slack")
        results = await check_channels(ChannelRegistry([probe]))
        assert all_healthy(results) is True
        assert probe.sent == ["TEST"]

    async def test_timeout_counts_against_breaker(self) -> None:
        breaker = CircuitBreaker("slack", MemoryStateStore("failures"))
        probe = _Probe("slack", "hang", breaker=breaker, timeout_secs=30)
        results = await check_channels(ChannelRegistry([probe]), timeout_secs=0.05)
        assert results[0].status == HealthStatus.TIMEOUT
        assert await breaker.failures() == 1

    async def test_dry_run_healthy_without_sending(self) -> None:
        probe = _Probe("slack", dry_run=True)
        results = await check_channels(ChannelRegistry([probe]))
        assert results[0].status == HealthStatus.OK
        assert probe.sent == []

    async def test_empty_registry(self) -> None:
        assert await check_channels(ChannelRegistry()) == []
