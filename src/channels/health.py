"""Channel health-check harness — one concurrent probe per channel."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import structlog

from src.channels.registry import ChannelRegistry
from src.core.types import ChannelHealth, HealthStatus

logger = structlog.get_logger(__name__)


async def check_channels(
    registry: ChannelRegistry,
    only: Iterable[str] | None = None,
    timeout_secs: float = 20.0,
) -> list[ChannelHealth]:
    """Probe channels concurrently, each bounded by *timeout_secs*.

    Names not present in *registry* come back ``UNAVAILABLE``.  A probe that
    runs out of time is ``TIMEOUT`` and counts as a breaker failure, the same
    as a transport error.
    """
    names = list(only) if only is not None else registry.names()

    async def _check(name: str) -> ChannelHealth:
        channel = registry.get(name)
        if channel is None:
            return ChannelHealth(
                channel=name,
                status=HealthStatus.UNAVAILABLE,
                detail="channel not available",
            )
        try:
            result = await asyncio.wait_for(channel.test(), timeout_secs)
        except TimeoutError:
            await channel.record_failure()
            return ChannelHealth(
                channel=name,
                status=HealthStatus.TIMEOUT,
                detail=f"no answer within {timeout_secs}s",
            )
        if result.ok:
            return ChannelHealth(channel=name, status=HealthStatus.OK, detail=result.detail)
        return ChannelHealth(
            channel=name,
            status=HealthStatus.FAIL,
            detail=f"{result.status.value}: {result.detail}",
        )

    results = list(await asyncio.gather(*(_check(n) for n in names)))
    for health in results:
        logger.info("channel_health", channel=health.channel, status=health.status.value)
    return results


def all_healthy(results: Iterable[ChannelHealth]) -> bool:
    return all(r.healthy for r in results)
