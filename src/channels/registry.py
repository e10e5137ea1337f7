"""Static channel registry and config-driven wiring."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import structlog

from src.channels.base import NotificationChannel
from src.channels.breaker import CircuitBreaker
from src.channels.chat import SlackChannel, TelegramChannel
from src.channels.email import EmailChannel
from src.channels.sms import SmsChannel, WhatsAppChannel
from src.channels.webhook import WebhookChannel
from src.core.config import ChannelsConfig
from src.store.base import StateStore

logger = structlog.get_logger(__name__)

# Every known backend, in delivery order.
CHANNEL_TYPES: dict[str, type[NotificationChannel]] = {
    EmailChannel.name: EmailChannel,
    SlackChannel.name: SlackChannel,
    TelegramChannel.name: TelegramChannel,
    SmsChannel.name: SmsChannel,
    WebhookChannel.name: WebhookChannel,
    WhatsAppChannel.name: WhatsAppChannel,
}


class ChannelRegistry:
    """The set of channels alerts are delivered to, keyed by name."""

    def __init__(self, channels: Iterable[NotificationChannel] = ()) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        for ch in channels:
            self.register(ch)

    def register(self, channel: NotificationChannel) -> None:
        if channel.name in self._channels:
            raise ValueError(f"channel already registered: {channel.name}")
        self._channels[channel.name] = channel

    def get(self, name: str) -> NotificationChannel | None:
        return self._channels.get(name)

    def names(self) -> list[str]:
        return list(self._channels)

    def __iter__(self) -> Iterator[NotificationChannel]:
        return iter(self._channels.values())

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    async def close(self) -> None:
        for ch in self._channels.values():
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=ch.name)


def build_channel_registry(
    config: ChannelsConfig,
    failures_store: StateStore | None = None,
    names: Iterable[str] | None = None,
    lock_timeout_secs: float = 5.0,
) -> ChannelRegistry:
    """Instantiate channels from config.

    Args:
        config: Channel settings.
        failures_store: Shared store for breaker counters; None disables
            circuit breaking.
        names: Build exactly these channels regardless of their ``enabled``
            flag (health checks). Unknown names are ignored here and reported
            by the caller. Defaults to every enabled channel.
    """
    if names is None:
        selected = [n for n in CHANNEL_TYPES if getattr(config, n).enabled]
    else:
        selected = [n for n in names if n in CHANNEL_TYPES]

    registry = ChannelRegistry()
    for name in selected:
        breaker = None
        if failures_store is not None:
            breaker = CircuitBreaker(
                name,
                failures_store,
                threshold=config.breaker_threshold,
                lock_timeout_secs=lock_timeout_secs,
            )
        cls = CHANNEL_TYPES[name]
        channel = cls(getattr(config, name), breaker=breaker, dry_run=config.dry_run)  # type: ignore[call-arg]
        registry.register(channel)
    return registry
