"""Delivery channels — email, chat, SMS, webhook — with breaker and retry."""

from src.channels.base import HttpChannel, NotificationChannel
from src.channels.breaker import CircuitBreaker
from src.channels.chat import SlackChannel, TelegramChannel
from src.channels.email import EmailChannel
from src.channels.exceptions import (
    ChannelConfigError,
    ChannelError,
    CircuitOpenError,
    TransportError,
)
from src.channels.health import all_healthy, check_channels
from src.channels.registry import CHANNEL_TYPES, ChannelRegistry, build_channel_registry
from src.channels.retry import RetryPolicy
from src.channels.sms import SmsChannel, WhatsAppChannel
from src.channels.webhook import WebhookChannel

__all__ = [
    "CHANNEL_TYPES",
    "ChannelConfigError",
    "ChannelError",
    "ChannelRegistry",
    "CircuitBreaker",
    "CircuitOpenError",
    "EmailChannel",
    "HttpChannel",
    "NotificationChannel",
    "RetryPolicy",
    "SlackChannel",
    "SmsChannel",
    "TelegramChannel",
    "TransportError",
    "WebhookChannel",
    "WhatsAppChannel",
    "all_healthy",
    "build_channel_registry",
    "check_channels",
]
