"""Pydantic settings loaded from YAML configuration with environment overrides."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    file: str = ""


class StorageConfig(BaseModel):
    """Where the debounce map, queue, breaker counters and audit log live."""

    backend: str = "file"  # "file" or "memory"
    state_dir: str = "/var/log/hostwatch"
    queue_file: str = "alert_queue.json"
    debounce_file: str = ".last_alerts.json"
    failures_file: str = ".channel_fails.json"
    audit_file: str = "alerts_audit.jsonl"
    backup_dir: str = "queue_backups"
    max_backups: int = 7
    audit_max_records: int = 100
    audit_keep_records: int = 50


class ValidationConfig(BaseModel):
    """Inbound event validation."""

    required_fields: list[str] = ["timestamp", "server_id"]


class DebounceConfig(BaseModel):
    """Per-type repeat suppression."""

    window_secs: float = 300.0
    lock_timeout_secs: float = 5.0
    key_by_server: bool = False


class QueueConfig(BaseModel):
    """Persistent priority queue."""

    version: str = "0.3.1"
    enqueue_lock_timeout_secs: float = 5.0
    drain_lock_timeout_secs: float = 10.0
    promotion_age_secs: float = 3600.0


class ThresholdConfig(BaseModel):
    """Usage thresholds (percent) for one metric domain."""

    warning: float | None = None
    critical: float = 90.0


class ProcessorsConfig(BaseModel):
    """Metric processors run concurrently for every event."""

    enabled: list[str] = ["cpu", "memory", "disk"]
    timeout_secs: float = 30.0
    cpu: ThresholdConfig = ThresholdConfig()
    memory: ThresholdConfig = ThresholdConfig()
    disk: ThresholdConfig = ThresholdConfig()


class EmailConfig(BaseModel):
    """SMTP email channel."""

    enabled: bool = False
    from_addr: str = "alerts@hostwatch.local"
    to_addr: str = ""
    smtp_server: str = "localhost"
    smtp_port: int = 25
    subject_prefix: str = "[HOSTWATCH]"
    timeout_secs: float = 5.0


class SlackConfig(BaseModel):
    """Slack incoming-webhook channel."""

    enabled: bool = False
    webhook_url: SecretStr = SecretStr("")
    channel: str = "#alerts"
    username: str = "Hostwatch Bot"
    template: str = "\U0001f6a8 [{type}] {message}"
    timeout_secs: float = 10.0


class TelegramConfig(BaseModel):
    """Telegram Bot API channel."""

    enabled: bool = False
    bot_token: SecretStr = SecretStr("")
    chat_id: str = ""
    timeout_secs: float = 5.0


class SmsConfig(BaseModel):
    """Twilio SMS channel."""

    enabled: bool = False
    account_sid: str = ""
    auth_token: SecretStr = SecretStr("")
    from_number: str = "+1000000000"
    to_number: str = ""
    api_url: str = ""
    timeout_secs: float = 15.0
    retries: int = 2
    backoff_secs: float = 2.0


class WebhookConfig(BaseModel):
    """Generic HTTP POST webhook channel."""

    enabled: bool = False
    url: SecretStr = SecretStr("")
    timeout_secs: float = 15.0
    retries: int = 2
    backoff_base_secs: float = 2.0
    jitter_max_ms: int = 300
    extra_headers: dict[str, str] = {}
    hmac_secret: SecretStr = SecretStr("")


class WhatsAppConfig(BaseModel):
    """Twilio WhatsApp channel."""

    enabled: bool = False
    account_sid: str = ""
    auth_token: SecretStr = SecretStr("")
    from_number: str = "whatsapp:+14155238886"
    to_number: str = ""
    api_url: str = ""
    template: str = "[{type}] {message}"
    timeout_secs: float = 10.0


class ChannelsConfig(BaseModel):
    """Container for all delivery channel configurations."""

    dry_run: bool = False
    breaker_threshold: int = 3
    email: EmailConfig = EmailConfig()
    slack: SlackConfig = SlackConfig()
    telegram: TelegramConfig = TelegramConfig()
    sms: SmsConfig = SmsConfig()
    webhook: WebhookConfig = WebhookConfig()
    whatsapp: WhatsAppConfig = WhatsAppConfig()


class Settings(BaseModel):
    """Root settings container."""

    logging: LoggingConfig = LoggingConfig()
    storage: StorageConfig = StorageConfig()
    validation: ValidationConfig = ValidationConfig()
    debounce: DebounceConfig = DebounceConfig()
    queue: QueueConfig = QueueConfig()
    processors: ProcessorsConfig = ProcessorsConfig()
    channels: ChannelsConfig = ChannelsConfig()


# Environment key → settings path. A truthy value for a channel credential
# also enables that channel (see _ENABLING_KEYS).
_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
    "LOG_DIR": ("storage", "state_dir"),
    "STORAGE_BACKEND": ("storage", "backend"),
    "DEBOUNCE_SECONDS": ("debounce", "window_secs"),
    "LOCK_TIMEOUT": ("debounce", "lock_timeout_secs"),
    "ALERT_TIMEOUT": ("processors", "timeout_secs"),
    "DRY_RUN": ("channels", "dry_run"),
    "MAX_CONSECUTIVE_FAILS": ("channels", "breaker_threshold"),
    "ALERT_EMAIL_FROM": ("channels", "email", "from_addr"),
    "ALERT_EMAIL_TO": ("channels", "email", "to_addr"),
    "SMTP_SERVER": ("channels", "email", "smtp_server"),
    "SMTP_PORT": ("channels", "email", "smtp_port"),
    "SLACK_WEBHOOK_URL": ("channels", "slack", "webhook_url"),
    "SLACK_CHANNEL": ("channels", "slack", "channel"),
    "SLACK_TEMPLATE": ("channels", "slack", "template"),
    "TELEGRAM_BOT_TOKEN": ("channels", "telegram", "bot_token"),
    "TELEGRAM_CHAT_ID": ("channels", "telegram", "chat_id"),
    "TWILIO_SID": ("channels", "sms", "account_sid"),
    "TWILIO_TOKEN": ("channels", "sms", "auth_token"),
    "SMS_FROM": ("channels", "sms", "from_number"),
    "SMS_TO": ("channels", "sms", "to_number"),
    "SMS_API_URL": ("channels", "sms", "api_url"),
    "SMS_RETRIES": ("channels", "sms", "retries"),
    "SMS_BACKOFF_SECONDS": ("channels", "sms", "backoff_secs"),
    "GENERIC_WEBHOOK_URL": ("channels", "webhook", "url"),
    "WEBHOOK_TIMEOUT": ("channels", "webhook", "timeout_secs"),
    "WEBHOOK_RETRIES": ("channels", "webhook", "retries"),
    "WEBHOOK_BACKOFF_BASE": ("channels", "webhook", "backoff_base_secs"),
    "WEBHOOK_BACKOFF_JITTER_MAX": ("channels", "webhook", "jitter_max_ms"),
    "WEBHOOK_EXTRA_HEADERS": ("channels", "webhook", "extra_headers"),
    "WEBHOOK_HMAC_SECRET": ("channels", "webhook", "hmac_secret"),
    "WA_FROM": ("channels", "whatsapp", "from_number"),
    "WA_TO": ("channels", "whatsapp", "to_number"),
    "WA_TIMEOUT": ("channels", "whatsapp", "timeout_secs"),
    "WA_TEMPLATE": ("channels", "whatsapp", "template"),
}

_ENABLING_KEYS: dict[str, str] = {
    "ALERT_EMAIL_TO": "email",
    "SLACK_WEBHOOK_URL": "slack",
    "TELEGRAM_BOT_TOKEN": "telegram",
    "SMS_TO": "sms",
    "GENERIC_WEBHOOK_URL": "webhook",
    "WA_TO": "whatsapp",
}


def _set_path(data: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = data
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> None:
    for key, path in _ENV_OVERRIDES.items():
        raw = environ.get(key)
        if raw is None or raw == "":
            continue
        value: Any = raw
        if key == "WEBHOOK_EXTRA_HEADERS":
            try:
                value = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(value, dict):
                continue
        _set_path(data, path, value)
        if key == "TWILIO_SID" or key == "TWILIO_TOKEN":
            # WhatsApp goes through the same Twilio account.
            _set_path(data, ("channels", "whatsapp", path[-1]), value)
        channel = _ENABLING_KEYS.get(key)
        if channel is not None:
            _set_path(data, ("channels", channel, "enabled"), True)


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from a YAML file, apply environment overrides, cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _apply_env_overrides(data, os.environ if environ is None else environ)

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
