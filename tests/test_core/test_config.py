"""Tests for src/core/config.py — YAML loading, defaults, env overrides, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from src.core.config import (
    ChannelsConfig,
    DebounceConfig,
    LoggingConfig,
    QueueConfig,
    Settings,
    StorageConfig,
    get_settings,
    load_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


def _missing(tmp_path: Path) -> Path:
    return tmp_path / "nope.yaml"


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_storage_config(self) -> None:
        cfg = StorageConfig()
        assert cfg.backend == "file"
        assert cfg.state_dir == "/var/log/hostwatch"
        assert cfg.max_backups == 7
        assert cfg.audit_max_records == 100
        assert cfg.audit_keep_records == 50

    def test_default_debounce_and_queue(self) -> None:
        assert DebounceConfig().window_secs == 300.0
        assert DebounceConfig().key_by_server is False
        q = QueueConfig()
        assert q.version == "0.3.1"
        assert q.enqueue_lock_timeout_secs == 5.0
        assert q.drain_lock_timeout_secs == 10.0
        assert q.promotion_age_secs == 3600.0

    def test_channels_disabled_by_default(self) -> None:
        cfg = ChannelsConfig()
        assert cfg.dry_run is False
        assert cfg.breaker_threshold == 3
        for name in ("email", "slack", "telegram", "sms", "webhook", "whatsapp"):
            assert getattr(cfg, name).enabled is False

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.validation.required_fields == ["timestamp", "server_id"]
        assert s.processors.enabled == ["cpu", "memory", "disk"]
        assert s.processors.timeout_secs == 30.0
        assert s.processors.disk.critical == 90.0


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "storage": {"backend": "memory"},
            "debounce": {"window_secs": 60},
            "processors": {"disk": {"warning": 80, "critical": 95}},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        s = load_settings(config_file, environ={})
        assert s.storage.backend == "memory"
        assert s.debounce.window_secs == 60.0
        assert s.processors.disk.warning == 80.0
        assert s.processors.disk.critical == 95.0
        assert s.logging.level == "DEBUG"
        assert s.logging.format == "console"

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        s = load_settings(_missing(tmp_path), environ={})
        assert s.storage.backend == "file"

    def test_empty_yaml_returns_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        s = load_settings(config_file, environ={})
        assert s.debounce.window_secs == 300.0

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        loaded = load_settings(_missing(tmp_path), environ={})
        assert get_settings() is loaded


class TestEnvOverrides:
    def test_scalar_overrides(self, tmp_path: Path) -> None:
        env = {
            "LOG_LEVEL": "WARNING",
            "LOG_DIR": str(tmp_path),
            "DEBOUNCE_SECONDS": "30",
            "LOCK_TIMEOUT": "2",
            "MAX_CONSECUTIVE_FAILS": "5",
            "ALERT_TIMEOUT": "12",
            "DRY_RUN": "1",
        }
        s = load_settings(_missing(tmp_path), environ=env)
        assert s.logging.level == "WARNING"
        assert s.storage.state_dir == str(tmp_path)
        assert s.debounce.window_secs == 30.0
        assert s.debounce.lock_timeout_secs == 2.0
        assert s.channels.breaker_threshold == 5
        assert s.processors.timeout_secs == 12.0
        assert s.channels.dry_run is True

    def test_env_wins_over_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"debounce": {"window_secs": 60}}))
        s = load_settings(config_file, environ={"DEBOUNCE_SECONDS": "10"})
        assert s.debounce.window_secs == 10.0

    def test_credential_enables_channel(self, tmp_path: Path) -> None:
        env = {
            "SLACK_WEBHOOK_URL": "https://hooks.slack.test/T/B/X",
            "GENERIC_WEBHOOK_URL": "https://example.test/hook",
        }
        s = load_settings(_missing(tmp_path), environ=env)
        assert s.channels.slack.enabled is True
        assert s.channels.webhook.enabled is True
        assert s.channels.telegram.enabled is False
        assert s.channels.slack.webhook_url.get_secret_value() == env["SLACK_WEBHOOK_URL"]

    def test_empty_value_ignored(self, tmp_path: Path) -> None:
        s = load_settings(_missing(tmp_path), environ={"SLACK_WEBHOOK_URL": ""})
        assert s.channels.slack.enabled is False

    def test_twilio_credentials_shared_with_whatsapp(self, tmp_path: Path) -> None:
        env = {"TWILIO_SID": "AC123", "TWILIO_TOKEN": "tok", "WA_TO": "whatsapp:+15550001111"}
        s = load_settings(_missing(tmp_path), environ=env)
        assert s.channels.sms.account_sid == "AC123"
        assert s.channels.whatsapp.account_sid == "AC123"
        assert s.channels.whatsapp.auth_token.get_secret_value() == "tok"
        assert s.channels.whatsapp.enabled is True
        assert s.channels.sms.enabled is False

    def test_extra_headers_parsed_as_json(self, tmp_path: Path) -> None:
        env = {"WEBHOOK_EXTRA_HEADERS": '{"X-Team": "ops"}'}
        s = load_settings(_missing(tmp_path), environ=env)
        assert s.channels.webhook.extra_headers == {"X-Team": "ops"}

    def test_bad_extra_headers_ignored(self, tmp_path: Path) -> None:
        env = {"WEBHOOK_EXTRA_HEADERS": "not json"}
        s = load_settings(_missing(tmp_path), environ=env)
        assert s.channels.webhook.extra_headers == {}


class TestSecretStr:
    """Secret fields should not leak in repr/str."""

    def test_secrets_hidden_in_repr(self) -> None:
        s = Settings(
            channels=ChannelsConfig.model_validate(
                {"telegram": {"bot_token": "super-secret"}}
            )
        )
        assert "super-secret" not in repr(s)
        assert s.channels.telegram.bot_token.get_secret_value() == "super-secret"
