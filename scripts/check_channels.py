#!/usr/bin/env python3
"""Channel health check — send a TEST alert through each channel.

Usage::

    # Every enabled channel
    python scripts/check_channels.py

    # Only some channels, 5 s each
    python scripts/check_channels.py --only slack,webhook --timeout 5

    # Verify configuration without sending
    python scripts/check_channels.py --dry-run

Exits non-zero when any checked channel is not OK.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import structlog

from src.alerts.factory import create_state_stores
from src.channels.health import all_healthy, check_channels
from src.channels.registry import build_channel_registry
from src.core.config import load_settings
from src.core.logging import setup_logging

logger = structlog.get_logger(__name__)


def parse_only(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    if args.dry_run:
        settings.channels.dry_run = True
    setup_logging(level=args.log_level)

    only = parse_only(args.only)
    stores = create_state_stores(settings.storage, settings.queue.version)
    registry = build_channel_registry(
        settings.channels,
        failures_store=stores.failures,
        names=only,
        lock_timeout_secs=settings.debounce.lock_timeout_secs,
    )
    if only is None and len(registry) == 0:
        logger.warning("no_channels_enabled")

    try:
        results = await check_channels(registry, only=only, timeout_secs=args.timeout)
    finally:
        await registry.close()

    for health in results:
        print(f"  {health.channel:<10} {health.status.value:<12} {health.detail}")

    return 0 if all_healthy(results) else 1


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Send a test alert through each notification channel.",
    )
    parser.add_argument(
        "--only",
        default=None,
        help="Comma-separated channel names (default: every enabled channel)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=20.0,
        help="Seconds allowed per channel (default: 20)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Check configuration and formatting only",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
