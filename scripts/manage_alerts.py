#!/usr/bin/env python3
"""Alert-management entrypoint — run one cycle for a single metrics event.

Validates the event, runs the metric processors, drains the alert queue and
delivers every pending alert through the enabled channels.

Usage::

    # Inline event
    python scripts/manage_alerts.py '{"timestamp": "2025-01-01T00:00:00Z", ...}'

    # Event from a file, labelled with a context
    python scripts/manage_alerts.py --json event.json --context cron

    # Format and log deliveries without sending anything
    python scripts/manage_alerts.py --json event.json --dry-run

Exit status: 0 on success, 1 for an unreadable or invalid event, 2 when any
channel delivery failed.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import structlog

from src.alerts.exceptions import ValidationError
from src.alerts.factory import create_alert_manager
from src.core.config import load_settings
from src.core.logging import setup_logging
from src.core.types import ManageOutcome

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_DELIVERY_FAILED = 2


def read_event(args: argparse.Namespace) -> str:
    """Return the raw event text from the positional argument or ``--json``.

    Raises:
        OSError: The ``--json`` file is missing or unreadable.
        ValueError: Neither or both sources were given.
    """
    if args.json_file and args.event:
        raise ValueError("pass the event inline or with --json, not both")
    if args.json_file:
        return Path(args.json_file).read_text(encoding="utf-8")
    if args.event:
        return args.event
    raise ValueError("no event given")


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    if args.dry_run:
        settings.channels.dry_run = True
    setup_logging(level=args.log_level)

    try:
        raw = read_event(args)
    except FileNotFoundError:
        logger.error("event_file_not_found", path=args.json_file)
        return EXIT_INVALID
    except PermissionError:
        logger.error("event_file_unreadable", path=args.json_file)
        return EXIT_INVALID
    except (OSError, ValueError) as exc:
        logger.error("event_input_error", error=str(exc))
        return EXIT_INVALID

    manager = create_alert_manager(settings)
    try:
        report = await manager.manage(raw, context=args.context)
    except ValidationError as exc:
        logger.error(
            "event_rejected",
            kind=exc.kind.value,
            field=exc.field,
            detail=exc.detail,
        )
        return EXIT_INVALID
    finally:
        await manager.close()

    for record in report.records:
        if record.suppressed:
            print(f"  {record.type:<8} {record.priority.value:<6} suppressed")
            continue
        for result in record.deliveries:
            print(
                f"  {record.type:<8} {record.priority.value:<6} "
                f"{result.channel:<9} {result.status.value}"
            )

    if report.outcome is ManageOutcome.SUCCESS:
        return EXIT_OK
    return EXIT_DELIVERY_FAILED


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run one alert-management cycle for a metrics event.",
    )
    parser.add_argument(
        "event",
        nargs="?",
        default=None,
        help="Raw event JSON",
    )
    parser.add_argument(
        "--json",
        dest="json_file",
        default=None,
        help="Read the event JSON from this file instead",
    )
    parser.add_argument(
        "--context",
        default="unspecified",
        help="Free-form label recorded with every alert (default: unspecified)",
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
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Format and log deliveries without any network call",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
