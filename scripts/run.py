#!/usr/bin/env python3
"""Healthcheck service entrypoint — wires the checks, scheduler and status API.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from healthcheck.api.server import start_status_server
from healthcheck.core.config import load_settings
from healthcheck.core.logging import setup_logging
from healthcheck.factory import create_health_stack
from healthcheck.health.notifications import InMemoryNotificationSink

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the scheduler and status API and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    stack = create_health_stack(settings)

    logger.info(
        "healthcheck_starting",
        targets=sorted(stack.scheduler.checks),
        config_errors=len(stack.config_errors),
        email=stack.escalator is not None,
    )

    if not stack.scheduler.checks and not settings.server.enabled:
        logger.error("no_targets_enabled")
        print(
            "No targets enabled. Enable the host (host.enabled) or at least one "
            "provider (providers.<id>.enabled) in config/settings.yaml.",
            file=sys.stderr,
        )
        await stack.close()
        return 1

    # ── Start everything ─────────────────────────────────────────
    await stack.scheduler.start()

    runner = None
    if settings.server.enabled:
        sink = stack.sink if isinstance(stack.sink, InMemoryNotificationSink) else None
        runner = await start_status_server(
            stack.board,
            sink,
            host=settings.server.host,
            port=settings.server.port,
            username=settings.server.username or None,
            password=settings.server.password.get_secret_value() or None,
        )

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("healthcheck_shutting_down")

    if runner is not None:
        await runner.cleanup()
    await stack.close()

    logger.info("healthcheck_stopped")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the host and provider healthcheck service.",
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
