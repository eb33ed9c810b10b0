"""Command-line entry point.

Usage:
    booking-pulse serve                       # Run the server (config/config.yaml)
    booking-pulse serve --port 8080           # Override the listen port
    booking-pulse watch --url http://host:3000
    booking-pulse --config other.yaml serve
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from .config import get_validated_config, load_config, set_config_value
from .config_schema import AppConfig

logger = logging.getLogger(__name__)


def configure_logging(config: AppConfig) -> None:
    """Configure the root logger from the logging section."""
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
        stream=sys.stdout,
        force=True,
    )


async def run_watch(config: AppConfig) -> None:
    """Poll the server and play new bookings on a logging view until cancelled."""
    from .playback.poller import BookingPoller
    from .playback.queue import AnimationQueueProcessor
    from .playback.surface import LoggingMapSurface

    processor = AnimationQueueProcessor.from_config(LoggingMapSurface(), config.playback)
    poller = BookingPoller.from_config(config.poller, processor.enqueue)

    await processor.start()
    await poller.start()
    try:
        await asyncio.Event().wait()
    finally:
        await poller.stop()
        await processor.shutdown()
        logger.info("Played %d bookings", processor.played_count)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Live daily statistics for confirmed bookings"
    )
    parser.add_argument(
        "--config", default=None, help="Path to config file (default: config/config.yaml)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the ingestion and dashboard server")
    serve.add_argument("--host", help="Override server.host")
    serve.add_argument("--port", type=int, help="Override server.port")

    watch = subparsers.add_parser("watch", help="Poll a server and play new bookings")
    watch.add_argument("--url", help="Override poller.base_url")

    args = parser.parse_args(argv)

    load_dotenv()
    load_config(args.config)

    if args.command == "serve":
        if args.host:
            set_config_value("server.host", args.host)
        if args.port:
            set_config_value("server.port", args.port)
    elif args.url:
        set_config_value("poller.base_url", args.url)

    config = get_validated_config()
    configure_logging(config)

    if args.command == "serve":
        from .dashboard.server import run_server
        run_server(config)
        return

    try:
        asyncio.run(run_watch(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
