#!/usr/bin/env python3
"""
Rank Sync Service - Main entry point

This service keeps the roster's Riot accounts and rank history in step with
the Riot Games API: one sync at startup, then one every sync interval.
"""
import asyncio
import logging
import signal
import sys
import argparse

import structlog

from rank_sync.config import Config, ConfigurationError, init_config
from rank_sync.core.enums import SyncRunStatus
from rank_sync.service import RankSyncService


logger = logging.getLogger(__name__)

shared_processors = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def configure_logging(config: Config) -> None:
    """Route stdlib and structlog records through one handler.

    LOG_FORMAT=json renders one JSON object per line, text uses the
    structlog console renderer.
    """
    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False, pad_event=0)

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.log_level)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Set httpx and httpcore loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def load_config() -> Config:
    """Load configuration, exiting with status 1 if a required setting is missing."""
    try:
        return init_config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Refusing to start: {e}")
        sys.exit(1)


async def run_once(config: Config, identity_only: bool = False) -> int:
    """Run one sync pass and return the process exit code."""
    service = RankSyncService(config)
    try:
        report = await service.run_once(identity_only=identity_only)
    finally:
        await service.stop()

    logger.info(f"Sync run finished: {report}")
    return 1 if report.status == SyncRunStatus.FAILED else 0


async def main(config: Config):
    """Main entry point for the rank sync service."""
    logger.info("Starting rank sync service")

    # Create and start the service
    service = RankSyncService(config)

    # Handle graceful shutdown
    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}, shutting down gracefully...")
        asyncio.create_task(service.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await service.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Service failed with error: {e}")
        sys.exit(1)
    finally:
        await service.stop()
        logger.info("Rank sync service stopped")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank Sync Service")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sync pass and exit instead of staying on the timer",
    )
    parser.add_argument(
        "--identity-only",
        action="store_true",
        help="Only refresh Riot IDs; implies --once",
    )
    return parser.parse_args(argv)


def cli(argv=None) -> None:
    args = parse_args(argv)

    config = load_config()
    configure_logging(config)

    if args.once or args.identity_only:
        sys.exit(asyncio.run(run_once(config, identity_only=args.identity_only)))

    asyncio.run(main(config))


if __name__ == "__main__":
    cli()
