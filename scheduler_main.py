"""
Main entry point for the catalog stock monitor.

This script starts the liveness probe and the interval scheduler, or runs a
single monitor cycle with --once.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import structlog
import uvicorn

from api.main import create_app
from catalog.reader import HttpCatalogReader
from catalog.snapshot_store import SnapshotStore
from scheduler.alerting import NotificationDispatcher, TelegramChannel
from scheduler.classifier import Classifier
from scheduler.report_generator import ReportGenerator
from scheduler.scheduler_service import RunCoordinator, SchedulerService
from utilities.config import MonitorConfig, config
from utilities.exceptions import ConfigurationError
from utilities.logger import setup_logging


def build_service(settings: MonitorConfig) -> SchedulerService:
    """Wire every pipeline component from the settings."""
    scheduler_config = settings.to_scheduler_config()
    notifier_config = scheduler_config.notifier

    report_generator = ReportGenerator(notifier_config, scheduler_config.timezone)
    channel = TelegramChannel(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        api_base=settings.telegram_api_base,
        timeout=notifier_config.request_timeout,
        link_preview=notifier_config.link_preview
    )
    coordinator = RunCoordinator(
        config=scheduler_config,
        reader=HttpCatalogReader(scheduler_config.reader),
        store=SnapshotStore(settings.get_snapshot_file_path()),
        dispatcher=NotificationDispatcher(notifier_config, channel, report_generator),
        classifier=Classifier(),
        report_generator=report_generator
    )
    return SchedulerService(scheduler_config, coordinator)


async def run_daemon(service: SchedulerService, settings: MonitorConfig) -> None:
    """Run the scheduler until the process is asked to stop."""
    logger = structlog.get_logger(__name__)
    service.start()
    try:
        if settings.enable_liveness:
            server = uvicorn.Server(uvicorn.Config(
                create_app(service.coordinator),
                host=settings.host,
                port=settings.port,
                log_level=settings.log_level.lower(),
                access_log=False
            ))
            logger.info("Liveness probe listening", host=settings.host, port=settings.port)
            # Returns once uvicorn has handled SIGINT/SIGTERM
            await server.serve()
        else:
            await asyncio.Event().wait()
    finally:
        service.stop()


async def main():
    """Main function to start the stock monitor."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = structlog.get_logger(__name__)

    run_once = False
    if len(sys.argv) > 1:
        if sys.argv[1] == '--once':
            run_once = True
        else:
            print(f"Unknown argument: {sys.argv[1]}")
            print("Usage: python scheduler_main.py [--once]")
            sys.exit(1)

    try:
        config.require_telegram()
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(1)

    service = build_service(config)
    logger.info(
        "Stock monitor configured",
        collections=[c.key for c in config.collections],
        interval_minutes=config.check_interval_minutes,
        snapshot_file=config.snapshot_file,
        run_once=run_once
    )

    if run_once:
        result = await service.run_once()
        logger.info("Run once mode completed", **result)
        sys.exit(0 if result.get('success') else 1)

    try:
        await run_daemon(service, config)
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received interrupt, shutting down...")


def main_sync():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    main_sync()
