import asyncio
import signal
import sys
from typing import List, Optional

# 1. Setup Logging First (to capture config errors)
from core.logger import setup_logging, get_logger, set_level

setup_logging()
logger = get_logger(__name__)

# 2. Load Config
try:
    from core.config import settings
except Exception as e:
    logger.critical(f"Failed to load configuration: {e}", exc_info=True)
    sys.exit(1)

from core.database import Database
from core.exceptions import ConfigurationException, WatcherException
from core.performance import get_performance_monitor
from models.target import Target
from repositories.target_repo import TargetRepository
from services.diff.generator import is_git_installed
from services.watch.fetcher import WatchFetcher
from services.watch_service import WatchService


class Watcher:
    def __init__(self, target_name: Optional[str] = None, dry_run: bool = False):
        self.target_name = target_name
        self.targets_repo = TargetRepository()
        self.fetcher = WatchFetcher()
        self.service: Optional[WatchService] = None
        self.targets: List[Target] = []
        self.dry_run = dry_run
        self._tasks: List[asyncio.Task] = []

    async def validate_startup(self) -> bool:
        """Validate system requirements before starting"""
        logger.info("=" * 60)
        logger.info("Site Watcher - Starting Up")
        logger.info("=" * 60)

        validation_errors = settings.validate_all()
        for msg in validation_errors:
            if "❌" in msg:
                logger.critical(msg)
            else:
                logger.warning(msg)

        if any("❌" in msg for msg in validation_errors):
            logger.critical("Configuration validation failed")
            return False

        if not await is_git_installed():
            logger.critical("git is not installed or not in PATH")
            return False

        try:
            Database.get_client()
            if not Database.health_check():
                logger.critical("Database health check failed")
                return False
        except WatcherException as e:
            logger.critical(f"Database connection failed: {e}")
            return False

        try:
            targets = self.targets_repo.get_enabled_targets(self.target_name)
        except ConfigurationException as e:
            logger.critical(f"Could not load targets: {e}")
            return False

        if not targets:
            logger.critical(f"No enabled targets found (filter: {self.target_name or 'none'})")
            return False
        self.targets = targets

        logger.info(f"Targets: {len(self.targets)}")
        logger.info(f"Default Interval: {settings.SCRAPE_INTERVAL}s")
        logger.info(f"Parallel Checks: {settings.PARALLEL_CHECKS}")
        logger.info(f"Log Level: {settings.LOG_LEVEL}")
        logger.info("[OK] Startup validation passed")
        return True

    def prepare(self) -> None:
        self.service = WatchService(dry_run=self.dry_run)
        # Purge against the full configuration, not the --target filter
        self.service.prepare(self.targets_repo.get_all_targets())

    async def run_once(self) -> None:
        session = await self.fetcher.create_session()
        async with session:
            await self.service.run_once(session, self.targets)
        get_performance_monitor().log_summary()

    async def watch_target(self, session, target: Target) -> None:
        interval = target.interval or settings.SCRAPE_INTERVAL
        while True:
            try:
                await self.service.handle_target(session, target)
            except Exception as e:
                logger.critical(
                    f"Unexpected error: {e}", context={"name": target.name}, exc_info=True
                )
            logger.debug(f"Sleeping for {interval}s...", context={"name": target.name})
            await asyncio.sleep(interval)

    async def start(self) -> None:
        # Windows-compatible signal handling
        try:
            loop = asyncio.get_running_loop()
            if sys.platform != "win32":
                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, self.stop)
            else:
                signal.signal(signal.SIGINT, lambda s, f: self.stop())
                signal.signal(signal.SIGTERM, lambda s, f: self.stop())
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.warning(f"Could not set up signal handlers: {e}")

        logger.info("Watcher started. Press Ctrl+C to stop.")
        logger.info("=" * 60)

        session = await self.fetcher.create_session()
        async with session:
            self._tasks = [
                asyncio.create_task(self.watch_target(session, target), name=target.name)
                for target in self.targets
            ]
            try:
                await asyncio.gather(*self._tasks)
            except asyncio.CancelledError:
                logger.info("Watch loops cancelled")

        get_performance_monitor().log_summary()
        logger.info("Watcher stopped cleanly")

    def stop(self):
        if any(not task.done() for task in self._tasks):
            logger.info("=" * 60)
            logger.info("Stopping Watcher...")
            logger.info("=" * 60)
            for task in self._tasks:
                task.cancel()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Site Watcher")
    parser.add_argument("--once", action="store_true", help="Check every target once and exit")
    parser.add_argument("--target", type=str, help="Only check the target with this name")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug logging, notifications are logged instead of sent",
    )
    args = parser.parse_args()

    if args.debug:
        set_level("DEBUG")

    watcher = Watcher(target_name=args.target, dry_run=args.debug)
    exit_code = 0

    try:
        if not asyncio.run(watcher.validate_startup()):
            logger.critical("Startup validation failed. Exiting...")
            sys.exit(1)
        watcher.prepare()

        if args.once:
            logger.info("Running in --once mode")
            asyncio.run(watcher.run_once())
            logger.info("Run completed successfully")
        else:
            asyncio.run(watcher.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except WatcherException as e:
        logger.critical(f"Run failed: {e}", exc_info=True)
        exit_code = 1

    sys.exit(exit_code)
