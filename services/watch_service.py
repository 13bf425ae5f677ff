import asyncio
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

import aiohttp

from core.config import settings
from core.exceptions import (
    ArtifactNotFoundException,
    InvalidResponseException,
    RetriesExhaustedException,
    WatcherException,
)
from core.interfaces import IArtifactRepository, INotificationService
from core.logger import get_logger
from core.performance import get_performance_monitor
from models.fetch import ClassifiedFailure
from models.outcome import (
    Changed,
    CycleOutcome,
    NewTarget,
    NoChange,
    RecoverableFailure,
    TransportTimeout,
)
from models.target import Target
from repositories.artifact_repo import ArtifactRepository
from services.diff.generator import DiffGenerator
from services.diff.renderer import build_metadata
from services.notification_service import NotificationService
from services.watch.retry import RetryController
from services.watch.transformer import ContentTransformer

logger = get_logger(__name__)


class WatchService:
    """
    Runs watch cycles: fetch with retries, transform, compare with the
    stored artifact, diff and persist.
    """

    def __init__(
        self,
        repo: Optional[IArtifactRepository] = None,
        notifier: Optional[INotificationService] = None,
        retry: Optional[RetryController] = None,
        transformer: Optional[ContentTransformer] = None,
        diff_generator: Optional[DiffGenerator] = None,
        parallel_checks: Optional[int] = None,
        ignored_status_codes: Optional[Iterable[int]] = None,
        dry_run: bool = False,
    ):
        self.repo = repo or ArtifactRepository()
        self.notifier = notifier or NotificationService()
        self.retry = retry or RetryController()
        self.transformer = transformer or ContentTransformer()
        self.diff_generator = diff_generator or DiffGenerator()
        self.ignored_status_codes = set(
            ignored_status_codes
            if ignored_status_codes is not None
            else settings.NO_ERROR_NOTIFY_ON_STATUS_CODE
        )
        self.dry_run = dry_run

        self.semaphore = asyncio.Semaphore(parallel_checks or settings.PARALLEL_CHECKS)
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    def _should_notify(self, status_code: int, target: Target) -> bool:
        if status_code in self.ignored_status_codes:
            return False
        return status_code not in target.no_error_notify_on_status_code

    async def run_cycle(self, session: aiohttp.ClientSession, target: Target) -> CycleOutcome:
        """
        Runs one cycle for a target.

        Only the returned outcome describes what happened; configuration,
        transform, diff-tool and database errors propagate and nothing is
        persisted for them.
        """
        try:
            result = await self.retry.fetch_with_retries(session, target)
        except RetriesExhaustedException as e:
            if e.is_timeout:
                logger.info("[WATCH] Timed out on every attempt, ignoring", context={"name": target.name})
                return TransportTimeout()
            return self._failure(e, target)
        except InvalidResponseException as e:
            return self._failure(e, target)

        try:
            content = self.transformer.transform(result, target)
        except InvalidResponseException as e:
            return self._failure(e, target)

        try:
            artifact = self.repo.get_artifact(target.name, target.url)
        except ArtifactNotFoundException:
            logger.info("[WATCH] New target, storing first artifact", context={"name": target.name})
            self.repo.insert_artifact(target.name, target.url, content)
            return NewTarget(artifact=content)

        if artifact.content == content:
            logger.debug("[WATCH] No change", context={"name": target.name})
            self.repo.update_artifact(artifact.id, content)
            return NoChange()

        diff = await self.diff_generator.generate(
            artifact.content.decode("utf-8", errors="replace"),
            content.decode("utf-8", errors="replace"),
        )
        self.repo.update_artifact(artifact.id, content)

        # git ignores whitespace-only changes
        if diff.is_empty():
            logger.debug("[WATCH] Only whitespace changed", context={"name": target.name})
            return NoChange()

        metadata = build_metadata(target, result, artifact.last_fetch)
        logger.info(
            f"[WATCH] Change detected ({len(diff.lines)} diff lines)",
            context={"name": target.name},
        )
        return Changed(diff=diff, metadata=metadata)

    def _failure(self, exc: InvalidResponseException, target: Target) -> RecoverableFailure:
        failure = exc.failure
        notify = self._should_notify(failure.status_code, target)
        logger.error(
            f"[WATCH] {failure.message}",
            context={"name": target.name, "status": failure.status_code, "notify": notify},
        )
        return RecoverableFailure(failure=failure, notify=notify)

    async def handle_target(
        self, session: aiohttp.ClientSession, target: Target
    ) -> Optional[CycleOutcome]:
        """
        Runs a cycle and dispatches notifications.

        At most one cycle per target runs at a time; a target whose previous
        cycle is still running is skipped and None is returned. Errors are
        logged and reported, never raised.
        """
        lock = self._locks[target.identity]
        if lock.locked():
            logger.warning("[WATCH] Previous cycle still running, skipping", context={"name": target.name})
            return None

        monitor = get_performance_monitor()
        async with lock:
            async with self.semaphore:
                try:
                    with monitor.measure("watch_cycle", {"name": target.name}):
                        outcome = await self.run_cycle(session, target)
                except WatcherException as e:
                    logger.error(f"[WATCH] Cycle failed: {e}", context={"name": target.name})
                    monitor.record_outcome(target.name, "error")
                    await self._notify_failure(session, target, ClassifiedFailure(message=str(e)))
                    return None

            monitor.record_outcome(target.name, outcome.kind)

            if isinstance(outcome, Changed):
                await self._notify_change(session, target, outcome)
            elif isinstance(outcome, RecoverableFailure) and outcome.notify:
                await self._notify_failure(session, target, outcome.failure)

            return outcome

    async def _notify_change(self, session, target: Target, outcome: Changed) -> None:
        if self.dry_run:
            logger.info("[WATCH] Dry run, not sending change notification", context={"name": target.name})
            return
        await self.notifier.notify_change(session, target, outcome.diff, outcome.metadata)

    async def _notify_failure(self, session, target: Target, failure: ClassifiedFailure) -> None:
        if self.dry_run:
            logger.info("[WATCH] Dry run, not sending failure notification", context={"name": target.name})
            return
        await self.notifier.notify_failure(session, target, failure)

    async def run_once(
        self, session: aiohttp.ClientSession, targets: List[Target]
    ) -> Dict[str, Optional[CycleOutcome]]:
        """Processes all enabled targets concurrently."""
        enabled = [t for t in targets if not t.disabled]
        logger.info(f"[WATCH] Checking {len(enabled)} targets...")
        outcomes = await asyncio.gather(*(self.handle_target(session, t) for t in enabled))
        return {target.name: outcome for target, outcome in zip(enabled, outcomes)}

    def prepare(self, targets: List[Target]) -> List[Target]:
        """Purges stored artifacts of removed targets and returns targets never stored."""
        new_targets, deleted = self.repo.prepare(targets)
        logger.info(f"[WATCH] {len(new_targets)} new targets, purged {deleted} removed targets")
        return new_targets
