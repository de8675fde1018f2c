"""Sync orchestrator: the single entry point for rank sync runs.

Runs are triggered once at startup and then by a recurring timer. Both go
through ``run_sync``, which allows only one run at a time; a trigger that
arrives while a run is in flight is dropped, not queued. There is no retry
inside a run: the next timer tick is the retry.
"""

import asyncio
import logging
from typing import Optional, Set

from ..config import Config
from ..core.entities import SyncRunReport, utcnow
from ..core.enums import SyncRunStatus
from ..adapters.database.manager import DatabaseManager
from ..adapters.observability import get_metrics_provider
from .account_sync import AccountSynchronizer
from .batch_scheduler import BatchScheduler

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Owns the single-flight guard and the recurring sync timer."""

    def __init__(
        self,
        database: DatabaseManager,
        synchronizer: AccountSynchronizer,
        scheduler: BatchScheduler,
        config: Config,
    ):
        """Initialize the orchestrator.

        Args:
            database: Account directory the run reads from
            synchronizer: Per-account sync procedure
            scheduler: Batch scheduler pacing the accounts
            config: Application configuration
        """
        self.database = database
        self.synchronizer = synchronizer
        self.scheduler = scheduler
        self.config = config

        self.sync_interval_seconds = config.sync_interval_seconds

        # Held for the whole duration of a run
        self._run_guard = asyncio.Lock()

        # Timer state
        self._is_scheduled = False
        self._timer_task: Optional[asyncio.Task] = None
        self._run_tasks: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        """True while a sync run is in flight."""
        return self._run_guard.locked()

    @property
    def is_scheduled(self) -> bool:
        return self._is_scheduled

    async def run_sync(self, identity_only: bool = False) -> SyncRunReport:
        """Run one full sync pass over every tracked account.

        Returns immediately with a COLLISION report if another run is active.
        Per-account failures are counted, never raised. A failure to read the
        account list ends the run with a FAILED report.
        """
        metrics = get_metrics_provider()

        if self._run_guard.locked():
            logger.warning("Rank sync already in progress, skipping this trigger")
            if metrics:
                metrics.record_sync_run(SyncRunStatus.COLLISION.value)
            return SyncRunReport.collision()

        async with self._run_guard:
            report = SyncRunReport(status=SyncRunStatus.COMPLETED)
            mode = "identity-only" if identity_only else "full"
            logger.info(f"Starting {mode} rank sync")

            try:
                accounts = await self.database.get_all_accounts()
            except Exception as e:
                logger.error(f"Rank sync failed, could not read accounts: {e}")
                report.status = SyncRunStatus.FAILED
                report.error = str(e)
                report.finished_at = utcnow()
                if metrics:
                    metrics.record_sync_run(report.status.value, report.duration_seconds)
                return report

            summary = await self.scheduler.run(
                accounts,
                lambda account: self.synchronizer.sync(account, identity_only=identity_only),
            )

            report.results = summary.results
            report.batch_count = summary.batch_count
            report.finished_at = utcnow()

            logger.info(
                f"Rank sync finished: {len(accounts)} accounts in {report.batch_count} batches, "
                f"{report.synced} synced, {report.unranked} unranked, {report.failed} failed "
                f"({report.duration_seconds:.1f}s)"
            )
            if metrics:
                metrics.record_sync_run(report.status.value, report.duration_seconds)

            return report

    # Recurring trigger

    async def start_schedule(self, run_on_startup: bool = True) -> None:
        """Fire a run now (optionally) and then every sync_interval_seconds."""
        if self._is_scheduled:
            logger.warning("Sync schedule is already running")
            return

        self._is_scheduled = True
        if run_on_startup:
            self._trigger("startup")
        self._timer_task = asyncio.create_task(self._timer_loop())

        logger.info(f"Started rank sync schedule with {self.sync_interval_seconds}s intervals")

    async def stop_schedule(self) -> None:
        """Stop the timer and cancel any run in flight."""
        if not self._is_scheduled:
            logger.warning("Sync schedule is not running")
            return

        self._is_scheduled = False

        tasks = list(self._run_tasks)
        if self._timer_task and not self._timer_task.done():
            tasks.append(self._timer_task)

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._timer_task = None
        self._run_tasks.clear()
        logger.info("Stopped rank sync schedule")

    def _trigger(self, source: str) -> asyncio.Task:
        """Start a run in the background; the guard decides whether it does anything."""
        logger.debug(f"Rank sync triggered by {source}")
        task = asyncio.create_task(self._run_triggered(source))
        self._run_tasks.add(task)
        task.add_done_callback(self._run_tasks.discard)
        return task

    async def _run_triggered(self, source: str) -> Optional[SyncRunReport]:
        try:
            return await self.run_sync()
        except asyncio.CancelledError:
            logger.info(f"Rank sync ({source}) cancelled")
            raise
        except Exception as e:
            logger.error(f"Rank sync ({source}) failed: {e}")
            return None

    async def _timer_loop(self) -> None:
        """Fire a run every interval, regardless of whether the last one finished."""
        logger.info("Rank sync timer started")

        while self._is_scheduled:
            try:
                await asyncio.sleep(self.sync_interval_seconds)
                self._trigger("timer")
            except asyncio.CancelledError:
                logger.info("Rank sync timer cancelled")
                break

        logger.info("Rank sync timer stopped")
