"""Main service class for rank sync."""

import asyncio
import logging
from typing import Optional

from rank_sync.config import Config
from rank_sync.core.entities import SyncRunReport
from rank_sync.adapters.database.manager import DatabaseManager
from rank_sync.adapters.riot_api.client import RiotAPIClient
from rank_sync.adapters.observability import initialize_metrics, shutdown_metrics
from rank_sync.application.account_sync import AccountSynchronizer
from rank_sync.application.batch_scheduler import BatchScheduler
from rank_sync.application.sync_orchestrator import SyncOrchestrator


logger = logging.getLogger(__name__)


class RankSyncService:
    """Wires the infrastructure together and drives the sync orchestrator.

    Components are created directly from the config; tests may assign the
    private attributes before calling start() or run_once().
    """

    def __init__(self, config: Config):
        """Initialize the rank sync service.

        Args:
            config: Service configuration
        """
        self.config = config
        self._running = False
        self._initialized = False

        # Infrastructure components
        self._database_manager: Optional[DatabaseManager] = None
        self._riot_api_client: Optional[RiotAPIClient] = None
        self._orchestrator: Optional[SyncOrchestrator] = None
        self._metrics_provider = None

    @property
    def orchestrator(self) -> Optional[SyncOrchestrator]:
        return self._orchestrator

    async def start(self):
        """Start the service: sync now, then on every timer tick until stopped."""
        logger.info("Starting rank sync service")
        self._running = True

        try:
            await self._initialize_infrastructure()

            await self._orchestrator.start_schedule(run_on_startup=self.config.sync_on_startup)

            while self._running:
                await asyncio.sleep(1)

        except Exception:
            self._running = False
            raise

    async def run_once(self, identity_only: bool = False) -> SyncRunReport:
        """Run a single sync pass and return its report."""
        await self._initialize_infrastructure()
        return await self._orchestrator.run_sync(identity_only=identity_only)

    async def stop(self):
        """Stop the rank sync service."""
        logger.info("Stopping rank sync service")
        self._running = False

        if self._orchestrator and self._orchestrator.is_scheduled:
            try:
                await self._orchestrator.stop_schedule()
            except Exception as e:
                logger.error(f"Error stopping sync schedule: {e}")

        await self._cleanup_infrastructure()

        logger.info("Rank sync service stopped")

    async def _initialize_infrastructure(self) -> None:
        """Initialize all infrastructure components."""
        if self._initialized:
            return

        logger.info("Initializing infrastructure components")

        self._metrics_provider = initialize_metrics(self.config)

        if self._database_manager is None:
            self._database_manager = DatabaseManager(self.config)
        await self._database_manager.initialize()

        if self._riot_api_client is None:
            self._riot_api_client = RiotAPIClient(
                self.config.riot_api_key,
                regional_url=self.config.riot_regional_url,
                platform_url=self.config.riot_platform_url,
                request_timeout=self.config.riot_api_timeout_seconds,
                min_request_interval=self.config.riot_min_request_interval_seconds,
            )

        logger.info(
            f"Using Riot API at: {self.config.riot_regional_url} (account), "
            f"{self.config.riot_platform_url} (summoner/league)"
        )

        if self._orchestrator is None:
            synchronizer = AccountSynchronizer(
                database=self._database_manager,
                riot_api=self._riot_api_client,
                ranked_queue_type=self.config.ranked_queue_type,
            )
            scheduler = BatchScheduler(
                batch_size=self.config.sync_batch_size,
                request_delay_seconds=self.config.sync_request_delay_seconds,
                batch_pause_seconds=self.config.sync_batch_pause_seconds,
            )
            self._orchestrator = SyncOrchestrator(
                database=self._database_manager,
                synchronizer=synchronizer,
                scheduler=scheduler,
                config=self.config,
            )

        self._initialized = True
        logger.info("Infrastructure initialization completed")

    async def _cleanup_infrastructure(self) -> None:
        """Clean up all infrastructure components."""
        logger.info("Cleaning up infrastructure components")

        if self._riot_api_client:
            await self._riot_api_client.close()

        if self._database_manager:
            try:
                await self._database_manager.close()
            except Exception as e:
                logger.error(f"Error during database disconnect: {e}")

        shutdown_metrics()
        self._initialized = False

        logger.info("Infrastructure cleanup completed")
