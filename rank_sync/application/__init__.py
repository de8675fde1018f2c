"""Application layer for the rank sync service."""

from .account_sync import AccountSynchronizer
from .batch_scheduler import BatchScheduler, BatchRunSummary, partition
from .sync_orchestrator import SyncOrchestrator

__all__ = [
    "AccountSynchronizer",
    "BatchScheduler",
    "BatchRunSummary",
    "partition",
    "SyncOrchestrator",
]
