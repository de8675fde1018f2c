"""Batch scheduler that paces per-account syncs under the Riot rate limits.

Accounts are split into contiguous batches. Inside a batch accounts run one
at a time with a short delay between them; between batches the scheduler
sleeps for a long pause. Together the two delays keep the run below both the
short-window and the long-window limits of the API key.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence, TypeVar

from ..core.entities import AccountSyncResult, TrackedAccount
from ..core.enums import AccountOutcome, SyncState

logger = logging.getLogger(__name__)

T = TypeVar("T")

AccountHandler = Callable[[TrackedAccount], Awaitable[AccountSyncResult]]
Sleeper = Callable[[float], Awaitable[None]]


def partition(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """Split items into contiguous batches of at most batch_size."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


@dataclass
class BatchRunSummary:
    """What the scheduler did during one run."""

    results: List[AccountSyncResult] = field(default_factory=list)
    batch_count: int = 0
    pause_count: int = 0


class BatchScheduler:
    """Runs an account handler over all accounts, batch by batch."""

    def __init__(
        self,
        batch_size: int = 20,
        request_delay_seconds: float = 0.5,
        batch_pause_seconds: float = 300.0,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initialize the scheduler.

        Args:
            batch_size: Accounts per batch
            request_delay_seconds: Pause between two accounts of the same batch
            batch_pause_seconds: Pause between two batches
            sleep: Awaitable sleep function (replaced in tests)
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self.request_delay_seconds = request_delay_seconds
        self.batch_pause_seconds = batch_pause_seconds
        self._sleep = sleep

    async def run(self, accounts: Sequence[TrackedAccount], handler: AccountHandler) -> BatchRunSummary:
        """Process every account in list order.

        A failing account never stops the run: unexpected exceptions from the
        handler are turned into a failed result and the next account starts.
        """
        summary = BatchRunSummary()
        batches = partition(accounts, self.batch_size)
        offset = 0

        for index, batch in enumerate(batches, start=1):
            summary.batch_count += 1
            logger.info(
                f"Batch {index}/{len(batches)}: accounts {offset + 1}-{offset + len(batch)}"
            )

            for position, account in enumerate(batch):
                result = await self._run_one(account, handler)
                summary.results.append(result)

                if position < len(batch) - 1 and self.request_delay_seconds > 0:
                    await self._sleep(self.request_delay_seconds)

            offset += len(batch)
            logger.info(f"Batch {index} done")

            if index < len(batches):
                summary.pause_count += 1
                logger.info(f"Sleeping {self.batch_pause_seconds:.0f}s before next batch")
                await self._sleep(self.batch_pause_seconds)

        return summary

    async def _run_one(self, account: TrackedAccount, handler: AccountHandler) -> AccountSyncResult:
        try:
            result = await handler(account)
        except Exception as e:
            logger.error(f"Unexpected error syncing {account.short_puuid}: {e}")
            result = AccountSyncResult(
                puuid=account.puuid,
                state=SyncState.ABORTED,
                outcome=AccountOutcome.FAILED,
                reason=f"unexpected error: {e}",
                account_id=account.id,
            )

        if result.outcome == AccountOutcome.FAILED:
            logger.warning(f"  sync failed for {account.short_puuid}: {result.reason}")
        elif result.outcome == AccountOutcome.UNRANKED:
            logger.info(f"  {account.short_puuid} unranked")
        else:
            logger.info(f"  {account.short_puuid} synced")

        return result
