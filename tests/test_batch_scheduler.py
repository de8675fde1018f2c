"""Tests for the batch scheduler."""

import pytest

from rank_sync.application.batch_scheduler import BatchScheduler, partition
from rank_sync.core.entities import AccountSyncResult
from rank_sync.core.enums import AccountOutcome, SyncState
from tests.factories import make_account


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self, events=None):
        self.calls = []
        self.events = events

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if self.events is not None:
            self.events.append(("sleep", seconds))


def synced(account):
    return AccountSyncResult(
        puuid=account.puuid,
        state=SyncState.SNAPSHOTTED,
        outcome=AccountOutcome.SYNCED,
        account_id=account.id,
    )


class TestPartition:
    def test_partition_sizes(self):
        batches = partition(list(range(25)), 10)
        assert [len(b) for b in batches] == [10, 10, 5]
        assert [x for b in batches for x in b] == list(range(25))

    def test_partition_exact_multiple(self):
        assert [len(b) for b in partition(list(range(40)), 20)] == [20, 20]

    def test_partition_empty(self):
        assert partition([], 20) == []

    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_partition_rejects_invalid_batch_size(self, batch_size):
        with pytest.raises(ValueError):
            partition([1, 2, 3], batch_size)


class TestBatchScheduler:
    def test_rejects_invalid_batch_size(self):
        with pytest.raises(ValueError):
            BatchScheduler(batch_size=0)

    @pytest.mark.asyncio
    async def test_batches_and_pauses(self):
        """25 accounts in batches of 10: three batches, two long pauses."""
        events = []
        sleep = RecordingSleep(events)
        scheduler = BatchScheduler(
            batch_size=10, request_delay_seconds=0.5, batch_pause_seconds=300.0, sleep=sleep
        )
        accounts = [make_account(i) for i in range(25)]

        async def handler(account):
            events.append(("sync", account.puuid))
            return synced(account)

        summary = await scheduler.run(accounts, handler)

        assert summary.batch_count == 3
        assert summary.pause_count == 2
        assert [r.puuid for r in summary.results] == [a.puuid for a in accounts]

        # Intra-batch delays only between accounts of the same batch
        assert sleep.calls.count(0.5) == 9 + 9 + 4
        assert sleep.calls.count(300.0) == 2

        # Long pauses fall right after the 10th and 20th account
        pause_positions = [i for i, e in enumerate(events) if e == ("sleep", 300.0)]
        assert [events[p - 1] for p in pause_positions] == [
            ("sync", accounts[9].puuid),
            ("sync", accounts[19].puuid),
        ]
        # No sleep after the last account
        assert events[-1] == ("sync", accounts[-1].puuid)

    @pytest.mark.asyncio
    async def test_single_batch_has_no_pause(self):
        sleep = RecordingSleep()
        scheduler = BatchScheduler(batch_size=20, request_delay_seconds=0.5, sleep=sleep)
        accounts = [make_account(i) for i in range(3)]

        async def handler(account):
            return synced(account)

        summary = await scheduler.run(accounts, handler)

        assert summary.batch_count == 1
        assert summary.pause_count == 0
        assert sleep.calls == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_no_accounts(self):
        sleep = RecordingSleep()
        scheduler = BatchScheduler(sleep=sleep)

        async def handler(account):
            raise AssertionError("handler must not be called")

        summary = await scheduler.run([], handler)

        assert summary.batch_count == 0
        assert summary.results == []
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_handler_exception_does_not_stop_run(self):
        """An unexpected exception fails only that account."""
        scheduler = BatchScheduler(batch_size=2, request_delay_seconds=0, batch_pause_seconds=0, sleep=RecordingSleep())
        accounts = [make_account(i) for i in range(5)]
        seen = []

        async def handler(account):
            seen.append(account.puuid)
            if account.puuid == accounts[2].puuid:
                raise RuntimeError("boom")
            return synced(account)

        summary = await scheduler.run(accounts, handler)

        assert seen == [a.puuid for a in accounts]
        outcomes = [r.outcome for r in summary.results]
        assert outcomes.count(AccountOutcome.SYNCED) == 4
        assert outcomes[2] == AccountOutcome.FAILED
        assert summary.results[2].state == SyncState.ABORTED
        assert "boom" in summary.results[2].reason
