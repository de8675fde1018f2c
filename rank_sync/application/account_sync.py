"""Per-account sync procedure.

One account goes through START -> IDENTITY_RESOLVED -> SUMMONER_RESOLVED ->
RANKED_LOOKUP -> SNAPSHOTTED | UNRANKED, or stops in ABORTED. Each remote
lookup is independent: a failed lookup only skips the steps that need its
data, and whatever was written before stays written.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.entities import AccountSyncResult, RankSnapshot, TrackedAccount, utcnow
from ..core.enums import AccountOutcome, QueueType, SyncState
from ..adapters.database.manager import DatabaseManager
from ..adapters.observability import get_metrics_provider
from ..adapters.riot_api.client import (
    ForbiddenError,
    LeagueEntry,
    RiotAPIClient,
    RiotAPIError,
    SummonerInfo,
)

logger = logging.getLogger(__name__)

TERMINAL_STATES = {SyncState.SNAPSHOTTED, SyncState.UNRANKED, SyncState.ABORTED}

OUTCOME_BY_STATE = {
    SyncState.SNAPSHOTTED: AccountOutcome.SYNCED,
    SyncState.UNRANKED: AccountOutcome.UNRANKED,
    SyncState.ABORTED: AccountOutcome.FAILED,
    # Terminal only in identity-only runs
    SyncState.IDENTITY_RESOLVED: AccountOutcome.SYNCED,
}


def describe_error(error: Exception) -> str:
    """Short reason string for a failed lookup."""
    return f"{type(error).__name__}: {error}"


@dataclass
class _SyncContext:
    """Data collected while one account moves through the states."""

    account: TrackedAccount
    identity_only: bool
    state: SyncState = SyncState.START
    reason: Optional[str] = None
    identity_updated: bool = False
    icon_updated: bool = False
    summoner: Optional[SummonerInfo] = None
    entry: Optional[LeagueEntry] = None
    snapshot: Optional[RankSnapshot] = None


class AccountSynchronizer:
    """Runs the sync state machine for one account at a time."""

    def __init__(
        self,
        database: DatabaseManager,
        riot_api: RiotAPIClient,
        ranked_queue_type: str = QueueType.RANKED_SOLO_5X5.value,
        clock: Callable = utcnow,
    ):
        """Initialize the synchronizer.

        Args:
            database: Account directory and rank history
            riot_api: Riot gateway client
            ranked_queue_type: Queue whose entry becomes the snapshot
            clock: Returns the current time; used for every timestamp written
        """
        self.database = database
        self.riot_api = riot_api
        self.ranked_queue_type = ranked_queue_type
        self._clock = clock

        self._handlers = {
            SyncState.START: self._resolve_identity,
            SyncState.IDENTITY_RESOLVED: self._resolve_summoner,
            SyncState.SUMMONER_RESOLVED: self._lookup_ranked_entries,
            SyncState.RANKED_LOOKUP: self._append_snapshot,
        }

    async def sync(self, account: TrackedAccount, identity_only: bool = False) -> AccountSyncResult:
        """Sync one account and return its final state.

        Never raises for per-account problems; every failure ends in ABORTED
        with a reason.
        """
        ctx = _SyncContext(account=account, identity_only=identity_only)

        while ctx.state not in TERMINAL_STATES:
            if identity_only and ctx.state == SyncState.IDENTITY_RESOLVED:
                if not ctx.identity_updated:
                    self._abort(ctx, ctx.reason or "identity not updated")
                break

            handler = self._handlers[ctx.state]
            try:
                ctx.state = await handler(ctx)
            except Exception as e:
                logger.error(f"Error in state {ctx.state.value} for {account.short_puuid}: {e}")
                self._abort(ctx, describe_error(e))

        result = AccountSyncResult(
            puuid=account.puuid,
            state=ctx.state,
            outcome=OUTCOME_BY_STATE[ctx.state],
            reason=ctx.reason,
            account_id=account.id,
            identity_updated=ctx.identity_updated,
            icon_updated=ctx.icon_updated,
            snapshot=ctx.snapshot,
        )

        metrics = get_metrics_provider()
        if metrics:
            metrics.record_account_outcome(result.outcome.value, result.state.value)

        return result

    def _abort(self, ctx: _SyncContext, reason: str) -> SyncState:
        ctx.state = SyncState.ABORTED
        ctx.reason = reason
        return SyncState.ABORTED

    async def _resolve_identity(self, ctx: _SyncContext) -> SyncState:
        """START: refresh the Riot ID. Forbidden is tolerated, anything else aborts."""
        account = ctx.account
        try:
            identity = await self.riot_api.resolve_identity(account.puuid)
        except ForbiddenError as e:
            logger.warning(
                f"Identity lookup forbidden for {account.short_puuid}, continuing without it: {e}"
            )
            ctx.reason = describe_error(e)
            return SyncState.IDENTITY_RESOLVED
        except RiotAPIError as e:
            return self._abort(ctx, describe_error(e))

        updated, change = await self.database.upsert_account_identity(
            puuid=account.puuid,
            game_name=identity.game_name,
            tag_line=identity.tag_line,
            player_id=account.player_id,
            checked_at=self._clock(),
        )
        ctx.identity_updated = True
        if change is not None:
            logger.info(
                f"{change.old_game_name}#{change.old_tag_line} is now {updated.riot_id}"
            )
        ctx.account = updated
        return SyncState.IDENTITY_RESOLVED

    async def _resolve_summoner(self, ctx: _SyncContext) -> SyncState:
        """IDENTITY_RESOLVED: fetch the summoner id and store the icon."""
        account = ctx.account
        try:
            ctx.summoner = await self.riot_api.resolve_summoner(account.puuid)
        except RiotAPIError as e:
            return self._abort(ctx, describe_error(e))

        ctx.icon_updated = await self.database.update_account_icon(
            account.id,
            ctx.summoner.profile_icon_id,
            checked_at=self._clock(),
        )
        return SyncState.SUMMONER_RESOLVED

    async def _lookup_ranked_entries(self, ctx: _SyncContext) -> SyncState:
        """SUMMONER_RESOLVED: pick the ranked queue entry, if any."""
        try:
            entries = await self.riot_api.resolve_ranked_entries(ctx.summoner.summoner_id)
        except RiotAPIError as e:
            return self._abort(ctx, describe_error(e))

        ctx.entry = next((e for e in entries if e.queue_type == self.ranked_queue_type), None)
        if ctx.entry is None:
            return SyncState.UNRANKED
        return SyncState.RANKED_LOOKUP

    async def _append_snapshot(self, ctx: _SyncContext) -> SyncState:
        """RANKED_LOOKUP: append one snapshot to the rank history."""
        snapshot = RankSnapshot.observe(
            account_id=ctx.account.id,
            entry=ctx.entry,
            profile_icon_id=ctx.summoner.profile_icon_id,
            observed_at=self._clock(),
        )
        ctx.snapshot = await self.database.append_rank_snapshot(snapshot)

        metrics = get_metrics_provider()
        if metrics:
            metrics.record_snapshot_written()

        return SyncState.SNAPSHOTTED
