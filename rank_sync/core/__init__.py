"""Core layer for the rank sync service.

Domain entities, enums and the rank ordering used by leaderboard readers.
"""

from .entities import (
    AccountSyncResult,
    IdentityChange,
    RankSnapshot,
    SyncRunReport,
    TrackedAccount,
    make_riot_slug,
)
from .enums import AccountOutcome, Division, QueueType, SyncRunStatus, SyncState, Tier
from .ranking import RANKING_VERSION, best_snapshot, rank_sort_key

__all__ = [
    "AccountSyncResult",
    "IdentityChange",
    "RankSnapshot",
    "SyncRunReport",
    "TrackedAccount",
    "make_riot_slug",
    "AccountOutcome",
    "Division",
    "QueueType",
    "SyncRunStatus",
    "SyncState",
    "Tier",
    "RANKING_VERSION",
    "best_snapshot",
    "rank_sort_key",
]
