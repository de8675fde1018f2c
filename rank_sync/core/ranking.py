"""Ordering of ranked standings.

Leaderboard readers compare accounts with this ordering (e.g. to pick a
player's best account). Bump ``RANKING_VERSION`` whenever the ordering
changes so stored or cached comparisons can be invalidated.
"""

from typing import Iterable, Optional, Tuple

from .entities import RankSnapshot
from .enums import Division, Tier

RANKING_VERSION = 1

# Lower priority sorts first (better)
TIER_PRIORITY = {
    Tier.CHALLENGER: 1,
    Tier.GRANDMASTER: 2,
    Tier.MASTER: 3,
    Tier.DIAMOND: 4,
    Tier.EMERALD: 5,
    Tier.PLATINUM: 6,
    Tier.GOLD: 7,
    Tier.SILVER: 8,
    Tier.BRONZE: 9,
    Tier.IRON: 10,
}
UNRANKED_TIER_PRIORITY = 11

DIVISION_PRIORITY = {
    Division.I: 1,
    Division.II: 2,
    Division.III: 3,
    Division.IV: 4,
}
NO_DIVISION_PRIORITY = 5


def rank_sort_key(tier: Optional[str], division: Optional[str], lp: Optional[int]) -> Tuple[int, int, int]:
    """Sort key for a standing; ascending order puts the best standing first.

    Tier names are matched case-insensitively. Unknown tiers sort as unranked,
    unknown or missing divisions after IV.
    """
    parsed_tier = Tier.from_string(tier)
    tier_priority = TIER_PRIORITY.get(parsed_tier, UNRANKED_TIER_PRIORITY)

    try:
        division_priority = DIVISION_PRIORITY[Division(division)] if division else NO_DIVISION_PRIORITY
    except ValueError:
        division_priority = NO_DIVISION_PRIORITY

    return tier_priority, division_priority, -(lp or 0)


def snapshot_sort_key(snapshot: RankSnapshot) -> Tuple[int, int, int]:
    return rank_sort_key(snapshot.tier, snapshot.division, snapshot.lp)


def best_snapshot(snapshots: Iterable[RankSnapshot]) -> Optional[RankSnapshot]:
    """Return the best-ranked snapshot, or None if there are none."""
    ranked = sorted(snapshots, key=snapshot_sort_key)
    return ranked[0] if ranked else None
