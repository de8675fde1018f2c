"""Core enums for the rank sync service."""

from enum import Enum
from typing import Optional


class Tier(Enum):
    """Ranked ladder tiers, lowest first.

    Values are the lowercase names stored in the rank history table.
    """

    IRON = "iron"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    EMERALD = "emerald"
    DIAMOND = "diamond"
    MASTER = "master"
    GRANDMASTER = "grandmaster"
    CHALLENGER = "challenger"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["Tier"]:
        """Parse a tier name in any case. Returns None for unknown values."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Division(Enum):
    """Division within a tier, as Roman numerals."""

    I = "I"
    II = "II"
    III = "III"
    IV = "IV"


class QueueType(Enum):
    """Ranked queue identifiers returned by the league endpoint."""

    RANKED_SOLO_5X5 = "RANKED_SOLO_5x5"
    RANKED_FLEX_SR = "RANKED_FLEX_SR"


class SyncState(Enum):
    """States of the per-account sync procedure."""

    START = "START"
    IDENTITY_RESOLVED = "IDENTITY_RESOLVED"
    SUMMONER_RESOLVED = "SUMMONER_RESOLVED"
    RANKED_LOOKUP = "RANKED_LOOKUP"
    SNAPSHOTTED = "SNAPSHOTTED"
    UNRANKED = "UNRANKED"
    ABORTED = "ABORTED"


class AccountOutcome(Enum):
    """Counted result of one account's sync."""

    SYNCED = "synced"
    UNRANKED = "unranked"
    FAILED = "failed"


class SyncRunStatus(Enum):
    """Overall status of one orchestrator invocation."""

    COMPLETED = "COMPLETED"
    COLLISION = "COLLISION"
    FAILED = "FAILED"
