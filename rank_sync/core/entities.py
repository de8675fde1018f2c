"""Core entities for the rank sync service."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from .enums import AccountOutcome, SyncRunStatus, SyncState, Tier


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def make_riot_slug(game_name: str, tag_line: str) -> str:
    """Build the URL slug for a Riot ID. Only the game name is lowercased."""
    return f"{game_name.lower()}-{tag_line}"


@dataclass
class TrackedAccount:
    """A Riot account bound to one roster player."""

    player_id: int
    puuid: str
    game_name: str
    tag_line: str

    profile_icon_id: Optional[int] = None
    last_checked_at: Optional[datetime] = None

    # Database ID
    id: Optional[int] = None

    @property
    def riot_id(self) -> str:
        """Get the account's Riot ID in game_name#tag_line format."""
        return f"{self.game_name}#{self.tag_line}"

    @property
    def slug(self) -> str:
        return make_riot_slug(self.game_name, self.tag_line)

    @property
    def short_puuid(self) -> str:
        """First characters of the PUUID, for log lines."""
        return f"{self.puuid[:8]}…"

    def __str__(self) -> str:
        return f"TrackedAccount({self.riot_id})"


@dataclass
class RankSnapshot:
    """Point-in-time observation of an account's solo-queue standing.

    Snapshots are append-only; an account's current standing is its
    snapshot with the most recent recorded_at.
    """

    account_id: int
    lp: int
    wins: int
    losses: int
    tier: str
    division: Optional[str]
    profile_icon_id: Optional[int]
    fetched_at: datetime
    recorded_at: datetime

    # Database ID
    id: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("lp", "wins", "losses"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

        tier = Tier.from_string(self.tier)
        if tier is None:
            raise ValueError(f"Unknown tier: {self.tier!r}")
        self.tier = tier.value

    @classmethod
    def observe(
        cls,
        account_id: int,
        entry: "LeagueEntryLike",
        profile_icon_id: Optional[int],
        observed_at: datetime,
    ) -> "RankSnapshot":
        """Create a snapshot from a league entry observed at ``observed_at``.

        Both timestamps are set to the observation time.
        """
        return cls(
            account_id=account_id,
            lp=entry.league_points,
            wins=entry.wins,
            losses=entry.losses,
            tier=entry.tier,
            division=entry.division,
            profile_icon_id=profile_icon_id,
            fetched_at=observed_at,
            recorded_at=observed_at,
        )

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


class LeagueEntryLike(Protocol):
    """Anything shaped like a league entry."""

    league_points: int
    wins: int
    losses: int
    tier: str
    division: Optional[str]


@dataclass
class IdentityChange:
    """A previous Riot ID recorded before it was overwritten."""

    account_id: int
    old_game_name: str
    old_tag_line: str
    changed_at: datetime

    id: Optional[int] = None


@dataclass
class AccountSyncResult:
    """Final state of one account's sync procedure."""

    puuid: str
    state: SyncState
    outcome: AccountOutcome
    reason: Optional[str] = None
    account_id: Optional[int] = None
    identity_updated: bool = False
    icon_updated: bool = False
    snapshot: Optional[RankSnapshot] = None

    @property
    def failed(self) -> bool:
        return self.outcome == AccountOutcome.FAILED


@dataclass
class SyncRunReport:
    """Summary of one orchestrator invocation."""

    status: SyncRunStatus
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    batch_count: int = 0
    results: List[AccountSyncResult] = field(default_factory=list)
    error: Optional[str] = None

    def count(self, outcome: AccountOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def synced(self) -> int:
        return self.count(AccountOutcome.SYNCED)

    @property
    def unranked(self) -> int:
        return self.count(AccountOutcome.UNRANKED)

    @property
    def failed(self) -> int:
        return self.count(AccountOutcome.FAILED)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @classmethod
    def collision(cls) -> "SyncRunReport":
        """Report for a trigger dropped because another run was active."""
        now = utcnow()
        return cls(status=SyncRunStatus.COLLISION, started_at=now, finished_at=now)

    def __str__(self) -> str:
        return (
            f"SyncRun({self.status.value}: synced={self.synced}, "
            f"unranked={self.unranked}, failed={self.failed})"
        )
