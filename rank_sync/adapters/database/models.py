"""SQLAlchemy models for the rank sync service.

The tables are owned by the roster web app; these models only describe the
columns the sync reads and writes.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    ForeignKey,
    Text,
    Index,
)
from sqlalchemy.orm import declarative_base, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Player(Base):
    """Roster player. Managed by the web app, referenced by accounts."""

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)

    accounts: Mapped[List["RiotAccount"]] = relationship("RiotAccount", back_populates="player")

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, display_name='{self.display_name}')>"


class RiotAccount(Base):
    """Tracked Riot account; the mutable "current account" record."""

    __tablename__ = "riot_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False
    )
    puuid: Mapped[str] = mapped_column(String(78), nullable=False, unique=True)
    game_name: Mapped[str] = mapped_column(Text, nullable=False)
    tag_line: Mapped[str] = mapped_column(Text, nullable=False)
    riot_slug: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_icon_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    player: Mapped["Player"] = relationship("Player", back_populates="accounts")
    league_entries: Mapped[List["LeagueEntry"]] = relationship(
        "LeagueEntry", back_populates="account", cascade="all, delete-orphan"
    )
    username_history: Mapped[List["UsernameHistory"]] = relationship(
        "UsernameHistory", back_populates="account", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_riot_accounts_player", "player_id"),
        Index("idx_riot_accounts_slug", "riot_slug"),
    )

    def __repr__(self) -> str:
        return f"<RiotAccount(game_name='{self.game_name}', tag_line='{self.tag_line}')>"


class LeagueEntry(Base):
    """Append-only solo-queue rank snapshot.

    fetched_at is when the standing was observed, recorded_at when the row
    was written.
    """

    __tablename__ = "league_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("riot_accounts.id", ondelete="CASCADE"), nullable=False
    )
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=func.now())
    lp: Mapped[int] = mapped_column(Integer, nullable=False)
    wins: Mapped[int] = mapped_column(Integer, nullable=False)
    losses: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    division: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    profile_icon_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=func.now())

    account: Mapped["RiotAccount"] = relationship("RiotAccount", back_populates="league_entries")

    __table_args__ = (
        Index("idx_league_entries_account_recorded", "account_id", "recorded_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<LeagueEntry(account_id={self.account_id}, tier='{self.tier}', "
            f"division='{self.division}', lp={self.lp})>"
        )


class UsernameHistory(Base):
    """Previous Riot IDs of an account, written before an identity change."""

    __tablename__ = "riot_username_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("riot_accounts.id", ondelete="CASCADE"), nullable=False
    )
    old_game_name: Mapped[str] = mapped_column(Text, nullable=False)
    old_tag_line: Mapped[str] = mapped_column(Text, nullable=False)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=func.now())

    account: Mapped["RiotAccount"] = relationship("RiotAccount", back_populates="username_history")

    __table_args__ = (
        Index("idx_username_history_account", "account_id"),
    )
