"""Database infrastructure layer for the account directory and rank history."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, List, Optional, Tuple

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool
from sqlalchemy import select, update

from ...config import Config
from ...core.entities import (
    IdentityChange,
    RankSnapshot,
    TrackedAccount,
    make_riot_slug,
    utcnow,
)
from .models import (
    Base,
    RiotAccount as RiotAccountModel,
    LeagueEntry as LeagueEntryModel,
    UsernameHistory as UsernameHistoryModel,
)

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages database connection and provides direct repository methods.

    Every write method opens its own session, so a transaction never covers
    more than one account.
    """

    def __init__(self, config: Config):
        self.config = config
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """Initialize database engine and session factory."""
        if self._engine is not None:
            logger.warning("Database manager already initialized")
            return

        self._engine = create_async_engine(
            self.config.get_database_url(),
            echo=self.config.log_level == "DEBUG",
            poolclass=NullPool,
            pool_pre_ping=True,
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Database manager initialized successfully")

    async def close(self) -> None:
        """Close database engine and clean up resources."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database manager closed")

    async def create_schema(self) -> None:
        """Create the tables if missing (local development and tests)."""
        if self._engine is None:
            raise RuntimeError(
                "Database manager not initialized. Call initialize() first."
            )
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session with automatic cleanup."""
        if self._session_factory is None:
            raise RuntimeError(
                "Database manager not initialized. Call initialize() first."
            )

        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    # Conversion methods
    def _convert_db_account_to_core_entity(self, record: RiotAccountModel) -> TrackedAccount:
        return TrackedAccount(
            player_id=record.player_id,
            puuid=record.puuid,
            game_name=record.game_name,
            tag_line=record.tag_line,
            profile_icon_id=record.profile_icon_id,
            last_checked_at=record.last_checked_at,
            id=record.id,
        )

    def _convert_db_entry_to_core_entity(self, record: LeagueEntryModel) -> RankSnapshot:
        return RankSnapshot(
            account_id=record.account_id,
            lp=record.lp,
            wins=record.wins,
            losses=record.losses,
            tier=record.tier,
            division=record.division,
            profile_icon_id=record.profile_icon_id,
            fetched_at=record.fetched_at,
            recorded_at=record.recorded_at,
            id=record.id,
        )

    def _convert_db_history_to_core_entity(self, record: UsernameHistoryModel) -> IdentityChange:
        return IdentityChange(
            account_id=record.account_id,
            old_game_name=record.old_game_name,
            old_tag_line=record.old_tag_line,
            changed_at=record.changed_at,
            id=record.id,
        )

    # Account directory methods
    async def get_all_accounts(self) -> List[TrackedAccount]:
        """Get every tracked account in directory order."""
        async with self.get_session() as session:
            result = await session.execute(
                select(RiotAccountModel).order_by(RiotAccountModel.id)
            )
            return [self._convert_db_account_to_core_entity(r) for r in result.scalars().all()]

    async def get_account_by_puuid(self, puuid: str) -> Optional[TrackedAccount]:
        async with self.get_session() as session:
            result = await session.execute(
                select(RiotAccountModel).where(RiotAccountModel.puuid == puuid)
            )
            record = result.scalar_one_or_none()
            return self._convert_db_account_to_core_entity(record) if record else None

    async def create_account(
        self,
        player_id: int,
        puuid: str,
        game_name: str,
        tag_line: str,
        profile_icon_id: Optional[int] = None,
    ) -> TrackedAccount:
        """Register an account for a player (normally done by the web app's admin)."""
        async with self.get_session() as session:
            record = RiotAccountModel(
                player_id=player_id,
                puuid=puuid,
                game_name=game_name,
                tag_line=tag_line,
                riot_slug=make_riot_slug(game_name, tag_line),
                profile_icon_id=profile_icon_id,
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return self._convert_db_account_to_core_entity(record)

    async def upsert_account_identity(
        self,
        puuid: str,
        game_name: str,
        tag_line: str,
        player_id: Optional[int] = None,
        checked_at: Optional[datetime] = None,
    ) -> Tuple[TrackedAccount, Optional[IdentityChange]]:
        """Write the resolved Riot ID for an account, keyed by PUUID.

        If the stored identity differs, the old one is written to the
        username history first. Identical input changes no identity field and
        records no history. player_id is only used when the account does not
        exist yet; it is never changed on an existing row.

        Returns:
            The account after the write and the recorded change, if any
        """
        checked_at = checked_at or utcnow()
        change: Optional[IdentityChange] = None

        async with self.get_session() as session:
            result = await session.execute(
                select(RiotAccountModel)
                .where(RiotAccountModel.puuid == puuid)
                .with_for_update()
            )
            record = result.scalar_one_or_none()

            if record is None:
                if player_id is None:
                    raise ValueError(f"Cannot create account {puuid}: player_id is required")
                record = RiotAccountModel(
                    player_id=player_id,
                    puuid=puuid,
                    game_name=game_name,
                    tag_line=tag_line,
                    riot_slug=make_riot_slug(game_name, tag_line),
                    last_checked_at=checked_at,
                )
                session.add(record)
            else:
                if record.game_name != game_name or record.tag_line != tag_line:
                    history = UsernameHistoryModel(
                        account_id=record.id,
                        old_game_name=record.game_name,
                        old_tag_line=record.tag_line,
                        changed_at=checked_at,
                    )
                    session.add(history)
                    change = IdentityChange(
                        account_id=record.id,
                        old_game_name=record.game_name,
                        old_tag_line=record.tag_line,
                        changed_at=checked_at,
                    )
                    logger.info(
                        f"Riot ID changed for account {record.id}: "
                        f"{record.game_name}#{record.tag_line} -> {game_name}#{tag_line}"
                    )
                    record.game_name = game_name
                    record.tag_line = tag_line

                slug = make_riot_slug(game_name, tag_line)
                if record.riot_slug != slug:
                    record.riot_slug = slug
                record.last_checked_at = checked_at

            await session.commit()
            await session.refresh(record)
            return self._convert_db_account_to_core_entity(record), change

    async def update_account_icon(
        self,
        account_id: int,
        profile_icon_id: Optional[int],
        checked_at: Optional[datetime] = None,
    ) -> bool:
        """Store the account's icon; a missing icon never clears a stored one."""
        values = {"last_checked_at": checked_at or utcnow()}
        if profile_icon_id is not None:
            values["profile_icon_id"] = profile_icon_id

        async with self.get_session() as session:
            result = await session.execute(
                update(RiotAccountModel)
                .where(RiotAccountModel.id == account_id)
                .values(**values)
            )
            await session.commit()
            return result.rowcount > 0

    async def get_identity_history(self, account_id: int) -> List[IdentityChange]:
        async with self.get_session() as session:
            result = await session.execute(
                select(UsernameHistoryModel)
                .where(UsernameHistoryModel.account_id == account_id)
                .order_by(UsernameHistoryModel.changed_at, UsernameHistoryModel.id)
            )
            return [self._convert_db_history_to_core_entity(r) for r in result.scalars().all()]

    # Rank history methods
    async def append_rank_snapshot(self, snapshot: RankSnapshot) -> RankSnapshot:
        """Append one snapshot to the rank history. Rows are never updated."""
        async with self.get_session() as session:
            record = LeagueEntryModel(
                account_id=snapshot.account_id,
                fetched_at=snapshot.fetched_at,
                lp=snapshot.lp,
                wins=snapshot.wins,
                losses=snapshot.losses,
                tier=snapshot.tier,
                division=snapshot.division,
                profile_icon_id=snapshot.profile_icon_id,
                recorded_at=snapshot.recorded_at,
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return self._convert_db_entry_to_core_entity(record)

    async def get_rank_history(self, account_id: int) -> List[RankSnapshot]:
        """All snapshots of an account, oldest first."""
        async with self.get_session() as session:
            result = await session.execute(
                select(LeagueEntryModel)
                .where(LeagueEntryModel.account_id == account_id)
                .order_by(LeagueEntryModel.recorded_at, LeagueEntryModel.id)
            )
            return [self._convert_db_entry_to_core_entity(r) for r in result.scalars().all()]

    async def get_current_snapshot(self, account_id: int) -> Optional[RankSnapshot]:
        """The account's current standing: its most recently recorded snapshot."""
        async with self.get_session() as session:
            result = await session.execute(
                select(LeagueEntryModel)
                .where(LeagueEntryModel.account_id == account_id)
                .order_by(
                    LeagueEntryModel.recorded_at.desc(),
                    LeagueEntryModel.fetched_at.desc(),
                    LeagueEntryModel.id.desc(),
                )
                .limit(1)
            )
            record = result.scalar_one_or_none()
            return self._convert_db_entry_to_core_entity(record) if record else None
