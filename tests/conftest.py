"""Shared pytest fixtures for rank sync tests.

Unit and service tests run against a throwaway SQLite file through aiosqlite.
Tests marked ``integration`` need Docker and run against a PostgreSQL
testcontainer; pass --run-integration to enable them.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from rank_sync.config import Config, Environment, reset_config
from rank_sync.adapters.database.manager import DatabaseManager
from rank_sync.adapters.database.models import Player
from rank_sync.adapters.observability import shutdown_metrics
from rank_sync.adapters.riot_api.client import (
    AccountIdentity,
    RiotAPIClient,
    SummonerInfo,
)
from tests.factories import FakeClock, make_league_entry


def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests that need a PostgreSQL testcontainer",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(reason="needs --run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def clean_globals():
    """Reset global config and metrics around every test."""
    reset_config()
    shutdown_metrics()
    yield
    reset_config()
    shutdown_metrics()


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Configuration pointing at a fresh SQLite database with no pacing delays."""
    return Config(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'rank_sync.db'}",
        riot_api_key="test-api-key",
        environment=Environment.CI,
        riot_regional_url="https://americas.api.riotgames.com",
        riot_platform_url="https://na1.api.riotgames.com",
        sync_batch_size=20,
        sync_batch_pause_seconds=0.0,
        sync_request_delay_seconds=0.0,
        sync_interval_seconds=1800,
        log_level="INFO",
    )


@pytest_asyncio.fixture
async def database_manager(test_config):
    """Initialized DatabaseManager with the schema created."""
    manager = DatabaseManager(test_config)
    await manager.initialize()
    await manager.create_schema()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def player_id(database_manager) -> int:
    """ID of one roster player that accounts can be attached to."""
    async with database_manager.get_session() as session:
        player = Player(display_name="Test Player")
        session.add(player)
        await session.commit()
        await session.refresh(player)
        return player.id


@pytest_asyncio.fixture
async def seed_accounts(database_manager, player_id):
    """Factory that registers ``count`` accounts named player0#NA1, player1#NA1, ..."""

    async def _seed(count: int):
        accounts = []
        for i in range(count):
            accounts.append(
                await database_manager.create_account(
                    player_id=player_id,
                    puuid=f"puuid-{i:03d}",
                    game_name=f"player{i}",
                    tag_line="NA1",
                )
            )
        return accounts

    return _seed


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def riot_api():
    """Riot API client mock whose lookups echo the stored identity and return a Gold II entry."""
    api = AsyncMock(spec=RiotAPIClient)

    async def resolve_identity(puuid):
        index = int(puuid.rsplit("-", 1)[1])
        return AccountIdentity(game_name=f"player{index}", tag_line="NA1")

    async def resolve_summoner(puuid):
        return SummonerInfo(summoner_id=f"summoner-{puuid}", profile_icon_id=4321)

    async def resolve_ranked_entries(summoner_id):
        return [make_league_entry()]

    api.resolve_identity.side_effect = resolve_identity
    api.resolve_summoner.side_effect = resolve_summoner
    api.resolve_ranked_entries.side_effect = resolve_ranked_entries
    return api


@pytest.fixture(scope="session")
def postgres_container():
    """Create a PostgreSQL container for integration tests."""
    container = PostgresContainer("postgres:14-alpine")
    container.start()
    yield container
    container.stop()


@pytest.fixture
def postgres_config(postgres_container) -> Config:
    # Convert psycopg2 URL to asyncpg
    sync_url = postgres_container.get_connection_url()
    database_url = sync_url.replace("postgresql+psycopg2", "postgresql+asyncpg")
    return Config(
        database_url=database_url,
        riot_api_key="test-api-key",
        environment=Environment.CI,
    )
