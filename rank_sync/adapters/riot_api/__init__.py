"""Riot API adapter package.

This package contains the Riot API client adapter for the rank sync service.
"""

from .client import (
    RiotAPIClient,
    RiotAPIError,
    ForbiddenError,
    NotFoundError,
    TransientError,
    RateLimitError,
    AccountIdentity,
    SummonerInfo,
    LeagueEntry,
)

__all__ = [
    # Client
    "RiotAPIClient",
    # Exceptions
    "RiotAPIError",
    "ForbiddenError",
    "NotFoundError",
    "TransientError",
    "RateLimitError",
    # Data classes
    "AccountIdentity",
    "SummonerInfo",
    "LeagueEntry",
]
