"""Riot API client with error classification and request pacing."""

import asyncio
import math
import time
from dataclasses import dataclass
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..observability import get_metrics_provider

logger = structlog.get_logger()

# Cooldown when a 429 carries no usable Retry-After
DEFAULT_RETRY_AFTER = 60


@dataclass
class AccountIdentity:
    """Riot ID currently attached to a PUUID (Account-V1)."""

    game_name: str
    tag_line: str


@dataclass
class SummonerInfo:
    """Platform summoner record (Summoner-V4)."""

    summoner_id: str
    profile_icon_id: Optional[int]


@dataclass
class LeagueEntry:
    """One ranked queue entry (League-V4)."""

    queue_type: str
    league_points: int
    wins: int
    losses: int
    tier: str
    division: Optional[str]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "LeagueEntry":
        return cls(
            queue_type=data["queueType"],
            league_points=data.get("leaguePoints", 0),
            wins=data.get("wins", 0),
            losses=data.get("losses", 0),
            tier=data["tier"],
            division=data.get("rank"),
        )


class RiotAPIError(Exception):
    """Base exception for Riot API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ForbiddenError(RiotAPIError):
    """The API key is not entitled to this endpoint (401/403)."""

    pass


class NotFoundError(RiotAPIError):
    """The requested key no longer resolves (404)."""

    pass


class TransientError(RiotAPIError):
    """Network failure, timeout or 5xx; the next scheduled run retries."""

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded error (429)."""

    def __init__(self, message: str, retry_after: int):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class RiotAPIClient:
    """Riot API client for the three lookups a rank sync needs.

    Account-V1 lives on the regional host (americas), Summoner-V4 and
    League-V4 on the platform host (na1).
    """

    def __init__(
        self,
        api_key: str,
        regional_url: str = "https://americas.api.riotgames.com",
        platform_url: str = "https://na1.api.riotgames.com",
        request_timeout: float = 10.0,
        min_request_interval: float = 0.0,
    ):
        """Initialize the Riot API client.

        Args:
            api_key: Riot API key sent as X-Riot-Token
            regional_url: Base URL for the Account-V1 endpoint
            platform_url: Base URL for Summoner-V4 and League-V4
            request_timeout: Request timeout in seconds
            min_request_interval: Minimum seconds between two requests
        """
        self.api_key = api_key
        self.regional_url = regional_url.rstrip("/")
        self.platform_url = platform_url.rstrip("/")
        self.request_timeout = request_timeout
        self.client = httpx.AsyncClient(timeout=request_timeout)

        self._last_request_time = 0.0
        self._min_request_interval = min_request_interval

        # Set from Retry-After on 429 responses
        self._rate_limit_reset_time = 0.0

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def _rate_limit_delay(self):
        """Honour a pending 429 cooldown and the minimum request interval."""
        current_time = time.time()

        if current_time < self._rate_limit_reset_time:
            wait_time = self._rate_limit_reset_time - current_time
            logger.info("Rate limit cooldown active", wait_time=wait_time)
            await asyncio.sleep(wait_time)
            current_time = time.time()

        time_since_last = current_time - self._last_request_time
        if time_since_last < self._min_request_interval:
            await asyncio.sleep(self._min_request_interval - time_since_last)

        self._last_request_time = time.time()

    async def _make_request(self, url: str, endpoint_type: str) -> Any:
        """Make a request to the Riot API and classify failures.

        Args:
            url: The URL to request
            endpoint_type: Short endpoint label for logs and metrics

        Raises:
            ForbiddenError: On 401/403
            NotFoundError: On 404
            RateLimitError: On 429
            TransientError: On 5xx, timeouts and network errors
            RiotAPIError: On any other error status
        """
        await self._rate_limit_delay()

        headers = {"X-Riot-Token": self.api_key, "Accept": "application/json"}
        metrics = get_metrics_provider()
        started = time.time()

        try:
            response = await self.client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Riot API request timed out", endpoint=endpoint_type, error=str(e))
            self._record_call(metrics, endpoint_type, 0, started, "timeout")
            raise TransientError(f"Request timed out: {e}")
        except httpx.RequestError as e:
            logger.error("HTTP request failed", endpoint=endpoint_type, error=str(e))
            self._record_call(metrics, endpoint_type, 0, started, "request_error")
            raise TransientError(f"Request failed: {e}")

        status = response.status_code
        self._record_call(metrics, endpoint_type, status, started, None if status < 400 else str(status))

        if status == 429:
            retry_after = self._parse_retry_after(response.headers.get("Retry-After"))
            self._rate_limit_reset_time = time.time() + retry_after
            logger.warning("Rate limited by Riot API", endpoint=endpoint_type, retry_after=retry_after)
            raise RateLimitError(f"Rate limited. Retry after {retry_after} seconds", retry_after)

        if status in (401, 403):
            raise ForbiddenError(f"Forbidden ({status}) for {endpoint_type}", status_code=status)

        if status == 404:
            raise NotFoundError(f"Not found: {endpoint_type}", status_code=status)

        if status >= 500:
            logger.warning("Riot API server error", endpoint=endpoint_type, status_code=status)
            raise TransientError(f"API error: {status}", status_code=status)

        if status >= 400:
            logger.error(
                "Riot API error",
                url=url,
                status_code=status,
                response=response.text,
            )
            raise RiotAPIError(f"API error: {status}", status_code=status)

        try:
            return response.json()
        except ValueError as e:
            raise RiotAPIError(f"Malformed {endpoint_type} response: {e}", status_code=status)

    @staticmethod
    def _parse_retry_after(value: Optional[str]) -> int:
        """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
        if value is None:
            return DEFAULT_RETRY_AFTER

        try:
            return max(0, int(value))
        except ValueError:
            pass

        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.warning("Unparseable Retry-After header", retry_after=value)
            return DEFAULT_RETRY_AFTER

        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        return max(0, math.ceil(retry_at.timestamp() - time.time()))

    @staticmethod
    def _record_call(metrics, endpoint_type: str, status_code: int, started: float, error_type: Optional[str]):
        if metrics is None:
            return
        metrics.record_riot_api_call(
            endpoint_type=endpoint_type,
            status_code=status_code,
            duration=time.time() - started,
            error_type=error_type,
        )

    async def resolve_identity(self, puuid: str) -> AccountIdentity:
        """Look up the Riot ID currently attached to a PUUID.

        Raises:
            ForbiddenError, NotFoundError, TransientError, RiotAPIError
        """
        url = f"{self.regional_url}/riot/account/v1/accounts/by-puuid/{puuid}"
        data = await self._make_request(url, "account")

        try:
            identity = AccountIdentity(game_name=data["gameName"], tag_line=data["tagLine"])
        except (KeyError, TypeError) as e:
            raise RiotAPIError(f"Malformed account response: missing {e}")

        logger.debug(
            "Resolved account identity",
            puuid=puuid,
            game_name=identity.game_name,
            tag_line=identity.tag_line,
        )
        return identity

    async def resolve_summoner(self, puuid: str) -> SummonerInfo:
        """Look up the platform summoner record (encrypted id and icon).

        Raises:
            ForbiddenError, NotFoundError, TransientError, RiotAPIError
        """
        url = f"{self.platform_url}/lol/summoner/v4/summoners/by-puuid/{puuid}"
        data = await self._make_request(url, "summoner")

        try:
            summoner = SummonerInfo(summoner_id=data["id"], profile_icon_id=data.get("profileIconId"))
        except (KeyError, TypeError) as e:
            raise RiotAPIError(f"Malformed summoner response: missing {e}")

        return summoner

    async def resolve_ranked_entries(self, summoner_id: str) -> List[LeagueEntry]:
        """Fetch every ranked queue entry for a summoner (possibly none).

        Raises:
            ForbiddenError, NotFoundError, TransientError, RiotAPIError
        """
        url = f"{self.platform_url}/lol/league/v4/entries/by-summoner/{summoner_id}"
        data = await self._make_request(url, "league")

        if not isinstance(data, list):
            raise RiotAPIError("Malformed league response: expected a list")

        try:
            return [LeagueEntry.from_api(item) for item in data]
        except (KeyError, TypeError) as e:
            raise RiotAPIError(f"Malformed league entry: missing {e}")
