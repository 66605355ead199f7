"""Blockfrost API client.

Thin async wrapper over the provider's REST endpoints used by poolmap:
- /pools?page=N           paginated pool identifiers
- /pools/{id}             pool detail
- /pools/{id}/metadata    off-chain pool metadata
- /blocks/latest          newest block
- /epochs/latest          current epoch

Every call runs inside its own retry budget. HTTP 429 responses back off by
`attempt * rate_limit_delay_seconds`; other HTTP or transport failures back
off by `attempt * retry_delay_seconds`. There is no circuit breaker.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiohttp

from ..models import BlockSummary
from .config import BlockfrostSettings

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class NetworkError(Exception):
    """Transport or HTTP failure that survived the retry budget."""

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        attempts: int = 0,
        status: Optional[int] = None,
    ):
        self.endpoint = endpoint
        self.attempts = attempts
        self.status = status
        super().__init__(message)


class RateLimited(NetworkError):
    """HTTP 429 from the provider. Always retried by the client."""


# Failures raised by aiohttp or while decoding a body (bad JSON or bad UTF-8); these are retried.
_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError, UnicodeDecodeError)


class BlockfrostClient:
    """Authenticated client for the Blockfrost REST API."""

    def __init__(
        self,
        settings: BlockfrostSettings,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the client.

        Args:
            settings: Base URL, credential and retry configuration
            session: Optional pre-built session (not closed by this client)
            sleep: Coroutine used for backoff waits
        """
        self.settings = settings
        self.headers = {
            "project_id": settings.project_id,
            "Content-Type": "application/json",
        }
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

    async def __aenter__(self) -> "BlockfrostClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session and self._session is not None:
            if not self._session.closed:
                await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _request(self, endpoint: str) -> Any:
        """Issue a single GET and decode the JSON body."""
        url = f"{self.settings.base_url}{endpoint}"
        session = self._get_session()

        async with session.get(url, headers=self.headers) as resp:
            if resp.status == 429:
                raise RateLimited(
                    f"Rate limit hit for {endpoint}", endpoint=endpoint, status=429
                )
            if not 200 <= resp.status < 300:
                raise NetworkError(
                    f"API call failed: {resp.status} - {resp.reason}",
                    endpoint=endpoint,
                    status=resp.status,
                )
            return await resp.json()

    async def fetch(self, endpoint: str) -> Any:
        """Fetch an endpoint with retry and rate-limit backoff.

        Args:
            endpoint: Path relative to the base URL, e.g. "/pools?page=1"

        Returns:
            The decoded JSON payload

        Raises:
            NetworkError: If every attempt failed
        """
        retries = self.settings.retry_count

        for attempt in range(1, retries + 1):
            try:
                return await self._request(endpoint)
            except RateLimited:
                wait = attempt * self.settings.rate_limit_delay_seconds
                logger.warning(f"Rate limit hit, waiting {wait:.1f}s before retry... ({endpoint})")
                await self._sleep(wait)
            except NetworkError as e:
                if attempt == retries:
                    e.attempts = attempt
                    raise
                logger.warning(f"Attempt {attempt} for {endpoint} failed ({e}), retrying...")
                await self._sleep(attempt * self.settings.retry_delay_seconds)
            except _TRANSPORT_ERRORS as e:
                if attempt == retries:
                    raise NetworkError(
                        f"Request to {endpoint} failed after {attempt} attempts: {e!r}",
                        endpoint=endpoint,
                        attempts=attempt,
                    ) from e
                logger.warning(f"Attempt {attempt} for {endpoint} failed ({e!r}), retrying...")
                await self._sleep(attempt * self.settings.retry_delay_seconds)

        raise NetworkError(
            f"Failed to fetch {endpoint} after {retries} attempts",
            endpoint=endpoint,
            attempts=retries,
            status=429,
        )

    async def list_pool_ids(self, page: int) -> List[str]:
        """Get one page of registered pool identifiers (empty past the end)."""
        return await self.fetch(f"/pools?page={page}")

    async def get_pool(self, pool_id: str) -> Dict[str, Any]:
        """Get pool detail (stake, blocks, delegators...)."""
        return await self.fetch(f"/pools/{pool_id}")

    async def get_pool_metadata(self, pool_id: str) -> Dict[str, Any]:
        """Get the off-chain metadata (name, ticker, homepage...) of a pool."""
        return await self.fetch(f"/pools/{pool_id}/metadata")

    async def get_latest_block(self) -> BlockSummary:
        data = await self.fetch("/blocks/latest")
        return BlockSummary.from_api(data)

    async def get_latest_epoch(self) -> Dict[str, Any]:
        return await self.fetch("/epochs/latest")

    async def get_pool_delegators_count(self, pool_id: str) -> int:
        pool = await self.get_pool(pool_id)
        return int(pool.get("live_delegators") or 0)
