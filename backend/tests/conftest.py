"""Pytest configuration and fixtures."""

from typing import Any, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import AsyncClient, ASGITransport

from poolmap.dependencies import get_cache_store, get_blockfrost_client, get_block_poller
from poolmap.main import app
from poolmap.models import StakePool
from poolmap.services.block_poller import LiveBlockPoller
from poolmap.services.blockfrost import BlockfrostClient
from poolmap.services.cache_store import CacheStore
from poolmap.services.config import BlockfrostSettings


class StubResponse:
    """Stands in for an aiohttp response used as `async with session.get(...)`."""

    def __init__(self, status: int = 200, payload: Any = None, reason: str = "OK"):
        self.status = status
        self.reason = reason
        self._payload = payload

    async def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class StubSession:
    """Replays queued responses (or raises queued exceptions) in call order."""

    def __init__(self, responses: List[Any]):
        self._responses = list(responses)
        self.calls: List[tuple] = []
        self.closed = False

    def get(self, url: str, headers: Optional[dict] = None):
        self.calls.append((url, headers))
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_pool(
    pool_id: str,
    live_stake: Optional[str] = "5000000",
    blocks_minted: int = 0,
    name: Optional[str] = None,
    homepage: str = "",
    ticker: str = "",
) -> StakePool:
    """Build a pool record as it would come out of the cache."""
    data = {
        "pool_id": pool_id,
        "hex": f"{pool_id}-hex",
        "live_stake": live_stake,
        "blocks_minted": blocks_minted,
        "active": True,
    }
    if name is not None:
        data["metadata"] = {"name": name, "ticker": ticker, "homepage": homepage}
    return StakePool.from_api(data)


def block_payload(height: int, slot_leader: str = "pool1leader") -> dict:
    """A `/blocks/latest` response body."""
    return {
        "time": 1700000000 + height,
        "height": height,
        "hash": f"hash{height}",
        "slot": 100000 + height,
        "epoch": 450,
        "epoch_slot": 1234,
        "slot_leader": slot_leader,
        "size": 1024,
        "tx_count": 4,
    }


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def blockfrost_settings():
    return BlockfrostSettings(
        base_url="https://blockfrost.test/api/v0",
        project_id="test-project",
        retry_count=3,
        retry_delay_seconds=1.0,
        rate_limit_delay_seconds=2.0,
    )


@pytest.fixture
def cache_store(tmp_path):
    """Cache store rooted in a per-test directory."""
    return CacheStore(tmp_path / "cache")


@pytest.fixture
def sample_pools():
    return [
        make_pool("pool1alpha", live_stake="64000000000000", blocks_minted=1000,
                  name="Alpha Pool", ticker="ALPHA", homepage="https://www.alpha.io"),
        make_pool("pool1beta", live_stake="25000000000000", blocks_minted=400,
                  name="Beta Pool", ticker="BETA", homepage="beta.example.com"),
        make_pool("pool1gamma", live_stake="9000000000000", blocks_minted=0,
                  name="Gamma Pool", ticker="GAMMA"),
        # Never rendered: no metadata
        make_pool("pool1bare", live_stake="1000000000"),
    ]


@pytest.fixture
def mock_blockfrost():
    """Upstream client with every network call mocked."""
    client = Mock(spec=BlockfrostClient)
    client.get_latest_block = AsyncMock()
    client.get_latest_epoch = AsyncMock()
    client.list_pool_ids = AsyncMock()
    client.get_pool = AsyncMock()
    client.get_pool_metadata = AsyncMock()
    return client


@pytest.fixture
def block_poller(mock_blockfrost, sample_pools):
    return LiveBlockPoller(
        fetch_latest=mock_blockfrost.get_latest_block,
        pools_provider=lambda: sample_pools,
        interval_seconds=60,
    )


@pytest.fixture(scope="function")
async def client(cache_store, mock_blockfrost, block_poller):
    """Create test client with test services."""
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    app.dependency_overrides[get_blockfrost_client] = lambda: mock_blockfrost
    app.dependency_overrides[get_block_poller] = lambda: block_poller

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
