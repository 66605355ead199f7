"""Tests for the pool ingestion pipeline.

The upstream client is fully mocked; inter-batch delays are recorded.
"""

import pytest

from poolmap.services.blockfrost import NetworkError
from poolmap.services.config import IngestionSettings
from poolmap.services.ingestion import (
    DiscoveryLimitExceeded,
    PoolIngestionService,
)


def pool_detail(pool_id: str) -> dict:
    return {
        "pool_id": pool_id,
        "hex": f"{pool_id}-hex",
        "vrf_key": f"{pool_id}-vrf",
        "blocks_minted": 12,
        "blocks_epoch": 1,
        "live_stake": "5000000000",
        "live_size": 0.001,
        "live_saturation": 0.1,
        "live_delegators": 40,
        "active_stake": "4900000000",
        "margin_cost": 0.02,
    }


def pool_metadata(pool_id: str) -> dict:
    return {
        "pool_id": pool_id,
        "url": f"https://{pool_id}.io/meta.json",
        "hash": "abc",
        "ticker": pool_id[-3:].upper(),
        "name": f"Pool {pool_id}",
        "description": "A test pool",
        "homepage": f"https://{pool_id}.io",
    }


def paged(pool_ids, page_size=100):
    """list_pool_ids side effect serving `pool_ids` in pages, then empty."""
    pages = [pool_ids[i:i + page_size] for i in range(0, len(pool_ids), page_size)]

    async def list_pool_ids(page):
        return pages[page - 1] if page <= len(pages) else []
    return list_pool_ids


@pytest.fixture
def ingestion_settings():
    return IngestionSettings(batch_size=2, batch_delay_seconds=0.5, max_pages=10)


@pytest.fixture
def upstream(mock_blockfrost):
    """Mock client that knows pool1..pool5."""
    pool_ids = [f"pool{i}" for i in range(1, 6)]
    mock_blockfrost.list_pool_ids.side_effect = paged(pool_ids)
    mock_blockfrost.get_pool.side_effect = pool_detail
    mock_blockfrost.get_pool_metadata.side_effect = pool_metadata
    return mock_blockfrost


@pytest.fixture
def service(upstream, ingestion_settings, sleep_recorder):
    return PoolIngestionService(upstream, ingestion_settings, sleep=sleep_recorder)


class TestDiscovery:
    """Paginated identifier discovery."""

    @pytest.mark.asyncio
    async def test_collects_pages_in_order(self, mock_blockfrost, ingestion_settings):
        mock_blockfrost.list_pool_ids.side_effect = [["a", "b"], ["c"], []]
        service = PoolIngestionService(mock_blockfrost, ingestion_settings)

        assert await service.discover_pool_ids() == ["a", "b", "c"]
        assert [c.args[0] for c in mock_blockfrost.list_pool_ids.await_args_list] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_page_ceiling(self, mock_blockfrost):
        mock_blockfrost.list_pool_ids.return_value = ["pool1same"]
        service = PoolIngestionService(mock_blockfrost, IngestionSettings(max_pages=3))

        with pytest.raises(DiscoveryLimitExceeded) as exc_info:
            await service.discover_pool_ids()

        assert exc_info.value.max_pages == 3
        assert exc_info.value.discovered == 3
        assert mock_blockfrost.list_pool_ids.await_count == 3

    @pytest.mark.asyncio
    async def test_discovery_failure_aborts_run(self, mock_blockfrost, ingestion_settings):
        mock_blockfrost.list_pool_ids.side_effect = NetworkError("boom", endpoint="/pools?page=1")
        service = PoolIngestionService(mock_blockfrost, ingestion_settings)

        with pytest.raises(NetworkError):
            await service.run()

        mock_blockfrost.get_pool.assert_not_awaited()


class TestBatching:
    """Batch count and inter-batch delay."""

    @pytest.mark.asyncio
    async def test_batches_and_delays(self, service, sleep_recorder):
        """5 pools in batches of 2: 3 batches, 2 delays."""
        result = await service.run()

        assert result.discovered == 5
        assert result.batches == 3
        assert sleep_recorder.calls == [0.5, 0.5]
        assert [p.pool_id for p in result.pools] == ["pool1", "pool2", "pool3", "pool4", "pool5"]
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_exact_multiple_of_batch_size(self, mock_blockfrost, sleep_recorder):
        mock_blockfrost.list_pool_ids.side_effect = paged([f"pool{i}" for i in range(6)])
        mock_blockfrost.get_pool.side_effect = pool_detail
        mock_blockfrost.get_pool_metadata.side_effect = pool_metadata
        service = PoolIngestionService(
            mock_blockfrost,
            IngestionSettings(batch_size=3, batch_delay_seconds=1.0),
            sleep=sleep_recorder,
        )

        result = await service.run()

        assert result.batches == 2
        assert sleep_recorder.calls == [1.0]

    @pytest.mark.asyncio
    async def test_no_pools(self, mock_blockfrost, ingestion_settings, sleep_recorder):
        mock_blockfrost.list_pool_ids.side_effect = [[]]
        service = PoolIngestionService(mock_blockfrost, ingestion_settings, sleep=sleep_recorder)
        progress = []

        result = await service.run(on_progress=lambda done, total: progress.append((done, total)))

        assert result.pools == []
        assert result.batches == 0
        assert sleep_recorder.calls == []
        assert progress == [(0, 0)]

    @pytest.mark.asyncio
    async def test_progress_reported_per_batch(self, service):
        progress = []

        await service.run(on_progress=lambda done, total: progress.append((done, total)))

        assert progress == [(0, 5), (2, 5), (4, 5), (5, 5)]

    @pytest.mark.asyncio
    async def test_enriched_pool_shape(self, service):
        pools = await service.fetch_all_pools()

        pool = pools[0]
        assert pool.active is True
        assert pool.metadata.name == "Pool pool1"
        assert pool.metadata.homepage == "https://pool1.io"
        data = pool.to_dict()
        assert data["live_stake"] == "5000000000"
        assert data["margin_cost"] == 0.02
        assert data["metadata"]["ticker"] == "OL1"


class TestFailureIsolation:
    """Failures are absorbed at the smallest scope."""

    @pytest.mark.asyncio
    async def test_detail_network_error_drops_only_that_pool(self, service, upstream, sleep_recorder):
        def get_pool(pool_id):
            if pool_id == "pool2":
                raise NetworkError("Failed to fetch /pools/pool2 after 3 attempts", endpoint="/pools/pool2")
            return pool_detail(pool_id)
        upstream.get_pool.side_effect = get_pool

        result = await service.run()

        assert [p.pool_id for p in result.pools] == ["pool1", "pool3", "pool4", "pool5"]
        assert result.dropped == 1
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.pool_ids == ["pool2"]
        assert failure.batch_index == 0
        assert failure.whole_batch is False
        assert sleep_recorder.calls == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_unexpected_error_drops_whole_batch(self, service, upstream, sleep_recorder):
        def get_pool(pool_id):
            if pool_id == "pool3":
                raise RuntimeError("unexpected payload")
            return pool_detail(pool_id)
        upstream.get_pool.side_effect = get_pool

        result = await service.run()

        # Batch 1 (pool3, pool4) is lost; the run continues
        assert [p.pool_id for p in result.pools] == ["pool1", "pool2", "pool5"]
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.whole_batch is True
        assert failure.pool_ids == ["pool3", "pool4"]
        assert failure.batch_index == 1
        assert isinstance(failure.cause, RuntimeError)
        # The delay still follows a failed batch
        assert sleep_recorder.calls == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_metadata_failure_keeps_pool(self, service, upstream):
        def get_pool_metadata(pool_id):
            if pool_id == "pool1":
                raise NetworkError("API call failed: 404 - Not Found", status=404)
            return pool_metadata(pool_id)
        upstream.get_pool_metadata.side_effect = get_pool_metadata

        result = await service.run()

        assert len(result.pools) == 5
        pool1 = result.pools[0]
        assert pool1.pool_id == "pool1"
        assert pool1.metadata is None
        assert "metadata" not in pool1.to_dict()
        assert result.pools[1].metadata is not None

    @pytest.mark.asyncio
    async def test_undecodable_metadata_keeps_batch(self, service, upstream):
        def get_pool_metadata(pool_id):
            if pool_id == "pool1":
                raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
            return pool_metadata(pool_id)
        upstream.get_pool_metadata.side_effect = get_pool_metadata

        result = await service.run()

        assert [p.pool_id for p in result.pools] == ["pool1", "pool2", "pool3", "pool4", "pool5"]
        assert result.pools[0].metadata is None
        assert result.pools[1].metadata is not None
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_detail_without_pool_id_is_skipped(self, service, upstream):
        def get_pool(pool_id):
            if pool_id == "pool4":
                return {"hex": "orphan"}
            return pool_detail(pool_id)
        upstream.get_pool.side_effect = get_pool

        result = await service.run()

        assert [p.pool_id for p in result.pools] == ["pool1", "pool2", "pool3", "pool5"]
