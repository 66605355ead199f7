"""Pool ingestion pipeline.

Two sequential phases, no persisted intermediate state:

1. Discovery: page through `/pools?page=N` until an empty page, collecting
   every pool identifier in page order. A page ceiling guards against an
   upstream that never returns an empty page.
2. Enrichment: process identifiers in fixed-size batches. Within a batch,
   detail requests run concurrently; each detailed pool then gets its
   metadata. Batches run strictly one after another with a flat delay in
   between, which is the only rate-limit backpressure.

Failures are absorbed at the smallest scope: a pool whose detail call
exhausts its retries is dropped, a pool whose metadata call fails is kept
without metadata, and a batch that fails as a whole is skipped. Only
discovery failures abort the run.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..models import PoolMetadata, StakePool
from .blockfrost import BlockfrostClient, NetworkError
from .config import IngestionSettings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
SleepFunc = Callable[[float], Awaitable[None]]


class DiscoveryLimitExceeded(Exception):
    """Discovery read `max_pages` non-empty pages without reaching the end."""

    def __init__(self, max_pages: int, discovered: int):
        self.max_pages = max_pages
        self.discovered = discovered
        super().__init__(
            f"Pool discovery did not terminate within {max_pages} pages "
            f"({discovered} identifiers collected)"
        )


class PartialEnrichmentFailure(Exception):
    """A pool or a whole batch that was dropped from the ingestion result.

    Never raised out of the pipeline; instances are logged and collected on
    the `IngestionResult`.
    """

    def __init__(
        self,
        message: str,
        pool_ids: List[str],
        batch_index: int,
        cause: BaseException,
        whole_batch: bool = False,
    ):
        self.pool_ids = pool_ids
        self.batch_index = batch_index
        self.cause = cause
        self.whole_batch = whole_batch
        super().__init__(message)


@dataclass
class IngestionResult:
    """Outcome of one ingestion run."""
    pools: List[StakePool] = field(default_factory=list)
    discovered: int = 0
    batches: int = 0
    failures: List[PartialEnrichmentFailure] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        return self.discovered - len(self.pools)


class PoolIngestionService:
    """Discovers all stake pools and enriches them with detail and metadata."""

    def __init__(
        self,
        client: BlockfrostClient,
        settings: Optional[IngestionSettings] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the pipeline.

        Args:
            client: Upstream client (owns the retry policy)
            settings: Batch size, inter-batch delay and discovery page ceiling
            sleep: Coroutine used for the inter-batch delay
        """
        self.client = client
        self.settings = settings or IngestionSettings()
        self._sleep = sleep

    async def discover_pool_ids(self) -> List[str]:
        """Collect every pool identifier, page by page.

        Raises:
            NetworkError: If a page could not be fetched
            DiscoveryLimitExceeded: If `max_pages` pages were all non-empty
        """
        logger.info("Fetching all pool IDs...")
        all_pool_ids: List[str] = []

        for page in range(1, self.settings.max_pages + 1):
            pool_ids = await self.client.list_pool_ids(page)
            if not pool_ids:
                return all_pool_ids
            all_pool_ids.extend(pool_ids)
            logger.debug(f"Fetched page {page}, total pools so far: {len(all_pool_ids)}")

        raise DiscoveryLimitExceeded(self.settings.max_pages, len(all_pool_ids))

    async def run(self, on_progress: Optional[ProgressCallback] = None) -> IngestionResult:
        """Run discovery followed by batched enrichment.

        Args:
            on_progress: Called with (0, total) after discovery and with
                (collected, total) after each successful batch

        Returns:
            IngestionResult with the enriched pools in completion order
        """
        pool_ids = await self.discover_pool_ids()
        total = len(pool_ids)
        logger.info(f"Found {total} total pools to process")

        result = IngestionResult(discovered=total)
        if on_progress:
            on_progress(0, total)

        batch_size = self.settings.batch_size
        for batch_index, start in enumerate(range(0, total, batch_size)):
            batch_ids = pool_ids[start:start + batch_size]
            result.batches += 1
            logger.debug(f"Processing batch {batch_index} starting at index {start}")

            try:
                batch_pools = await self._process_batch(batch_ids, batch_index, result.failures)
            except Exception as e:
                failure = PartialEnrichmentFailure(
                    f"Batch {batch_index} failed: {e}", batch_ids, batch_index, e, whole_batch=True
                )
                result.failures.append(failure)
                logger.error(f"Error processing batch at index {start}, skipping {len(batch_ids)} pools: {e}")
            else:
                result.pools.extend(batch_pools)
                if on_progress:
                    on_progress(len(result.pools), total)
                logger.info(f"Processed {len(result.pools)}/{total} pools")

            # Respect the upstream rate limit between batches
            if start + batch_size < total:
                logger.debug(f"Waiting {self.settings.batch_delay_seconds}s before next batch...")
                await self._sleep(self.settings.batch_delay_seconds)

        logger.info(
            f"Finished processing all pools. Total pools collected: {len(result.pools)} "
            f"({result.dropped} dropped)"
        )
        return result

    async def fetch_all_pools(self, on_progress: Optional[ProgressCallback] = None) -> List[StakePool]:
        """Run the pipeline and return only the enriched pools."""
        result = await self.run(on_progress)
        return result.pools

    async def _process_batch(
        self,
        batch_ids: List[str],
        batch_index: int,
        failures: List[PartialEnrichmentFailure],
    ) -> List[StakePool]:
        """Fetch detail for every pool in the batch, then their metadata.

        Per-pool NetworkErrors are absorbed here; anything else propagates
        and fails the whole batch.
        """
        details = await asyncio.gather(
            *(self._fetch_detail(pool_id, batch_index, failures) for pool_id in batch_ids)
        )
        pools = await asyncio.gather(
            *(self._attach_metadata(detail) for detail in details if detail is not None)
        )
        return [pool for pool in pools if pool is not None]

    async def _fetch_detail(
        self,
        pool_id: str,
        batch_index: int,
        failures: List[PartialEnrichmentFailure],
    ) -> Optional[Dict[str, Any]]:
        try:
            return await self.client.get_pool(pool_id)
        except NetworkError as e:
            failures.append(PartialEnrichmentFailure(
                f"Detail fetch for {pool_id} failed: {e}", [pool_id], batch_index, e
            ))
            logger.warning(f"Dropping pool {pool_id}: detail fetch failed: {e}")
            return None

    async def _attach_metadata(self, detail: Dict[str, Any]) -> Optional[StakePool]:
        """Build the pool record, adding metadata when it can be fetched."""
        if not detail.get("pool_id"):
            logger.warning(f"Skipping pool detail without pool_id: {list(detail)[:5]}")
            return None

        pool = StakePool.from_api(detail)
        pool.active = True

        try:
            metadata = await self.client.get_pool_metadata(pool.pool_id)
        except Exception as e:
            logger.warning(f"No metadata for pool {pool.pool_id}: {e!r}")
            return pool

        if isinstance(metadata, dict):
            pool.metadata = PoolMetadata.from_api(metadata)
        return pool
