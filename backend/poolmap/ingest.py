"""Scheduled pool ingestion job.

Runs one full discovery + enrichment pass and replaces the cached snapshot.

Usage:
    BLOCKFROST_PROJECT_ID=mainnet... poolmap-ingest
    python -m poolmap.ingest --config config.yaml --cache-dir /var/lib/poolmap
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .models import CacheSnapshot
from .services.blockfrost import BlockfrostClient, NetworkError
from .services.cache_store import CacheStore
from .services.config import (
    ConfigService,
    ConfigValidationException,
    Settings,
    configure_logging,
)
from .services.ingestion import DiscoveryLimitExceeded, PoolIngestionService

logger = logging.getLogger(__name__)


def _log_progress(collected: int, total: int) -> None:
    logger.info(f"Progress: {collected}/{total} pools")


async def run_ingestion(settings: Settings) -> CacheSnapshot:
    """Fetch every pool and write the snapshot.

    Raises:
        NetworkError: If discovery could not fetch a page
        DiscoveryLimitExceeded: If discovery hit the page ceiling
        OSError: If the snapshot could not be written
    """
    store = CacheStore(settings.cache.directory)

    async with BlockfrostClient(settings.blockfrost) as client:
        service = PoolIngestionService(client, settings.ingestion)
        result = await service.run(on_progress=_log_progress)

    if result.failures:
        logger.warning(
            f"{len(result.failures)} enrichment failure(s), {result.dropped} pool(s) dropped"
        )

    return store.write(result.pools)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch all stake pools and refresh the cache")
    parser.add_argument("--config", help="Path to config.yaml (default: $POOLMAP_CONFIG or backend/config.yaml)")
    parser.add_argument("--cache-dir", help="Override cache.directory")
    parser.add_argument("--batch-size", type=int, help="Override ingestion.batch_size")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint. Returns the process exit code."""
    args = parse_args(argv)

    try:
        settings = ConfigService(args.config).load_settings()
        if args.cache_dir:
            settings.cache.directory = args.cache_dir
        if args.batch_size is not None and args.batch_size >= 1:
            settings.ingestion.batch_size = args.batch_size
        settings.require_credential()
    except ConfigValidationException as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.logging)

    try:
        snapshot = asyncio.run(run_ingestion(settings))
    except (NetworkError, DiscoveryLimitExceeded) as e:
        logger.error(f"Ingestion failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not write pool cache: {e}")
        return 1

    logger.info(f"Pool data cached successfully ({snapshot.total_pools} pools at {snapshot.last_update})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
