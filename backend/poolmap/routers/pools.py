"""Cached stake pool router.

Serves the snapshot written by the last ingestion run. Never calls the
upstream provider.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..dependencies import get_cache_store
from ..services.cache_store import CacheStore, CacheUnavailable, CacheCorrupt

logger = logging.getLogger(__name__)

router = APIRouter()


class PoolsResponse(BaseModel):
    """All cached pools with the time of the run that produced them."""
    pools: List[Dict[str, Any]]
    lastUpdate: str
    totalPools: int


@router.get("/pools", response_model=PoolsResponse)
async def get_pools(store: CacheStore = Depends(get_cache_store)):
    """Return the cached pool snapshot."""
    try:
        snapshot = store.read()
    except CacheUnavailable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Pool data not cached yet"},
        )
    except CacheCorrupt as e:
        logger.error(f"Error reading cached pools: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return snapshot.to_dict()
