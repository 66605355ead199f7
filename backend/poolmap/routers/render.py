"""Bubble chart router.

Returns the complete render instructions for the cached pools, with the
poller's current slot leader highlighted.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..dependencies import get_cache_store, get_block_poller
from ..services.block_poller import LiveBlockPoller
from ..services.cache_store import CacheStore, CacheUnavailable, CacheCorrupt
from ..services.renderer import build_render_instructions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/render")
async def get_render_instructions(
    dark_mode: bool = Query(False, description="Use the dark color theme"),
    store: CacheStore = Depends(get_cache_store),
    poller: LiveBlockPoller = Depends(get_block_poller),
):
    """Layout, colors, legend and leader highlight for the bubble chart."""
    try:
        snapshot = store.read()
    except CacheUnavailable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Pool data not cached yet"},
        )
    except CacheCorrupt as e:
        logger.error(f"Error reading cached pools for render: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    instructions = build_render_instructions(
        snapshot.pools,
        current_leader_id=poller.current_leader,
        dark_mode=dark_mode,
    )
    logger.debug(f"Rendered {len(instructions.nodes)} of {snapshot.total_pools} pools")
    return instructions.to_dict()
