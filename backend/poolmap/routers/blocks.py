"""Chain tip router.

Endpoints:
- Latest block (proxied to the provider on every call)
- Live block history kept by the poller
- Current epoch
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..dependencies import get_blockfrost_client, get_block_poller
from ..services.blockfrost import BlockfrostClient
from ..services.block_poller import LiveBlockPoller

logger = logging.getLogger(__name__)

router = APIRouter()


class BlockResponse(BaseModel):
    """Latest block summary."""
    slot_leader: str
    time: int
    height: int
    hash: str
    epoch: int
    slot: int


class BlockHistoryEntry(BlockResponse):
    """A novel block seen by the poller, with the producing pool's name."""
    poolName: str
    uniqueId: str


class BlockHistoryResponse(BaseModel):
    currentLeader: Optional[str]
    history: List[BlockHistoryEntry]


@router.get("/blocks/latest", response_model=BlockResponse)
async def get_latest_block(client: BlockfrostClient = Depends(get_blockfrost_client)):
    """Fetch the newest block from the provider."""
    try:
        block = await client.get_latest_block()
    except Exception as e:
        logger.error(f"Error fetching latest block: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch latest block"},
        )

    return block.to_dict()


@router.get("/blocks/history", response_model=BlockHistoryResponse)
async def get_block_history(poller: LiveBlockPoller = Depends(get_block_poller)):
    """Newest-first history of novel blocks and the current slot leader."""
    return {
        "currentLeader": poller.current_leader,
        "history": [entry.to_dict() for entry in poller.history],
    }


@router.get("/epochs/latest")
async def get_latest_epoch(client: BlockfrostClient = Depends(get_blockfrost_client)):
    """Fetch the current epoch from the provider."""
    try:
        return await client.get_latest_epoch()
    except Exception as e:
        logger.error(f"Error fetching latest epoch: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch latest epoch"},
        )
