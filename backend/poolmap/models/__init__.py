# Domain Models

from .pool import PoolMetadata, StakePool, UNKNOWN_POOL_NAME, lovelace_to_ada
from .block import BlockSummary, BlockNotification
from .snapshot import CacheSnapshot

__all__ = [
    "PoolMetadata",
    "StakePool",
    "UNKNOWN_POOL_NAME",
    "lovelace_to_ada",
    "BlockSummary",
    "BlockNotification",
    "CacheSnapshot",
]
