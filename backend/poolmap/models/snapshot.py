"""The persisted result of one ingestion run."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .pool import StakePool


@dataclass
class CacheSnapshot:
    """Pools in ingestion completion order plus the run's completion time."""
    pools: List[StakePool] = field(default_factory=list)
    last_update: str = ""  # ISO-8601

    @property
    def total_pools(self) -> int:
        return len(self.pools)

    def pool_by_id(self, pool_id: str) -> Optional[StakePool]:
        for pool in self.pools:
            if pool.pool_id == pool_id:
                return pool
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the `/api/pools` response shape."""
        return {
            "pools": [pool.to_dict() for pool in self.pools],
            "lastUpdate": self.last_update,
            "totalPools": self.total_pools,
        }
