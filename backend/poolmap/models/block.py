"""Chain block summaries and the live block history entries derived from them."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class BlockSummary:
    """The subset of `/blocks/latest` the live view needs."""
    height: int
    slot: int
    epoch: int
    time: int  # Unix seconds
    hash: str
    slot_leader: str  # pool_id of the producer

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "BlockSummary":
        return cls(
            height=int(data["height"]),
            slot=int(data.get("slot") or 0),
            epoch=int(data.get("epoch") or 0),
            time=int(data.get("time") or 0),
            hash=data.get("hash") or "",
            slot_leader=data.get("slot_leader") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_leader": self.slot_leader,
            "time": self.time,
            "height": self.height,
            "hash": self.hash,
            "epoch": self.epoch,
            "slot": self.slot,
        }


@dataclass(frozen=True)
class BlockNotification:
    """A history entry: a novel block annotated with its producer's name."""
    block: BlockSummary
    pool_name: str

    @property
    def unique_id(self) -> str:
        return str(self.block.height)

    @property
    def height(self) -> int:
        return self.block.height

    def to_dict(self) -> Dict[str, Any]:
        result = self.block.to_dict()
        result["poolName"] = self.pool_name
        result["uniqueId"] = self.unique_id
        return result
