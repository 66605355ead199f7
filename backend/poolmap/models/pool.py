"""Stake pool records as returned by the data provider and stored in the cache."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

UNKNOWN_POOL_NAME = "Unknown Pool"
LOVELACE_PER_ADA = 1_000_000


@dataclass
class PoolMetadata:
    """Off-chain metadata registered by a pool operator."""
    name: str = ""
    description: str = ""
    ticker: str = ""
    homepage: str = ""
    location: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PoolMetadata":
        """Build metadata from a `/pools/{id}/metadata` payload.

        The provider returns nulls for unset fields; those become empty strings.
        """
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            ticker=data.get("ticker") or "",
            homepage=data.get("homepage") or "",
            location=data.get("location"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "description": self.description,
            "ticker": self.ticker,
            "homepage": self.homepage,
        }
        if self.location is not None:
            result["location"] = self.location
        return result


@dataclass
class StakePool:
    """A registered stake pool, enriched with its metadata when available."""
    pool_id: str
    hex: str = ""
    vrf_key: str = ""
    blocks_minted: int = 0
    blocks_epoch: int = 0
    live_stake: Optional[str] = None  # lovelace, integer string
    live_size: float = 0.0
    live_saturation: float = 0.0
    live_delegators: int = 0
    active_stake: Optional[str] = None  # lovelace, integer string
    active: bool = False
    metadata: Optional[PoolMetadata] = None
    # Fields the provider adds that we carry through unchanged
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_FIELDS = (
        "pool_id", "hex", "vrf_key", "blocks_minted", "blocks_epoch",
        "live_stake", "live_size", "live_saturation", "live_delegators",
        "active_stake", "active", "metadata",
    )

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "StakePool":
        """Build a pool from a `/pools/{id}` payload or a cached record.

        Missing numeric fields default to zero so a sparse record never
        breaks sorting or rendering.
        """
        metadata = data.get("metadata")
        return cls(
            pool_id=data["pool_id"],
            hex=data.get("hex") or "",
            vrf_key=data.get("vrf_key") or "",
            blocks_minted=int(data.get("blocks_minted") or 0),
            blocks_epoch=int(data.get("blocks_epoch") or 0),
            live_stake=_amount(data.get("live_stake")),
            live_size=float(data.get("live_size") or 0.0),
            live_saturation=float(data.get("live_saturation") or 0.0),
            live_delegators=int(data.get("live_delegators") or 0),
            active_stake=_amount(data.get("active_stake")),
            active=bool(data.get("active", False)),
            metadata=PoolMetadata.from_api(metadata) if isinstance(metadata, dict) else None,
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape served by `/api/pools`."""
        result: Dict[str, Any] = dict(self.extra)
        result.update({
            "pool_id": self.pool_id,
            "hex": self.hex,
            "vrf_key": self.vrf_key,
            "blocks_minted": self.blocks_minted,
            "blocks_epoch": self.blocks_epoch,
            "live_stake": self.live_stake,
            "live_size": self.live_size,
            "live_saturation": self.live_saturation,
            "live_delegators": self.live_delegators,
            "active_stake": self.active_stake,
            "active": self.active,
        })
        if self.metadata is not None:
            result["metadata"] = self.metadata.to_dict()
        return result

    @property
    def display_name(self) -> str:
        if self.metadata and self.metadata.name:
            return self.metadata.name
        return UNKNOWN_POOL_NAME

    @property
    def live_stake_ada(self) -> float:
        return lovelace_to_ada(self.live_stake)


def lovelace_to_ada(lovelace: Any) -> float:
    """Convert a lovelace amount (int or integer string) to ADA.

    Unparsable amounts count as zero.
    """
    try:
        return int(lovelace) / LOVELACE_PER_ADA
    except (TypeError, ValueError):
        return 0.0


def _amount(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
