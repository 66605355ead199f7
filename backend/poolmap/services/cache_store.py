"""File-backed cache of the latest ingestion result.

One JSON artifact holds both the pool list and the completion timestamp:

    cache/stake-pools.json  {"lastUpdate": "<ISO-8601>", "pools": [...]}

It is written to a temporary file in the same directory and renamed into
place, so a reader sees either the previous snapshot or the new one, never
a pool list paired with another run's timestamp. Older deployments wrote a
bare pool array plus `last-update.txt`; that layout is still readable.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from ..models import CacheSnapshot, StakePool

logger = logging.getLogger(__name__)

POOLS_CACHE_FILE = "stake-pools.json"
LEGACY_TIMESTAMP_FILE = "last-update.txt"


class CacheUnavailable(Exception):
    """No snapshot has been written yet. Retry after the next ingestion run."""


class CacheCorrupt(Exception):
    """The snapshot exists but could not be parsed."""


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CacheStore:
    """Reads and writes the pool snapshot under a cache directory."""

    def __init__(self, cache_dir: Union[str, Path] = "cache"):
        self.cache_dir = Path(cache_dir)
        self.pools_file = self.cache_dir / POOLS_CACHE_FILE
        self.legacy_timestamp_file = self.cache_dir / LEGACY_TIMESTAMP_FILE
        # Last parsed snapshot and the (inode, mtime, size) it was read from
        self._cached: Optional[Tuple[Tuple[int, int, int], CacheSnapshot]] = None

    def exists(self) -> bool:
        return self.pools_file.exists()

    def write(self, pools: Iterable[StakePool], last_update: Optional[str] = None) -> CacheSnapshot:
        """Replace the snapshot with a new pool list.

        Args:
            pools: Pools in ingestion completion order
            last_update: ISO timestamp; defaults to now

        Returns:
            The snapshot that was written
        """
        snapshot = CacheSnapshot(pools=list(pools), last_update=last_update or utc_now_iso())
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        payload = {
            "lastUpdate": snapshot.last_update,
            "pools": [pool.to_dict() for pool in snapshot.pools],
        }

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{POOLS_CACHE_FILE}.", suffix=".tmp", dir=str(self.cache_dir)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.pools_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Cached {snapshot.total_pools} pools to {self.pools_file}")
        return snapshot

    def read(self) -> CacheSnapshot:
        """Load the current snapshot.

        The parsed snapshot is reused until the artifact is replaced, so
        repeated reads cost one `stat`. Callers must not mutate it.

        Raises:
            CacheUnavailable: If no snapshot has been written
            CacheCorrupt: If the snapshot cannot be parsed
        """
        try:
            stat = self.pools_file.stat()
        except FileNotFoundError:
            raise CacheUnavailable(f"Pool data not cached yet ({self.pools_file})")

        key = (stat.st_ino, stat.st_mtime_ns, stat.st_size)
        if self._cached is not None and self._cached[0] == key:
            return self._cached[1]

        snapshot = self._parse()
        self._cached = (key, snapshot)
        return snapshot

    def _parse(self) -> CacheSnapshot:
        try:
            with open(self.pools_file, "r", encoding="utf-8") as f:
                data = json.load(f)

            if isinstance(data, list):
                return CacheSnapshot(
                    pools=[StakePool.from_api(item) for item in data],
                    last_update=self._read_legacy_timestamp(),
                )

            return CacheSnapshot(
                pools=[StakePool.from_api(item) for item in data["pools"]],
                last_update=data.get("lastUpdate", ""),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise CacheCorrupt(f"Could not parse {self.pools_file}: {e}") from e

    def _read_legacy_timestamp(self) -> str:
        try:
            return self.legacy_timestamp_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return ""
