"""
Live block poller.

Polls the newest chain block on a fixed interval (plus once immediately on
start) and tracks:
- the last observed block height
- the current slot leader (drives the renderer's highlight)
- a bounded, newest-first history of distinct blocks

A block is novel iff its height differs from the last observed height. Only
novel blocks update state or reach listeners.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from ..models import BlockNotification, BlockSummary, StakePool, UNKNOWN_POOL_NAME

logger = logging.getLogger(__name__)

FetchLatest = Callable[[], Awaitable[BlockSummary]]
PoolsProvider = Callable[[], Iterable[StakePool]]
BlockListener = Callable[[BlockNotification], Awaitable[None]]

DEFAULT_INTERVAL_SECONDS = 15.0
DEFAULT_HISTORY_SIZE = 3


class LiveBlockPoller:
    """Periodically fetches the latest block and maintains leader/history state."""

    def __init__(
        self,
        fetch_latest: FetchLatest,
        pools_provider: PoolsProvider,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        """
        Args:
            fetch_latest: Coroutine returning the newest BlockSummary
            pools_provider: Returns the currently loaded pools, used to
                resolve a slot leader id to a display name
            interval_seconds: Delay between ticks
            history_size: Maximum number of history entries kept
        """
        self._fetch_latest = fetch_latest
        self._pools_provider = pools_provider
        self.interval_seconds = interval_seconds
        self.history_size = history_size

        self._last_height: Optional[int] = None
        self._current_leader: Optional[str] = None
        self._history: List[BlockNotification] = []
        self._listeners: List[BlockListener] = []

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._stopped = False

    @property
    def current_leader(self) -> Optional[str]:
        return self._current_leader

    @property
    def last_height(self) -> Optional[int]:
        return self._last_height

    @property
    def history(self) -> List[BlockNotification]:
        return list(self._history)

    @property
    def running(self) -> bool:
        return self._running

    def add_listener(self, listener: BlockListener) -> None:
        """Register a coroutine awaited with every novel block."""
        self._listeners.append(listener)

    async def start(self) -> None:
        """Start polling in the background."""
        if self._running:
            return

        self._running = True
        self._stopped = False
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Block poller started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Tear down the polling loop. Responses arriving afterwards are discarded."""
        self._running = False
        self._stopped = True

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Block poller stopped")

    async def _poll_loop(self) -> None:
        """Tick immediately, then once per interval."""
        while self._running:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error in block poll loop: {e}")
            await asyncio.sleep(self.interval_seconds)

    async def tick(self) -> Optional[BlockNotification]:
        """Fetch the latest block and apply it.

        Returns:
            The history entry created, or None if the block was not novel,
            the fetch failed, or the poller was stopped meanwhile.
        """
        try:
            block = await self._fetch_latest()
        except Exception as e:
            logger.error(f"Error fetching latest block: {e}")
            return None

        if self._stopped:
            logger.debug(f"Discarding block {block.height} received after stop")
            return None

        return await self.observe(block)

    async def observe(self, block: BlockSummary) -> Optional[BlockNotification]:
        """Apply an observed block to leader and history state."""
        if block.height == self._last_height:
            return None

        # Resolve before mutating state
        notification = BlockNotification(
            block=block,
            pool_name=self._resolve_pool_name(block.slot_leader),
        )

        self._last_height = block.height
        self._current_leader = block.slot_leader
        # Newest first, one entry per height
        self._history = [notification] + [
            entry for entry in self._history if entry.height != block.height
        ]
        del self._history[self.history_size:]

        logger.info(f"New block #{block.height} minted by {notification.pool_name}")
        await self._notify(notification)
        return notification

    def _resolve_pool_name(self, pool_id: str) -> str:
        try:
            pools = list(self._pools_provider())
        except Exception as e:
            logger.error(f"Error loading pools to resolve {pool_id}: {e}")
            return UNKNOWN_POOL_NAME

        for pool in pools:
            if pool.pool_id == pool_id:
                return pool.display_name
        return UNKNOWN_POOL_NAME

    async def _notify(self, notification: BlockNotification) -> None:
        for listener in self._listeners:
            try:
                await listener(notification)
            except Exception as e:
                logger.error(f"Block listener error: {e}")
