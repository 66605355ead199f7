"""
WebSocket fan-out of live block updates to connected UI clients.

Provides:
- Client connection tracking
- Replay of the current block history to newly connected clients
- Broadcasting of every novel block observed by the poller
"""
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from ..models import BlockNotification

logger = logging.getLogger(__name__)

HistoryProvider = Callable[[], List[BlockNotification]]


@dataclass
class BlockUpdate:
    """Novel block message for the frontend."""
    type: str = "block_update"
    block: Dict[str, Any] = field(default_factory=dict)
    current_leader: str = ""
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    @classmethod
    def from_notification(cls, notification: BlockNotification) -> "BlockUpdate":
        return cls(
            block=notification.to_dict(),
            current_leader=notification.block.slot_leader,
        )


class LiveUpdateManager:
    """Tracks frontend WebSocket clients and pushes block updates to them."""

    def __init__(self, history_provider: Optional[HistoryProvider] = None):
        self._clients: Set[WebSocket] = set()
        self._history_provider = history_provider

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def set_history_provider(self, history_provider: HistoryProvider) -> None:
        self._history_provider = history_provider

    async def connect_client(self, websocket: WebSocket) -> None:
        """Accept a frontend connection and replay the current history."""
        await websocket.accept()
        self._clients.add(websocket)

        await self._send_history(websocket)

        logger.info(f"Frontend client connected. Total clients: {len(self._clients)}")

    async def disconnect_client(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)
        logger.info(f"Frontend client disconnected. Total clients: {len(self._clients)}")

    async def handle_client_message(self, websocket: WebSocket, message: str) -> None:
        """Handle message from frontend client."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from client: {message[:100]}")
            return

        if isinstance(data, dict) and data.get("action") == "ping":
            await websocket.send_json({"type": "pong"})

    async def _send_history(self, websocket: WebSocket) -> None:
        """Send history oldest first so the client ends on the newest block."""
        if self._history_provider is None:
            return

        try:
            for notification in reversed(self._history_provider()):
                await websocket.send_json(asdict(BlockUpdate.from_notification(notification)))
        except Exception as e:
            logger.error(f"Error sending block history: {e}")

    async def broadcast(self, message: dict) -> None:
        """Broadcast message to all connected clients."""
        if not self._clients:
            return

        disconnected = set()
        # Snapshot: clients may connect while a send is awaited
        for client in list(self._clients):
            try:
                await client.send_json(message)
            except WebSocketDisconnect:
                disconnected.add(client)
            except Exception as e:
                logger.error(f"Broadcast error: {e}")
                disconnected.add(client)

        for client in disconnected:
            await self.disconnect_client(client)

    async def broadcast_block(self, notification: BlockNotification) -> None:
        """Poller listener: push a novel block to every client."""
        await self.broadcast(asdict(BlockUpdate.from_notification(notification)))

    async def stop(self) -> None:
        """Close all client connections."""
        for client in list(self._clients):
            try:
                await client.close()
            except Exception as e:
                logger.debug(f"Error closing client connection: {e}")
        self._clients.clear()
        logger.info("Live update manager stopped")


# Global live update manager instance
live_update_manager = LiveUpdateManager()
