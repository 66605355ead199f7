"""WebSocket router for live block updates."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import logging

from ..services.live_updates import live_update_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for live block updates.

    Messages from client:
    - {"action": "ping"}

    Messages to client:
    - {"type": "block_update", "block": {...}, "current_leader": "pool1...", ...}
      (the current history is replayed oldest first on connect)
    - {"type": "pong"}
    """
    await live_update_manager.connect_client(websocket)

    try:
        while True:
            message = await websocket.receive_text()
            await live_update_manager.handle_client_message(websocket, message)

    except WebSocketDisconnect:
        await live_update_manager.disconnect_client(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        await live_update_manager.disconnect_client(websocket)
