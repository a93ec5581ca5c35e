"""WebSocket router streaming slot, trip and container events to dashboards."""
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.services.websocket_manager import manager
from app.utils.time import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/events")
async def events_endpoint(websocket: WebSocket, terminal_id: Optional[str] = Query(None)):
    """
    Push every domain event to the client as JSON.

    Clients connect with an optional terminal filter:
    ws://host/api/ws/events?terminal_id=<id>

    Message Types (Client -> Server):
    - ping: Keep-alive, answered with pong

    Message Types (Server -> Client):
    - connected: Sent once after the handshake
    - slot.*, trip.*, container.*, vessel.*, driver.*: Domain events
    """
    await websocket.accept()
    await manager.connect(websocket, terminal_id)
    try:
        await websocket.send_json({
            "type": "connected",
            "data": {"terminal_id": terminal_id},
            "timestamp": utcnow().isoformat(),
        })
        while True:
            message = await websocket.receive_json()
            if message.get("type") == "ping":
                await websocket.send_json({"type": "pong", "timestamp": utcnow().isoformat()})
            else:
                logger.debug("Ignoring WebSocket message type %s", message.get("type"))
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
