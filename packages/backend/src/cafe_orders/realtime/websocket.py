"""WebSocket endpoint — real-time order events for UIs.

Each connection to /ws/orders becomes one hub subscriber for its
lifetime. Outgoing frames are JSON text: {"type": ..., "data": ...}.
Clients may send {"type": "ping"} and get {"type": "pong"} back, queued
behind any pending events so frames never interleave. A pong that does
not fit in the backlog drops the subscriber like any other overflow, and
the socket is closed.
"""

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from cafe_orders.realtime.hub import BroadcastHub

logger = structlog.get_logger()
router = APIRouter()

PONG = json.dumps({"type": "pong"})


@router.websocket("/ws/orders")
async def orders_websocket(websocket: WebSocket):
    """Stream newOrder / orderUpdate / orderDeleted events to the client."""
    await websocket.accept()

    hub: BroadcastHub = websocket.app.state.hub
    subscriber = hub.subscribe(websocket.send_text)
    logger.info("ws.connected", subscriber=subscriber.id)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "ping":
                if not hub.enqueue(subscriber, PONG):
                    await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
                    break
    except WebSocketDisconnect:
        pass
    finally:
        hub.unsubscribe(subscriber)
        logger.info("ws.disconnected", subscriber=subscriber.id)
