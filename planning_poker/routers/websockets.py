from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..constants import ROOM_STATE_UPDATED, channel_name
from ..logging_config import get_logger
from ..notifier import ConnectionHub
from ..store import RoomStore

logger = get_logger(__name__)

router = APIRouter(prefix="", tags=["ws"])

CLOSE_ROOM_NOT_FOUND = 4004
# Broadcaster is not the in-process hub, so there is nothing to subscribe to
CLOSE_NO_HUB = 1011


@router.websocket("/ws/{room_id}")
async def room_ws_endpoint(ws: WebSocket, room_id: str):
    """Subscribe to a room's channel. Clients mutate through the REST actions."""
    await ws.accept()
    store: RoomStore = ws.app.state.store
    hub = ws.app.state.broadcaster

    if not isinstance(hub, ConnectionHub):
        logger.warning(f"WebSocket for room {room_id} refused: no connection hub configured")
        await ws.close(code=CLOSE_NO_HUB)
        return

    snapshot = store.get_room_snapshot(room_id) if store.room_exists(room_id) else None
    if snapshot is None:
        await ws.close(code=CLOSE_ROOM_NOT_FOUND)
        return

    channel = channel_name(room_id)
    hub.subscribe(channel, ws)
    await ws.send_json({"type": ROOM_STATE_UPDATED, "data": {"room_state": snapshot.model_dump()}})

    try:
        while True:
            text = await ws.receive_text()
            if text == "ping":
                await ws.send_json({"type": "pong", "data": {}})
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error on {channel}: {e}", exc_info=True)
    finally:
        hub.unsubscribe(channel, ws)
