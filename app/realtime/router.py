"""Websocket endpoint feeding client frames into the realtime hub"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from .hub import get_realtime_hub
from .schemas import InboundFrame

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    """
    Frames in both directions are JSON objects ``{"event": str, "data": any}``.
    Events of one connection are handled strictly in arrival order.
    """
    hub = get_realtime_hub(websocket.app)
    await websocket.accept()
    connection = hub.connect(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = InboundFrame.model_validate_json(raw)
            except ValidationError:
                logger.debug(f"Dropping malformed frame from {connection.connection_id}")
                continue
            # The transport owns "disconnect"; a client cannot fake it
            if frame.event == "disconnect":
                continue
            await hub.dispatch(connection, frame.event, frame.data)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"⚠️ Socket {connection.connection_id} closed with error: {e}")
    finally:
        await hub.disconnect(connection)
