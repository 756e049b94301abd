from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import logging

from websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/ws")
async def calendar_updates(websocket: WebSocket):
    """Push event and notification changes to connected calendars"""
    await manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("Calendar client disconnected")
    finally:
        manager.disconnect(websocket)
