from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.realtime.connections import manager

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def task_updates(websocket: WebSocket):
    """Push taskUpdated events; anything the client sends is ignored"""
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
