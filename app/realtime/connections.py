import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Live WebSocket connections of this worker."""

    def __init__(self, send_timeout: float = 1.0):
        self.send_timeout = send_timeout
        self.active: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active.add(websocket)
        logger.info("A user connected (%d connected)", len(self.active))

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active:
            self.active.discard(websocket)
            logger.info("A user disconnected (%d connected)", len(self.active))

    async def broadcast(self, message: Any) -> int:
        """Send ``message`` as JSON to every connection, returns deliveries.

        Sends run concurrently and each is bounded by ``send_timeout``. A
        connection that fails or does not take the message in time is
        dropped; the others still get it.
        """
        targets = list(self.active)
        results = await asyncio.gather(
            *(self._send(websocket, message) for websocket in targets),
            return_exceptions=True,
        )
        delivered = 0
        for websocket, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(f"Dropping connection after send failure: {result!r}")
                self.disconnect(websocket)
            else:
                delivered += 1
        return delivered

    async def _send(self, websocket: WebSocket, message: Any):
        await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)

    def __len__(self) -> int:
        return len(self.active)


# Connection manager instance (singleton per worker)
manager = ConnectionManager(send_timeout=get_settings().ws_send_timeout)
