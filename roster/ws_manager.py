"""WebSocket connection manager.

Tracks connected front-end clients and pushes collection snapshots to them.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WSConnectionManager:
    """Manages WebSocket connections to roster UI clients."""

    def __init__(self) -> None:
        self._active: list[WebSocket] = []
        self._pending: set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        self._active.append(websocket)
        logger.info("WebSocket client connected. Total clients: %d", len(self._active))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._active:
            self._active.remove(websocket)
        logger.info(
            "WebSocket client disconnected. Total clients: %d", len(self._active)
        )

    async def broadcast_text(self, text: str) -> None:
        """Send a text message to all clients; failed clients are dropped.

        Args:
            text: The text string to send (typically JSON).
        """
        disconnected: list[WebSocket] = []

        for ws in list(self._active):
            try:
                await ws.send_text(text)
            except Exception:
                logger.debug("Failed to send to client, marking for removal")
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(ws)

    def schedule_broadcast(self, text: str) -> None:
        """Queue a broadcast on the running loop without awaiting it.

        Called from synchronous store listeners. Outside an event loop
        (scripts, tests without a server) there is nobody to notify.
        """
        if not self._active:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.broadcast_text(text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def client_count(self) -> int:
        """Return the number of connected clients."""
        return len(self._active)
