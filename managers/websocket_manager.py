"""
WebSocket Manager

Pushes rendered frames to the connected kiosk pages.
"""
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

FRAME_EVENT = "frame"


class WebSocketManager:
    """Tracks kiosk page sockets and pushes frame events to them"""

    def __init__(self):
        self.pages: Set[WebSocket] = set()
        self.frames_sent = 0

    async def connect(self, websocket: WebSocket, initial_frame: Optional[Dict[str, Any]] = None):
        """Accept a kiosk page and send it the frame currently on screen"""
        await websocket.accept()
        self.pages.add(websocket)
        logging.info(f"Kiosk page connected ({len(self.pages)} open)")

        if initial_frame is not None and not await self._send(websocket, _encode(FRAME_EVENT, initial_frame)):
            self.pages.discard(websocket)

    async def disconnect(self, websocket: WebSocket):
        if websocket in self.pages:
            self.pages.discard(websocket)
            logging.info(f"Kiosk page disconnected ({len(self.pages)} open)")

    async def broadcast(self, event: str, data: Dict[str, Any]) -> int:
        """
        Send one event to every page.

        Returns:
            Number of pages that received it; pages that fail are dropped
        """
        if not self.pages:
            return 0

        message = _encode(event, data)
        delivered = 0
        for websocket in list(self.pages):
            if await self._send(websocket, message):
                delivered += 1
            else:
                self.pages.discard(websocket)

        if event == FRAME_EVENT:
            self.frames_sent += 1
        return delivered

    async def _send(self, websocket: WebSocket, message: str) -> bool:
        try:
            await websocket.send_text(message)
            return True
        except Exception as e:
            logging.warning(f"Dropping kiosk page after failed send: {e}")
            return False

    def get_connection_count(self) -> int:
        return len(self.pages)


def _encode(event: str, data: Dict[str, Any]) -> str:
    return json.dumps({"event": event, "data": data})
