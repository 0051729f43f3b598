"""
System Routes

Handles health checks, diagnostics and kiosk browser status.
"""
import os
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from fastapi import APIRouter

if TYPE_CHECKING:
    from managers.chromium_manager import ChromiumManager
    from managers.player_manager import PlayerManager
    from managers.websocket_manager import WebSocketManager

VERSION = "1.0.0"


def setup_system_routes(
    player_manager: 'PlayerManager',
    websocket_manager: Optional['WebSocketManager'] = None,
    chromium_manager: Optional['ChromiumManager'] = None
) -> APIRouter:
    """
    Setup system routes with dependency injection

    Args:
        player_manager: PlayerManager for loop status
        websocket_manager: Optional WebSocketManager for connection counts
        chromium_manager: Optional ChromiumManager when kiosk mode is enabled

    Returns:
        Configured APIRouter
    """
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy" if player_manager.running else "stopped",
            "timestamp": datetime.now().isoformat(),
            "version": VERSION,
        }

    @router.get("/diagnostics")
    async def get_diagnostics():
        """API target, kiosk connections and armed timers"""
        return {
            "timestamp": datetime.now().isoformat(),
            "display_env": os.getenv('DISPLAY', 'not_set'),
            "api_url": player_manager.client.session.api_url,
            "device_key": player_manager.client.device_key,
            "kiosk_connections": websocket_manager.get_connection_count() if websocket_manager else 0,
            "frames_pushed": websocket_manager.frames_sent if websocket_manager else 0,
            "timers": player_manager.scheduler.pending(),
        }

    @router.get("/kiosk/status")
    async def kiosk_status():
        """Chromium kiosk process status"""
        if chromium_manager is None:
            return {"enabled": False, "is_running": False}
        return {"enabled": True, **chromium_manager.get_status()}

    return router
