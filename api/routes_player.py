"""
Player Routes

Kiosk page, frame/status endpoints, and the page's callbacks
(manual retry, natural video end) plus the frame WebSocket.
"""
import logging
import os
from typing import TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse

from models.request_models import VideoEndedRequest
from utils.route_helpers import manager_operation, require_running_player

if TYPE_CHECKING:
    from managers.player_manager import PlayerManager
    from managers.websocket_manager import WebSocketManager

STATIC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "static")


def setup_player_routes(player_manager: 'PlayerManager', websocket_manager: 'WebSocketManager') -> APIRouter:
    """
    Setup player routes with dependency injection

    Args:
        player_manager: PlayerManager running the player loop
        websocket_manager: WebSocketManager for frame pushes

    Returns:
        Configured APIRouter
    """
    router = APIRouter()

    @router.get("/")
    async def kiosk_page():
        """Serve the kiosk page shell"""
        return FileResponse(os.path.join(STATIC_DIR, "kiosk.html"))

    @router.get("/player/frame")
    async def get_frame():
        """Current frame, including the rendered HTML fragment"""
        return player_manager.frame_payload()

    @router.get("/player/status")
    async def get_status():
        """Player loop status summary"""
        return player_manager.get_status()

    @router.post("/player/retry")
    async def retry_fetch():
        """Fetch the display immediately (manual retry affordance)"""
        require_running_player(player_manager)
        refreshed = await manager_operation(player_manager.retry(), error_context="retry display fetch")
        if refreshed:
            return {"message": "Display refreshed", "error": None}
        return {"message": "Display fetch failed", "error": _error_dict(player_manager)}

    @router.post("/player/video-ended")
    async def video_ended(request: VideoEndedRequest):
        """Natural end of the video currently on screen"""
        require_running_player(player_manager)
        advanced = player_manager.video_ended(request.item_id)
        return {"advanced": advanced, "index": player_manager.slides.index}

    @router.websocket("/ws/player")
    async def player_socket(websocket: WebSocket):
        await websocket_manager.connect(websocket, initial_frame=player_manager.frame_payload())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            await websocket_manager.disconnect(websocket)
        except Exception as e:
            logging.debug(f"Kiosk socket closed: {e}")
            await websocket_manager.disconnect(websocket)

    return router


def _error_dict(player_manager: 'PlayerManager'):
    error = player_manager.fetcher.error
    return error.to_dict() if error else None
