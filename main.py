"""
Signage Player Main Application

This is the entry point for the signage player.
It wires the player loop, the kiosk page routes and the optional
Chromium kiosk browser together.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

# Player core
from core.api_client import ApiSession, SignageApiClient
from core.scheduler import TaskScheduler

# Managers
from managers.chromium_manager import ChromiumManager
from managers.player_manager import PlayerManager
from managers.websocket_manager import FRAME_EVENT, WebSocketManager

# API routes
from api.routes_player import STATIC_DIR, setup_player_routes
from api.routes_system import VERSION, setup_system_routes

# Config
from config import PRODUCTION_PORT, PlayerSettings, load_settings

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# Keep warnings/errors, drop per-request access lines
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_player(settings: PlayerSettings, scheduler: TaskScheduler = None) -> PlayerManager:
    """Create the API client and player manager for these settings"""
    session = ApiSession(
        api_url=settings.api_url,
        device_key=settings.device_key,
        token=settings.api_token or None,
        fetch_timeout=settings.fetch_timeout,
        heartbeat_timeout=settings.heartbeat_timeout,
    )
    return PlayerManager(SignageApiClient(session), settings, scheduler=scheduler)


def create_app(settings: PlayerSettings) -> FastAPI:
    """
    Build the FastAPI application for one player.

    Args:
        settings: PlayerSettings for this device

    Returns:
        FastAPI app whose lifespan starts and stops the player loop
    """
    websocket_manager = WebSocketManager()
    player_manager = build_player(settings)
    chromium_manager = ChromiumManager(
        browser=settings.kiosk_browser,
        display=settings.kiosk_display,
        width=settings.window_width,
        height=settings.window_height,
    ) if settings.kiosk_enabled else None

    def push_frame(frame):
        player_manager.scheduler.spawn(
            websocket_manager.broadcast(FRAME_EVENT, player_manager.frame_payload())
        )

    player_manager.add_listener(push_frame)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan management for FastAPI application.
        Handles startup and shutdown tasks.
        """
        # STARTUP
        logging.info("Starting signage player...")
        if not settings.device_key:
            raise RuntimeError("No device key configured (set SIGNAGE_DEVICE_KEY or pass --device-key)")

        await player_manager.start()

        if chromium_manager:
            logging.info("Starting kiosk browser...")
            if not await chromium_manager.launch(settings.local_url()):
                logging.error("Kiosk browser failed to start; player page is still served")

        logging.info("Signage player started successfully!")

        yield  # Application is running

        # SHUTDOWN
        logging.info("Shutting down signage player...")
        try:
            if chromium_manager:
                await chromium_manager.stop()
            await player_manager.stop()
            logging.info("Signage player shut down successfully!")
        except Exception as e:
            logging.error(f"Error during shutdown: {e}")

    app = FastAPI(
        title="Signage Player",
        description="Kiosk player for digital signage displays",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.player_manager = player_manager
    app.state.websocket_manager = websocket_manager
    app.state.chromium_manager = chromium_manager

    app.include_router(setup_player_routes(player_manager, websocket_manager))
    app.include_router(setup_system_routes(player_manager, websocket_manager, chromium_manager))

    if os.path.exists(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    return app


# Create FastAPI app from environment/YAML settings (uvicorn main:app)
app = create_app(load_settings())


if __name__ == "__main__":
    import argparse
    import uvicorn

    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Signage Player - kiosk display client')
    parser.add_argument('--device-key', default=None,
                        help='Device key of this display')
    parser.add_argument('--api-url', default=None,
                        help='Signage API base URL')
    parser.add_argument('--config', default=None,
                        help='Path to player YAML config')
    parser.add_argument('--kiosk', action='store_true', default=None,
                        help='Launch Chromium in kiosk mode')
    parser.add_argument('--production', action='store_true',
                        help='Run in production mode (port 80)')
    parser.add_argument('--port', type=int, default=None,
                        help='Custom port (overrides --production)')
    args = parser.parse_args()

    # Determine port (None keeps the configured/default port)
    if args.port:
        port = args.port
    elif args.production:
        port = PRODUCTION_PORT
    else:
        port = None

    settings = load_settings(
        args.config,
        device_key=args.device_key,
        api_url=args.api_url,
        kiosk_enabled=args.kiosk,
        port=port,
    )

    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        log_level="info",
    )
