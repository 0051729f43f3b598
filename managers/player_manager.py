"""
Player Manager

Runs the player loop for one physical display: display fetch with polling
and backoff retry, heartbeat, slide scheduling, and frame rendering.
Everything runs on a single asyncio loop through one TaskScheduler.
"""
import logging
from typing import Callable, List, Optional

from config import PlayerSettings
from core.api_client import SignageApiClient
from core.render_surface import Frame, render_frame, render_html
from core.scheduler import TaskScheduler
from managers.display_fetcher import DisplayFetcher
from managers.heartbeat_manager import HeartbeatManager
from managers.slide_scheduler import SlideScheduler

POLL_TIMER = "poll"


class PlayerManager:
    """Wires the display fetcher, heartbeat and slide scheduler together"""

    def __init__(self, client: SignageApiClient, settings: PlayerSettings,
                 scheduler: Optional[TaskScheduler] = None):
        """
        Initialize Player Manager

        Args:
            client: SignageApiClient for this device
            settings: PlayerSettings with intervals and backoff constants
            scheduler: TaskScheduler owning every timer (created if omitted)
        """
        self.client = client
        self.settings = settings
        self.scheduler = scheduler or TaskScheduler()

        self.fetcher = DisplayFetcher(
            client,
            self.scheduler,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
        )
        self.heartbeat = HeartbeatManager(client, self.scheduler, interval=settings.heartbeat_interval)
        self.slides = SlideScheduler(
            self.scheduler,
            transition_duration=settings.transition_duration,
            default_duration=settings.default_slide_duration,
        )

        self.running = False
        self._last_frame: Optional[Frame] = None
        self._listeners: List[Callable[[Frame], None]] = []

        self.fetcher.add_listener(self._on_fetch)
        self.slides.add_listener(self._on_change)

    def add_listener(self, callback: Callable[[Frame], None]):
        """Register a callback receiving every new frame"""
        self._listeners.append(callback)

    async def start(self):
        """Initial fetch, then the poll and heartbeat timers"""
        if self.running:
            return
        self.running = True
        logging.info(f"Starting player for device key {self.client.device_key} "
                     f"(API: {self.client.session.api_url})")

        self.scheduler.every(POLL_TIMER, self.settings.poll_interval, self._poll)
        self.heartbeat.start()
        self.scheduler.spawn(self.fetcher.fetch())

    async def stop(self):
        """Cancel every timer and in-flight task, then close the API client"""
        if not self.running:
            return
        self.running = False
        logging.info("Stopping player")

        self.slides.stop()
        self.heartbeat.stop()
        await self.scheduler.shutdown()
        await self.client.close()
        logging.info("Player stopped")

    async def retry(self) -> bool:
        """Manual retry from the kiosk page"""
        return await self.fetcher.retry_now()

    def video_ended(self, item_id: Optional[str] = None) -> bool:
        return self.slides.video_ended(item_id)

    def frame(self) -> Frame:
        return render_frame(
            device_key=self.client.device_key,
            loading=self.fetcher.loading,
            display=self.fetcher.display,
            items=self.slides.items,
            index=self.slides.index,
            transitioning=self.slides.transitioning,
            error=self.fetcher.error,
            resolve_url=self.client.resolve_url,
            default_duration=self.slides.default_duration,
        )

    def frame_payload(self) -> dict:
        frame = self.frame()
        payload = frame.to_dict()
        payload["html"] = render_html(frame)
        return payload

    def get_status(self) -> dict:
        display = self.fetcher.display
        error = self.fetcher.error
        return {
            "running": self.running,
            "device_key": self.client.device_key,
            "mode": self.frame().mode.value,
            "display": {
                "id": display.id,
                "name": display.name,
                "orientation": display.orientation,
                "width": display.width,
                "height": display.height,
                "playlist": display.playlist.name if display.playlist else None,
            } if display else None,
            "slide": {
                "state": self.slides.state.value,
                "index": self.slides.index,
                "count": len(self.slides.items),
                "advances": self.slides.advances,
            },
            "error": error.to_dict() if error else None,
            "retry_count": self.fetcher.retry_count,
            "last_success": self.fetcher.last_success.isoformat() if self.fetcher.last_success else None,
            "heartbeat": self.heartbeat.get_status(),
            "timers": self.scheduler.pending(),
        }

    def _poll(self):
        # The backoff retry owns recovery while the API is unreachable
        if self.fetcher.unreachable:
            logging.debug("Skipping poll while backoff retry is pending")
            return None
        return self.fetcher.fetch()

    def _on_fetch(self):
        error = self.fetcher.error
        display = self.fetcher.display
        if error is not None and display is not None:
            # Keep the last good snapshot on screen
            logging.warning(f"Keeping last known content after fetch failure ({error.kind.value})")
        if error is None and display is not None:
            self.slides.set_items(display.items)
        self._on_change()

    def _on_change(self):
        frame = self.frame()
        if frame == self._last_frame:
            return
        self._last_frame = frame
        for callback in self._listeners:
            try:
                callback(frame)
            except Exception as e:
                logging.error(f"Frame listener failed: {e}")
