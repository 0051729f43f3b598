"""
Heartbeat Manager

Periodic best-effort liveness signal to the signage API.
Failures are logged at debug level and never surface.
"""
import logging
from datetime import datetime
from typing import Optional

from config import HEARTBEAT_INTERVAL
from core.api_client import SignageApiClient

HEARTBEAT_TIMER = "heartbeat"


class HeartbeatManager:
    """Sends the device heartbeat on a fixed interval"""

    def __init__(self, client: SignageApiClient, scheduler, interval: float = HEARTBEAT_INTERVAL):
        self.client = client
        self.scheduler = scheduler
        self.interval = interval
        self.sent = 0
        self.failed = 0
        self.last_sent_at: Optional[datetime] = None

    def start(self):
        self.scheduler.every(HEARTBEAT_TIMER, self.interval, self.beat)
        logging.info(f"Heartbeat started (every {self.interval}s)")

    def stop(self):
        self.scheduler.cancel(HEARTBEAT_TIMER)

    async def beat(self) -> bool:
        """Send one heartbeat; never raises"""
        try:
            response = await self.client.send_heartbeat()
        except Exception as e:
            self.failed += 1
            logging.debug(f"Heartbeat failed: {e}")
            return False

        if not response.ok:
            self.failed += 1
            logging.debug(f"Heartbeat rejected ({response.status})")
            return False

        self.sent += 1
        self.last_sent_at = datetime.now()
        return True

    def get_status(self) -> dict:
        return {
            "interval": self.interval,
            "sent": self.sent,
            "failed": self.failed,
            "last_sent_at": self.last_sent_at.isoformat() if self.last_sent_at else None,
        }
