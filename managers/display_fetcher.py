"""
Display Fetcher

Retrieves the display configuration for this device key and owns the
error and retry/backoff state of the player.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from pydantic import ValidationError

from config import RETRY_BASE_DELAY, RETRY_BACKOFF_FACTOR, RETRY_MAX_DELAY
from core.api_client import ApiUnreachableError, SignageApiClient
from models.display_models import Display, DisplayResponse

RETRY_TIMER = "retry"


def backoff_delay(retry_count: int, base: float = RETRY_BASE_DELAY,
                  factor: float = RETRY_BACKOFF_FACTOR, cap: float = RETRY_MAX_DELAY) -> float:
    """Seconds to wait before retry number retry_count (0-based)"""
    return min(base * (factor ** retry_count), cap)


class FetchErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNREACHABLE = "unreachable"
    SERVER = "server"


@dataclass(frozen=True)
class FetchError:
    kind: FetchErrorKind
    message: str
    status: Optional[int] = None
    retry_in: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status": self.status,
            "retry_in": self.retry_in,
        }


class DisplayFetcher:
    """Fetches the display snapshot and tracks error/backoff state"""

    def __init__(self, client: SignageApiClient, scheduler, base_delay: float = RETRY_BASE_DELAY,
                 backoff_factor: float = RETRY_BACKOFF_FACTOR, max_delay: float = RETRY_MAX_DELAY):
        """
        Initialize Display Fetcher

        Args:
            client: SignageApiClient bound to this device's session
            scheduler: TaskScheduler owning the retry timer
            base_delay: First retry delay in seconds
            backoff_factor: Multiplier applied per consecutive failure
            max_delay: Upper bound for the retry delay
        """
        self.client = client
        self.scheduler = scheduler
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay

        self.display: Optional[Display] = None
        self.error: Optional[FetchError] = None
        self.retry_count = 0
        self.loading = True
        self.last_success: Optional[datetime] = None
        self._in_flight: Optional[asyncio.Future] = None
        self._listeners: List[Callable[[], None]] = []

    def add_listener(self, callback: Callable[[], None]):
        self._listeners.append(callback)

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    @property
    def retry_pending(self) -> bool:
        return self.scheduler.is_scheduled(RETRY_TIMER)

    @property
    def unreachable(self) -> bool:
        return self.error is not None and self.error.kind == FetchErrorKind.UNREACHABLE

    def next_delay(self) -> float:
        return backoff_delay(self.retry_count, self.base_delay, self.backoff_factor, self.max_delay)

    async def fetch(self) -> bool:
        """
        Fetch the display once and update state.

        Returns:
            True if a new snapshot was stored, False otherwise
        """
        if self.in_flight:
            logging.debug("Display fetch already in flight, skipping")
            return False

        self._in_flight = asyncio.get_running_loop().create_future()
        stored = False
        try:
            try:
                response = await self.client.get_display()
            except ApiUnreachableError as e:
                logging.warning(f"Signage API unreachable: {e}")
                self._on_unreachable()
                return False

            if response.status == 404:
                self._set_error(FetchError(
                    kind=FetchErrorKind.NOT_FOUND,
                    status=404,
                    message=(
                        f"Display not found for device key '{self.client.device_key}'. "
                        f"Create a display with this device key in the dashboard and assign a playlist."
                    ),
                ))
                return False

            if not response.ok:
                detail = response.error_message
                message = f"Server error ({response.status})"
                if detail:
                    message = f"{message}: {detail}"
                self._set_error(FetchError(kind=FetchErrorKind.SERVER, status=response.status, message=message))
                return False

            try:
                snapshot = DisplayResponse.model_validate(response.payload).display
            except ValidationError as e:
                self._set_error(FetchError(
                    kind=FetchErrorKind.SERVER,
                    status=response.status,
                    message=f"Malformed display response: {e.error_count()} validation error(s)",
                ))
                return False

            self._on_success(snapshot)
            stored = True
            return True
        finally:
            if not self._in_flight.done():
                self._in_flight.set_result(stored)
            self._notify()

    async def retry_now(self) -> bool:
        """
        Manual retry: drop any pending backoff timer and fetch immediately.

        If a fetch is already running, wait for it and report its outcome
        instead of starting a second one.
        """
        self.scheduler.cancel(RETRY_TIMER)
        if self.in_flight:
            logging.info("Manual display fetch requested, joining the running fetch")
            return await asyncio.shield(self._in_flight)
        logging.info("Manual display fetch requested")
        return await self.fetch()

    def _on_success(self, snapshot: Display):
        if self.error is not None:
            logging.info(f"Display fetch recovered after {self.retry_count} retries")
        self.scheduler.cancel(RETRY_TIMER)
        self.display = snapshot
        self.error = None
        self.retry_count = 0
        self.loading = False
        self.last_success = datetime.now()
        logging.debug(f"Display snapshot updated: {snapshot.name} ({len(snapshot.items)} items)")

    def _on_unreachable(self):
        delay = self.next_delay()
        self.retry_count += 1
        self.error = FetchError(
            kind=FetchErrorKind.UNREACHABLE,
            message=f"Cannot reach the signage API at {self.client.session.api_url}",
            retry_in=delay,
        )
        self.loading = False
        logging.info(f"Retrying display fetch in {delay:.1f}s (attempt {self.retry_count})")
        self.scheduler.call_later(RETRY_TIMER, delay, self.fetch)

    def _set_error(self, error: FetchError):
        self.scheduler.cancel(RETRY_TIMER)
        self.error = error
        self.loading = False
        logging.error(f"Display fetch failed: {error.message}")

    def _notify(self):
        for callback in self._listeners:
            try:
                callback()
            except Exception as e:
                logging.error(f"Display listener failed: {e}")
