"""
Slide Scheduler

Advances through the playlist items on per-item duration timers with a short
transition window between slides, looping back to the start.
"""
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from config import DEFAULT_SLIDE_DURATION, TRANSITION_DURATION
from models.display_models import PlaylistItem

SLIDE_TIMER = "slide"
TRANSITION_TIMER = "transition"


class SlideState(str, Enum):
    IDLE = "idle"
    SHOWING = "showing"
    TRANSITIONING = "transitioning"


class SlideScheduler:
    """State machine over the current playlist items"""

    def __init__(self, scheduler, transition_duration: float = TRANSITION_DURATION,
                 default_duration: float = DEFAULT_SLIDE_DURATION):
        self.scheduler = scheduler
        self.transition_duration = transition_duration
        self.default_duration = default_duration
        self.items: Tuple[PlaylistItem, ...] = ()
        self.index = 0
        self.state = SlideState.IDLE
        self.advances = 0
        self._listeners: List[Callable[[], None]] = []

    def add_listener(self, callback: Callable[[], None]):
        self._listeners.append(callback)

    @property
    def current_item(self) -> Optional[PlaylistItem]:
        if not self.items:
            return None
        return self.items[self.index]

    @property
    def transitioning(self) -> bool:
        return self.state == SlideState.TRANSITIONING

    @property
    def loops_single_video(self) -> bool:
        """A sole video item loops forever instead of advancing"""
        return len(self.items) == 1 and self.items[0].is_video

    def duration_of(self, item: PlaylistItem) -> float:
        return item.duration_seconds_or(self.default_duration)

    def set_items(self, items: Sequence[PlaylistItem]):
        """
        Swap in the item list from a new snapshot.

        An identical list leaves the running timer alone. A different list
        cancels the stale timer and restarts from the current index, wrapped
        against the new length.
        """
        items = tuple(items)
        if items == self.items:
            return

        self._cancel_timers()
        self.items = items

        if not items:
            self.index = 0
            self.state = SlideState.IDLE
            logging.info("Playlist is empty, slide scheduler idle")
            self._notify()
            return

        self.index = self.index % len(items)
        logging.info(f"Playlist updated: {len(items)} items, resuming at index {self.index}")
        self._show(self.index)

    def video_ended(self, item_id: Optional[str] = None) -> bool:
        """
        Natural end of the current video.

        Returns:
            True if the event advanced the slideshow
        """
        item = self.current_item
        if item is None or not item.is_video:
            return False
        if item_id is not None and item_id != item.id:
            logging.debug(f"Ignoring stale video-ended event for {item_id}")
            return False
        if self.loops_single_video or self.state != SlideState.SHOWING:
            return False

        self._begin_transition()
        return True

    def stop(self):
        self._cancel_timers()

    def _show(self, index: int):
        self.index = index
        self.state = SlideState.SHOWING
        item = self.items[index]

        if self.loops_single_video:
            logging.debug(f"Looping sole video item {item.id}")
        else:
            self.scheduler.call_later(SLIDE_TIMER, self.duration_of(item), self._on_slide_timer)
        self._notify()

    def _on_slide_timer(self):
        if self.state != SlideState.SHOWING or not self.items:
            return
        self._begin_transition()

    def _begin_transition(self):
        self.scheduler.cancel(SLIDE_TIMER)
        self.state = SlideState.TRANSITIONING
        self.scheduler.call_later(TRANSITION_TIMER, self.transition_duration, self._finish_transition)
        self._notify()

    def _finish_transition(self):
        if not self.items:
            return
        self.advances += 1
        self._show((self.index + 1) % len(self.items))

    def _cancel_timers(self):
        self.scheduler.cancel(SLIDE_TIMER)
        self.scheduler.cancel(TRANSITION_TIMER)

    def _notify(self):
        for callback in self._listeners:
            try:
                callback()
            except Exception as e:
                logging.error(f"Slide listener failed: {e}")
