"""
Display Models

Pydantic models for the display snapshot returned by the signage API.
A snapshot is immutable: each successful fetch replaces it wholesale.
"""
import logging
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class MediaKind(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    EMBED = "EMBED"  # anything else is rendered as an embedded page


class SnapshotModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ContentItem(SnapshotModel):
    id: str
    name: str = ""
    url: str
    type: str = ""

    @property
    def kind(self) -> MediaKind:
        tag = (self.type or "").upper()
        if tag == MediaKind.IMAGE.value:
            return MediaKind.IMAGE
        if tag == MediaKind.VIDEO.value:
            return MediaKind.VIDEO
        return MediaKind.EMBED


class PlaylistItem(SnapshotModel):
    id: str
    duration: Optional[float] = None
    transition: str = "fade"
    order: int = 0
    content: ContentItem

    @model_validator(mode="after")
    def _warn_invalid_duration(self):
        if not self.has_valid_duration:
            logging.warning(
                f"Playlist item {self.id} has invalid duration {self.duration!r}, "
                f"using the default slide duration"
            )
        return self

    @property
    def has_valid_duration(self) -> bool:
        return self.duration is not None and self.duration > 0

    def duration_seconds_or(self, default: float) -> float:
        """Display duration, or default for a missing or non-positive value"""
        if self.has_valid_duration:
            return float(self.duration)
        return float(default)

    @property
    def is_video(self) -> bool:
        return self.content.kind == MediaKind.VIDEO


class Playlist(SnapshotModel):
    id: str
    name: str = ""
    # Kept in server order; the player never re-sorts
    items: Tuple[PlaylistItem, ...] = ()


class Display(SnapshotModel):
    id: str
    name: str = ""
    orientation: str = "landscape"
    width: Optional[int] = None
    height: Optional[int] = None
    playlist: Optional[Playlist] = None

    @property
    def items(self) -> Tuple[PlaylistItem, ...]:
        if self.playlist is None:
            return ()
        return self.playlist.items

    @property
    def has_content(self) -> bool:
        """False when no playlist is assigned or the playlist is empty"""
        return len(self.items) > 0


class DisplayResponse(SnapshotModel):
    display: Display
