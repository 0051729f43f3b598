"""
Render Surface

Maps the player state to a Frame (what the screen should show) and renders
that frame to the HTML fragment swapped into the kiosk page.
"""
from dataclasses import asdict, dataclass
from enum import Enum
from html import escape
from typing import Callable, Optional, Sequence

from config import DEFAULT_SLIDE_DURATION
from models.display_models import Display, MediaKind, PlaylistItem


class RenderMode(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    PLAYING = "playing"


@dataclass(frozen=True)
class MediaFrame:
    kind: str
    src: str
    title: str
    item_id: str
    duration: float
    fit: str = "contain"
    autoplay: bool = False
    muted: bool = False
    loop: bool = False


@dataclass(frozen=True)
class Frame:
    mode: RenderMode
    device_key: str
    display_name: Optional[str] = None
    media: Optional[MediaFrame] = None
    transitioning: bool = False
    index: int = 0
    count: int = 0
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    retry_in: Optional[float] = None
    offline: bool = False  # showing the last good snapshot while the API is unreachable

    @property
    def progress(self) -> float:
        """Fraction of the frame width covered by the progress bar"""
        if self.count <= 0:
            return 0.0
        return (self.index + 1) / self.count

    def to_dict(self) -> dict:
        data = asdict(self)
        data["mode"] = self.mode.value
        data["progress"] = self.progress
        return data


def select_mode(loading: bool, display: Optional[Display], has_error: bool) -> RenderMode:
    """
    Pick the render mode.

    Once a snapshot exists it stays on screen: later failures do not
    switch back to the error view.
    """
    if display is not None:
        return RenderMode.PLAYING if display.has_content else RenderMode.EMPTY
    if has_error:
        return RenderMode.ERROR
    return RenderMode.LOADING if loading else RenderMode.EMPTY


def media_frame(item: PlaylistItem, item_count: int, resolve_url: Callable[[str], str],
                default_duration: float = DEFAULT_SLIDE_DURATION) -> MediaFrame:
    """Rendering strategy for one playlist item"""
    content = item.content
    common = dict(
        src=resolve_url(content.url),
        title=content.name,
        item_id=item.id,
        duration=item.duration_seconds_or(default_duration),
    )
    if content.kind == MediaKind.IMAGE:
        return MediaFrame(kind="image", fit="contain", **common)
    if content.kind == MediaKind.VIDEO:
        return MediaFrame(kind="video", autoplay=True, muted=True, loop=item_count == 1, **common)
    return MediaFrame(kind="embed", **common)


def render_frame(device_key: str, loading: bool, display: Optional[Display], items: Sequence[PlaylistItem],
                 index: int, transitioning: bool, error=None,
                 resolve_url: Callable[[str], str] = lambda url: url,
                 default_duration: float = DEFAULT_SLIDE_DURATION) -> Frame:
    """
    Build the frame for the current player state.

    Args:
        device_key: This device's key (shown on status screens)
        loading: True while the first fetch is in flight
        display: Last successful snapshot, or None
        items: Items the slide scheduler is cycling through
        index: Current slide index
        transitioning: True during the cross-fade window
        error: FetchError from the last fetch, or None
        resolve_url: Turns content URLs into loadable URLs
        default_duration: Duration for items without a valid one

    Returns:
        Frame describing what to show
    """
    mode = select_mode(loading, display, error is not None)
    name = display.name if display is not None else None
    offline = display is not None and error is not None and error.kind.value == "unreachable"

    if mode == RenderMode.ERROR:
        return Frame(
            mode=mode,
            device_key=device_key,
            error_kind=error.kind.value,
            error_message=error.message,
            retry_in=error.retry_in,
        )

    if mode != RenderMode.PLAYING or not items:
        mode = RenderMode.EMPTY if mode == RenderMode.PLAYING else mode
        return Frame(mode=mode, device_key=device_key, display_name=name, offline=offline)

    index = index % len(items)
    return Frame(
        mode=mode,
        device_key=device_key,
        display_name=name,
        media=media_frame(items[index], len(items), resolve_url, default_duration),
        transitioning=transitioning,
        index=index,
        count=len(items),
        offline=offline,
    )


def _status_screen(icon: str, title: str, lines: Sequence[str], device_key: str, extra: str = "") -> str:
    body = "".join(f'<p class="status-line">{escape(line)}</p>' for line in lines)
    return (
        f'<div class="status-screen">'
        f'<div class="status-icon status-icon-{icon}"></div>'
        f'<h1 class="status-title">{escape(title)}</h1>'
        f'{body}{extra}'
        f'<p class="status-key">{escape(device_key)}</p>'
        f'</div>'
    )


def _media_html(media: MediaFrame) -> str:
    src = escape(media.src, quote=True)
    title = escape(media.title, quote=True)
    item_id = escape(media.item_id, quote=True)

    if media.kind == "image":
        return f'<img class="media media-image" src="{src}" alt="{title}" style="object-fit: {media.fit}">'
    if media.kind == "video":
        flags = " ".join(flag for flag, on in (
            ("autoplay", media.autoplay),
            ("muted", media.muted),
            ("loop", media.loop),
        ) if on)
        return (
            f'<video class="media media-video" src="{src}" data-item-id="{item_id}" '
            f'{flags} playsinline style="object-fit: {media.fit}"></video>'
        )
    return f'<iframe class="media media-embed" src="{src}" title="{title}" sandbox="allow-scripts"></iframe>'


def render_html(frame: Frame) -> str:
    """HTML fragment for the kiosk page stage"""
    if frame.mode == RenderMode.LOADING:
        return _status_screen("spinner", "Connecting to display...", [], frame.device_key)

    if frame.mode == RenderMode.ERROR:
        if frame.error_kind == "unreachable":
            lines = [frame.error_message or "", "Attempting to reconnect..."]
            if frame.retry_in is not None:
                lines.append(f"Next retry in {frame.retry_in:g}s")
            button = '<button class="retry-button" data-action="retry">Retry now</button>'
            return _status_screen("offline", "Connection failed", lines, frame.device_key, button)
        return _status_screen("error", "Display Error", [frame.error_message or ""], frame.device_key)

    if frame.mode == RenderMode.EMPTY:
        badge = '<p class="offline-badge">Offline Mode</p>' if frame.offline else ""
        return _status_screen(
            "idle",
            frame.display_name or "Display",
            ["No playlist assigned", "Assign a playlist in the dashboard to start displaying content"],
            frame.device_key,
            badge,
        )

    media = frame.media
    opacity = "slide-hidden" if frame.transitioning else "slide-visible"
    connection = "offline" if frame.offline else "online"
    return (
        f'<div class="slide {opacity}">{_media_html(media)}</div>'
        f'<div class="connection-dot connection-{connection}" title="{connection}"></div>'
        f'<div class="progress"><div class="progress-bar" style="width: {frame.progress * 100:.2f}%"></div></div>'
        f'<div class="debug-overlay">'
        f'<p>{escape(frame.display_name or "")}</p>'
        f'<p>{frame.index + 1} / {frame.count}</p>'
        f'<p>{media.duration:g}s</p>'
        f'</div>'
    )
