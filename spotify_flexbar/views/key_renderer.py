"""Key image rendering.

Produces PNG images for the FlexBar LCD keys: the Now Playing widget, the
Like button, a loading image and a plain error placeholder. Rendering never
does network I/O; album art is handed in already decoded.
"""

import base64
from enum import Enum
from io import BytesIO
from typing import Any

from PIL import Image, ImageDraw
from pydantic import BaseModel, ConfigDict, Field

from spotify_flexbar.exceptions import RenderError
from spotify_flexbar.interpolation import format_time, progress_ratio
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.models import ButtonType
from spotify_flexbar.views.drawing import (
    DEFAULT_GRADIENT,
    decode_html_entities,
    draw_like_icon,
    draw_next_icon,
    draw_pause_icon,
    draw_play_icon,
    draw_prev_icon,
    draw_rounded_rect,
    get_image_colors,
    horizontal_gradient,
    load_font,
    paste_rounded,
    rounded_mask,
    to_rgba,
    truncate_text,
)

logger = get_logger(__name__)

PADDING = 4
CORNER_RADIUS = 8
LIKE_CORNER_RADIUS = 12
PROGRESS_BAR_HEIGHT = 4
MIN_FONT_SIZE = 8
MAX_TIME_FONT_SIZE = 24
NOTHING_PLAYING = "Nothing Playing"


class ElementKind(str, Enum):
    """Drawable element kinds for simple canvases."""

    TEXT = "text"
    RECT = "rect"
    ICON = "icon"
    PLAY_ICON = "playIcon"
    PAUSE_ICON = "pauseIcon"
    NEXT_ICON = "nextIcon"
    PREV_ICON = "prevIcon"


class CanvasElement(BaseModel):
    """One element of a simple canvas. Icon kinds use (x, y) as their center."""

    model_config = ConfigDict(populate_by_name=True)

    kind: ElementKind = Field(alias="type")
    text: str = ""
    x: float = 0
    y: float = 0
    font_size: int = 14
    color: str = "#FFFFFF"
    align: str = "left"
    max_width: float | None = None
    padding: float = 0
    width: float = 0
    height: float = 0
    fill: str | None = None
    radius: float = 0
    size: float = 24


class KeyImageRequest(BaseModel):
    """Everything needed to draw one key image."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    width: int = 360
    height: int = 60
    button_type: ButtonType = ButtonType.NOW_PLAYING

    track_name: str = NOTHING_PLAYING
    artist_name: str = ""
    is_playing: bool = False
    progress: int = 0
    duration: int = 0
    album_art: Image.Image | None = None

    show_title: bool = True
    show_artist: bool = True
    show_progress: bool = True
    show_play_pause: bool = True
    show_time_info: bool = True
    title_font_size: int = 18
    artist_font_size: int = 14
    time_font_size: int = 10

    accent_color: str = "#1DB954"
    background_color: str = "#1E1E1E"

    is_liked: bool | None = None
    liked_color: str = "#1DB954"
    unliked_color: str = "#FFFFFF"


_ALIGN_ANCHORS = {"left": "la", "center": "ma", "right": "ra"}


def render_simple_canvas(
    width: int = 360,
    height: int = 60,
    elements: list[CanvasElement | dict[str, Any]] | None = None,
    background_color: str = "#1DB954",
) -> Image.Image:
    """Render a list of simple elements onto a solid background.

    Falls back to a red "Render Error" image if any element fails.
    """
    try:
        canvas = Image.new("RGBA", (width, height), to_rgba(background_color))
        draw = ImageDraw.Draw(canvas)

        for raw in elements or []:
            element = raw if isinstance(raw, CanvasElement) else CanvasElement.model_validate(raw)

            if element.kind in (ElementKind.TEXT, ElementKind.ICON):
                font = load_font(element.font_size)
                text = element.text
                if element.kind is ElementKind.TEXT and element.max_width:
                    text = truncate_text(font, text, element.max_width - element.padding * 2)
                draw.text(
                    (element.x + element.padding, element.y + element.padding),
                    text,
                    font=font,
                    fill=to_rgba(element.color),
                    anchor=_ALIGN_ANCHORS.get(element.align, "la"),
                )
            elif element.kind is ElementKind.RECT:
                fill = to_rgba(element.fill or element.color)
                if element.radius > 0:
                    draw_rounded_rect(draw, element.x, element.y, element.width, element.height, element.radius, fill)
                else:
                    draw.rectangle(
                        (element.x, element.y, element.x + element.width - 1, element.y + element.height - 1),
                        fill=fill,
                    )
            elif element.kind is ElementKind.PLAY_ICON:
                draw_play_icon(canvas, element.x, element.y, element.size, element.color)
            elif element.kind is ElementKind.PAUSE_ICON:
                draw_pause_icon(canvas, element.x, element.y, element.size, element.color)
            elif element.kind is ElementKind.NEXT_ICON:
                draw_next_icon(canvas, element.x, element.y, element.size, element.color)
            elif element.kind is ElementKind.PREV_ICON:
                draw_prev_icon(canvas, element.x, element.y, element.size, element.color)

        return canvas
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Error rendering simple canvas",
            error=str(e),
            error_type=type(e).__name__,
            event_type="render_simple_failed",
        )
        return render_fallback(width, height, "Render Error", background_color="#FF0000", font_size=12)


def render_fallback(
    width: int = 360,
    height: int = 60,
    text: str = "Error Loading",
    background_color: str = "#1E1E1E",
    font_size: int = 14,
) -> Image.Image:
    """Plain centered-text placeholder."""
    canvas = Image.new("RGBA", (width, height), to_rgba(background_color))
    ImageDraw.Draw(canvas).text(
        (width / 2, height / 2), text, font=load_font(font_size), fill=(255, 255, 255, 255), anchor="mm"
    )
    return canvas


def render_like(request: KeyImageRequest) -> Image.Image:
    """Like button: dark rounded background with a heart in the middle."""
    width, height = request.width, request.height
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    background = Image.new("RGBA", (width, height), to_rgba("#1c1c1c"))
    canvas.paste(background, (0, 0), rounded_mask((width, height), LIKE_CORNER_RADIUS, inset=1))

    draw_like_icon(
        canvas,
        width / 2,
        height / 2,
        min(width, height) * 0.6,
        request.is_liked,
        request.liked_color,
        request.unliked_color,
    )
    return canvas


def _overlay(canvas: Image.Image, paint) -> None:
    """Draw semi-transparent shapes blended onto ``canvas``."""
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    paint(ImageDraw.Draw(layer))
    canvas.alpha_composite(layer)


def render_now_playing(request: KeyImageRequest) -> Image.Image:
    """Now Playing widget: art, play state, title/artist, progress and time."""
    width, height = request.width, request.height
    album_art = request.album_art

    start, end = get_image_colors(album_art) if album_art is not None else DEFAULT_GRADIENT
    content = horizontal_gradient((width, height), start, end)
    _overlay(content, lambda d: d.rectangle((0, 0, width, height), fill=(0, 0, 0, 89)))  # 35% black

    # Layout
    art_size = height - PADDING * 2
    art_x = art_y = PADDING
    button_size = min(28, art_size * 0.6)
    has_art = album_art is not None
    button_x = art_x + art_size / 2 if has_art else PADDING + button_size / 2 + 4
    button_y = height / 2
    text_x = button_x + button_size / 2 + 20
    available_text_width = width - text_x - PADDING

    if has_art and art_size > 0:
        paste_rounded(content, album_art, (art_x, art_y, art_size, art_size), 4)

    if request.show_progress and request.duration > 0:
        bar_y = height - PROGRESS_BAR_HEIGHT
        radius = PROGRESS_BAR_HEIGHT / 2
        ratio = progress_ratio(request.progress, request.duration)
        _overlay(
            content,
            lambda d: draw_rounded_rect(d, 0, bar_y, width, PROGRESS_BAR_HEIGHT, radius, (255, 255, 255, 26)),
        )
        draw_rounded_rect(
            ImageDraw.Draw(content), 0, bar_y, width * ratio, PROGRESS_BAR_HEIGHT, radius, to_rgba(request.accent_color)
        )

    if request.show_play_pause:
        icon = draw_pause_icon if request.is_playing else draw_play_icon
        icon(content, button_x, button_y, button_size, "#FFFFFF")

    title_size = max(MIN_FONT_SIZE, request.title_font_size)
    artist_size = max(MIN_FONT_SIZE, request.artist_font_size)
    title_y = PADDING + 4
    artist_y = title_y + title_size + 4
    track_name = decode_html_entities(request.track_name)
    artist_name = decode_html_entities(request.artist_name)
    draw = ImageDraw.Draw(content)

    if request.show_title and track_name and available_text_width > 10:
        font = load_font(title_size, bold=True)
        draw.text((text_x, title_y), truncate_text(font, track_name, available_text_width), font=font, fill="#FFFFFF")

    if request.show_artist and artist_name and available_text_width > 10:
        font = load_font(artist_size)
        _overlay(
            content,
            lambda d: d.text(
                (text_x, artist_y),
                truncate_text(font, artist_name, available_text_width),
                font=font,
                fill=(255, 255, 255, 204),
            ),
        )

    if request.show_time_info and request.duration > 0:
        time_size = max(MIN_FONT_SIZE, min(MAX_TIME_FONT_SIZE, request.time_font_size or 10))
        time_text = f"{format_time(request.progress)} / {format_time(request.duration)}"
        time_y = height - max(6, time_size / 3)
        font = load_font(time_size)
        _overlay(
            content,
            lambda d: d.text((width - PADDING, time_y), time_text, font=font, fill=(255, 255, 255, 179), anchor="rd"),
        )

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    canvas.paste(content, (0, 0), rounded_mask((width, height), CORNER_RADIUS))
    return canvas


def render_loading(request: KeyImageRequest) -> Image.Image:
    return render_now_playing(
        request.model_copy(
            update={
                "track_name": "Loading...",
                "artist_name": "Connecting...",
                "is_playing": False,
                "album_art": None,
                "progress": 0,
                "duration": 0,
            }
        )
    )


def encode_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def to_data_url(image_bytes: bytes) -> str:
    """PNG bytes as a ``data:`` URL, the format the FlexBar host draws."""
    return "data:image/png;base64," + base64.b64encode(image_bytes).decode("ascii")


def _render(request: KeyImageRequest) -> bytes:
    try:
        if request.button_type == ButtonType.LIKE:
            return encode_png(render_like(request))
        return encode_png(render_now_playing(request))
    except Exception as e:
        raise RenderError(f"Failed to render {request.button_type.value} key: {e}") from e


def render_key_image(request: KeyImageRequest) -> bytes:
    """Render a key image as PNG bytes.

    Never raises: a render failure produces the "Error Loading" placeholder.
    """
    try:
        return _render(request)
    except RenderError as e:
        log_with_context(
            logger,
            "error",
            "Key render failed, using placeholder",
            error=e.message,
            button_type=request.button_type.value,
            event_type="render_failed",
        )
        return encode_png(render_fallback(request.width, request.height, background_color=request.background_color))


def render_loading_image(request: KeyImageRequest) -> bytes:
    try:
        return encode_png(render_loading(request))
    except Exception as e:
        log_with_context(logger, "error", "Loading image failed", error=str(e), event_type="render_failed")
        return encode_png(render_fallback(request.width, request.height, "Loading..."))
