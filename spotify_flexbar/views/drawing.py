"""
Drawing helpers for key images - icons, text fitting and colors on Pillow.
"""
import html
from collections.abc import Callable
from functools import lru_cache

from PIL import Image, ImageColor, ImageDraw, ImageFilter, ImageFont

Color = tuple[int, int, int, int]
Point = tuple[float, float]

FONT_REGULAR = "DejaVuSans.ttf"
FONT_BOLD = "DejaVuSans-Bold.ttf"
DEFAULT_GRADIENT = ("#282828", "#1E1E1E")
ELLIPSIS = "..."

# Heart outline in a 1000x1000 box as cubic segments: (c1, c2, end)
_HEART_START: Point = (300, 192)
_HEART_SEGMENTS: list[tuple[Point, Point, Point]] = [
    ((353, 192), (404, 213), (441, 250)),
    ((500, 317), (500, 317), (559, 250)),
    ((596, 213), (647, 192), (700, 192)),
    ((753, 192), (804, 213), (841, 250)),
    ((879, 288), (900, 339), (900, 392)),
    ((900, 443), (880, 492), (845, 529)),
    ((845, 530), (550, 846), (550, 846)),
    ((512, 881), (487, 881), (450, 846)),
    ((159, 533), (121, 495), (100, 392)),
    ((100, 339), (121, 288), (159, 250)),
    ((196, 213), (247, 192), (300, 192)),
]
_HEART_ORIGIN: Point = (100, 192)
_HEART_SIZE: Point = (800, 689)


def to_rgba(color: str | tuple, alpha: float | None = None) -> Color:
    """Parse a color string or tuple, optionally overriding its alpha (0..1)."""
    if isinstance(color, str):
        parsed = ImageColor.getcolor(color, "RGBA")
    else:
        parsed = tuple(color) + (255,) * (4 - len(color))
    r, g, b, a = parsed
    if alpha is not None:
        a = int(round(255 * alpha))
    return (r, g, b, a)


@lru_cache(maxsize=32)
def load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load DejaVu Sans at ``size`` px, or Pillow's bundled font if it is not installed."""
    try:
        return ImageFont.truetype(FONT_BOLD if bold else FONT_REGULAR, size)
    except OSError:
        return ImageFont.load_default(size=size)


def decode_html_entities(text: str | None) -> str:
    """Spotify occasionally returns names with HTML entities (``&amp;``)."""
    return html.unescape(text) if text else ""


def text_width(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str) -> float:
    return font.getlength(text)


def truncate_text(font: ImageFont.FreeTypeFont | ImageFont.ImageFont, text: str, max_width: float) -> str:
    """Shorten ``text`` with an ellipsis so it fits in ``max_width`` pixels."""
    if text_width(font, text) <= max_width:
        return text
    if text_width(font, ELLIPSIS) > max_width:
        return ""

    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if text_width(font, text[:mid].rstrip() + ELLIPSIS) <= max_width:
            lo = mid
        else:
            hi = mid - 1
    return text[:lo].rstrip() + ELLIPSIS


def get_image_colors(image: Image.Image, darken: float = 0.6) -> tuple[str, str]:
    """Left/right average colors of an image, darkened so white text stays readable."""
    left, right = (image.convert("RGB").resize((2, 1), Image.Resampling.BOX).getpixel((x, 0)) for x in (0, 1))

    def _hex(rgb: tuple[int, int, int]) -> str:
        return "#{:02X}{:02X}{:02X}".format(*(int(c * darken) for c in rgb))

    return _hex(left), _hex(right)


def horizontal_gradient(size: tuple[int, int], start: str, end: str) -> Image.Image:
    width, height = size
    mask = Image.new("L", (width, 1))
    mask.putdata([int(255 * x / max(1, width - 1)) for x in range(width)])
    mask = mask.resize((width, height))
    return Image.composite(
        Image.new("RGBA", size, to_rgba(end)),
        Image.new("RGBA", size, to_rgba(start)),
        mask,
    )


def rounded_mask(size: tuple[int, int], radius: int, inset: int = 0) -> Image.Image:
    """L-mode mask of a rounded rectangle covering ``size`` minus ``inset`` on each side."""
    mask = Image.new("L", size, 0)
    width, height = size
    ImageDraw.Draw(mask).rounded_rectangle(
        (inset, inset, width - 1 - inset, height - 1 - inset), radius=max(0, radius - inset), fill=255
    )
    return mask


def draw_rounded_rect(
    draw: ImageDraw.ImageDraw, x: float, y: float, width: float, height: float, radius: float, fill: Color
) -> None:
    if width < 1 or height < 1:
        return
    radius = min(radius, width / 2, height / 2)
    draw.rounded_rectangle((x, y, x + width - 1, y + height - 1), radius=int(radius), fill=fill)


def paste_rounded(canvas: Image.Image, image: Image.Image, box: tuple[int, int, int, int], radius: int) -> None:
    """Scale ``image`` into ``box`` (x, y, w, h) and paste it with rounded corners."""
    x, y, w, h = box
    thumb = image.convert("RGBA").resize((w, h), Image.Resampling.LANCZOS)
    canvas.paste(thumb, (x, y), rounded_mask((w, h), radius))


def _with_glow(canvas: Image.Image, color: Color, paint: Callable[[ImageDraw.ImageDraw, Color], None]) -> None:
    """Paint a shape with a soft glow behind it."""
    glow = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    paint(ImageDraw.Draw(glow), color)
    glow = glow.filter(ImageFilter.GaussianBlur(4))
    canvas.alpha_composite(glow)
    paint(ImageDraw.Draw(canvas), color)


def draw_play_icon(canvas: Image.Image, x: float, y: float, size: float, color: str = "#FFFFFF") -> None:
    s = size / 24  # Base size is 24px

    def paint(draw: ImageDraw.ImageDraw, fill: Color) -> None:
        draw.polygon([(x - 5 * s, y - 8 * s), (x + 7 * s, y), (x - 5 * s, y + 8 * s)], fill=fill)

    _with_glow(canvas, to_rgba(color), paint)


def draw_pause_icon(canvas: Image.Image, x: float, y: float, size: float, color: str = "#FFFFFF") -> None:
    s = size / 24
    bar_width, bar_height, spacing = 4 * s, 16 * s, 2 * s

    def paint(draw: ImageDraw.ImageDraw, fill: Color) -> None:
        top = y - bar_height / 2
        draw_rounded_rect(draw, x - spacing - bar_width, top, bar_width, bar_height, 2 * s, fill)
        draw_rounded_rect(draw, x + spacing, top, bar_width, bar_height, 2 * s, fill)

    _with_glow(canvas, to_rgba(color), paint)


def draw_next_icon(canvas: Image.Image, x: float, y: float, size: float, color: str = "#FFFFFF") -> None:
    s = size / 24
    bar_width, bar_height = 3 * s, 16 * s

    def paint(draw: ImageDraw.ImageDraw, fill: Color) -> None:
        draw.polygon([(x - 6 * s, y - 8 * s), (x + 2 * s, y), (x - 6 * s, y + 8 * s)], fill=fill)
        draw_rounded_rect(draw, x + 6 * s - bar_width / 2, y - bar_height / 2, bar_width, bar_height, 1.5 * s, fill)

    _with_glow(canvas, to_rgba(color), paint)


def draw_prev_icon(canvas: Image.Image, x: float, y: float, size: float, color: str = "#FFFFFF") -> None:
    s = size / 24
    bar_width, bar_height = 3 * s, 16 * s

    def paint(draw: ImageDraw.ImageDraw, fill: Color) -> None:
        draw.polygon([(x + 6 * s, y - 8 * s), (x - 2 * s, y), (x + 6 * s, y + 8 * s)], fill=fill)
        draw_rounded_rect(draw, x - 6 * s - bar_width / 2, y - bar_height / 2, bar_width, bar_height, 1.5 * s, fill)

    _with_glow(canvas, to_rgba(color), paint)


def _cubic(p0: Point, p1: Point, p2: Point, p3: Point, steps: int) -> list[Point]:
    points = []
    for i in range(1, steps + 1):
        t = i / steps
        mt = 1 - t
        points.append(
            (
                mt**3 * p0[0] + 3 * mt**2 * t * p1[0] + 3 * mt * t**2 * p2[0] + t**3 * p3[0],
                mt**3 * p0[1] + 3 * mt**2 * t * p1[1] + 3 * mt * t**2 * p2[1] + t**3 * p3[1],
            )
        )
    return points


def heart_points(x: float, y: float, size: float, steps: int = 12) -> list[Point]:
    """Heart outline centered at (x, y), scaled to fit a ``size`` box."""
    scale = min(size / _HEART_SIZE[0], size / _HEART_SIZE[1])
    left = x - _HEART_SIZE[0] * scale / 2
    top = y - _HEART_SIZE[1] * scale / 2

    raw = [_HEART_START]
    current = _HEART_START
    for c1, c2, end in _HEART_SEGMENTS:
        raw.extend(_cubic(current, c1, c2, end, steps))
        current = end

    return [(left + (px - _HEART_ORIGIN[0]) * scale, top + (py - _HEART_ORIGIN[1]) * scale) for px, py in raw]


def draw_like_icon(
    canvas: Image.Image,
    x: float,
    y: float,
    size: float,
    is_liked: bool | None,
    liked_color: str = "#1DB954",
    unliked_color: str = "#FFFFFF",
) -> None:
    """Filled heart when liked, outline when not, dimmed outline when unknown."""
    points = heart_points(x, y, size)
    line_width = max(2, round(size / 16))

    if is_liked is True:
        ImageDraw.Draw(canvas).polygon(points, fill=to_rgba(liked_color))
        return

    color = to_rgba(unliked_color, alpha=None if is_liked is False else 0.6)
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).line(points + points[:1], fill=color, width=line_width, joint="curve")
    canvas.alpha_composite(layer)
