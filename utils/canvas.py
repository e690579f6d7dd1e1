"""
Raster canvas primitives on top of Pillow.

Thin wrappers used by the raster composition strategies: allocate a filled
surface, resolve and measure fonts, draw centered text and scaled images, and
move images in and out of encoded bytes.
"""
import io
import math
import os
import re
import logging
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from constants import DEFAULT_JPEG_QUALITY
from utils.layout import TextMetrics

logger = logging.getLogger(__name__)

# Tried in order when the requested family has no matching font file
FALLBACK_FONT_FILES = (
    "DejaVuSans.ttf",
    "LiberationSans-Regular.ttf",
    "Arial.ttf",
    "arial.ttf",
    "Helvetica.ttc",
)

_FONT_SPEC_RE = re.compile(r"^\s*(?P<size>\d+(?:\.\d+)?)px\s+(?P<family>.+?)\s*$")


@dataclass(frozen=True)
class TextStyle:
    size: float
    color: str
    font: str


def create_filled_canvas(width: float, height: float, background_color: str = "#FFFFFF"):
    """
    Allocate an RGBA surface filled entirely with background_color.

    Fractional dimensions are rounded up so the surface is never smaller
    than the layout asked for.

    Returns:
        (Image, ImageDraw): the surface and a drawing context bound to it
    """
    size = (max(1, math.ceil(width)), max(1, math.ceil(height)))
    canvas = Image.new("RGBA", size, background_color)
    return canvas, ImageDraw.Draw(canvas)


def font_spec(size: float, family: str) -> str:
    """Build a CSS-style font spec, e.g. '24px Arial'."""
    return f"{_format_size(size)}px {family}"


def parse_font_spec(spec: str):
    """Split '24px Arial' into (24.0, 'Arial')."""
    match = _FONT_SPEC_RE.match(spec or "")
    if not match:
        raise ValueError(f"Invalid font spec: {spec!r}")
    return float(match.group("size")), match.group("family")


def load_font(family: str, size: float, search_dirs=None):
    """
    Resolve a font family name to a Pillow font at the given pixel size.

    Lookup order: '<family>.ttf' (and lowercase / space-stripped variants),
    optionally inside search_dirs, then FALLBACK_FONT_FILES, then Pillow's
    bundled scalable default. Never raises for an unknown family.
    """
    px = max(1, int(round(size)))
    candidates = []
    for name in _family_file_names(family):
        for directory in (search_dirs or []):
            candidates.append(os.path.join(directory, name))
        candidates.append(name)
    candidates.extend(FALLBACK_FONT_FILES)

    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, px)
        except OSError:
            continue

    logger.debug("No TrueType font found for %r; using Pillow default font", family)
    return ImageFont.load_default(px)


def _family_file_names(family: str):
    family = (family or "").strip().strip("'\"")
    if not family:
        return []
    names = [family, family.lower(), family.replace(" ", ""), family.replace(" ", "").lower()]
    seen = []
    for name in names:
        file_name = name if name.lower().endswith((".ttf", ".otf", ".ttc")) else f"{name}.ttf"
        if file_name not in seen:
            seen.append(file_name)
    return seen


def measure_text(draw: ImageDraw.ImageDraw, text: str, spec: str, search_dirs=None) -> TextMetrics:
    """
    Measure text as rendered with spec ('24px Arial').

    Width is the advance width. Height is ascent + descent of the actual
    glyphs, which is generally not equal to the font size.
    """
    size, family = parse_font_spec(spec)
    font = load_font(family, size, search_dirs)
    if not text:
        return TextMetrics(width=0.0, height=0.0)

    width = draw.textlength(text, font=font)
    if isinstance(font, ImageFont.FreeTypeFont):
        # Anchored at the baseline: top is -ascent, bottom is +descent
        _, top, _, bottom = draw.textbbox((0, 0), text, font=font, anchor="ls")
    else:
        _, top, _, bottom = draw.textbbox((0, 0), text, font=font)
    return TextMetrics(width=float(width), height=float(bottom - top))


def draw_text(draw: ImageDraw.ImageDraw, text: str, x: float, y: float, style: TextStyle,
              search_dirs=None) -> None:
    """Draw text centered horizontally and vertically on (x, y)."""
    font = load_font(style.font, style.size, search_dirs)
    if isinstance(font, ImageFont.FreeTypeFont):
        draw.text((x, y), text, font=font, fill=style.color, anchor="mm")
        return
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((x - (right - left) / 2, y - (bottom - top) / 2), text, font=font, fill=style.color)


def draw_image(canvas: Image.Image, image: Image.Image, x: float, y: float,
               width: float, height: float) -> None:
    """Paste image scaled to width x height with its top-left at (x, y)."""
    size = (max(1, int(round(width))), max(1, int(round(height))))
    # NEAREST keeps QR module edges crisp (no gray aliasing)
    scaled = image.resize(size, resample=Image.Resampling.NEAREST)
    if scaled.mode != "RGBA":
        scaled = scaled.convert("RGBA")
    canvas.paste(scaled, (int(round(x)), int(round(y))), mask=scaled)


def load_image(buffer: bytes) -> Image.Image:
    """Decode encoded image bytes. Raises on corrupt or unsupported data."""
    image = Image.open(io.BytesIO(buffer))
    image.load()
    return image.convert("RGBA")


def encode_image(image: Image.Image, fmt: str = "PNG", quality=None) -> bytes:
    """
    Encode an image to bytes.

    Args:
        fmt: Pillow format name ('PNG', 'JPEG')
        quality: JPEG quality as a 0..1 fraction (browser convention) or a
                 Pillow 1..95 integer. Ignored for PNG.
    """
    out = io.BytesIO()
    fmt = fmt.upper()
    if fmt in ("JPEG", "JPG"):
        image.convert("RGB").save(out, format="JPEG", quality=jpeg_quality(quality))
    else:
        image.save(out, format=fmt)
    return out.getvalue()


def jpeg_quality(quality) -> int:
    """Map a 0..1 quality fraction onto Pillow's 1..95 scale."""
    if quality is None:
        quality = DEFAULT_JPEG_QUALITY
    quality = float(quality)
    if quality <= 1:
        quality *= 100
    return int(min(95, max(1, round(quality))))


def _format_size(size: float) -> str:
    size = float(size)
    return str(int(size)) if size.is_integer() else str(size)
