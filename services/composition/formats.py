"""
Per-format composers.

Each composer takes the encoder's raw artifact (PNG bytes, or SVG markup for
the svg format) plus composition options and returns the wire string for
that format. None of them raise on composition problems; the worst case is
the uncomposited QR. The one exception is compose_jpg: when the input buffer
itself cannot be decoded there is nothing to transcode, so the decode error
propagates to the caller.
"""
import base64
import logging
from enum import Enum
from types import MappingProxyType

from constants import MIME_JPEG, MIME_PNG
from utils.canvas import encode_image, load_image
from services.composition.options import CompositionOptions, CompositionResult
from services.composition.raster import try_compose_image
from services.composition.vector import compose_with_title, parse_vector_document

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    PNG = "png"
    JPG = "jpg"
    JPEG = "jpeg"
    SVG = "svg"
    BASE64 = "base64"


# Unknown or missing format names resolve to this variant
FALLBACK_FORMAT = OutputFormat.PNG


def resolve_format(name) -> OutputFormat:
    if isinstance(name, OutputFormat):
        return name
    try:
        return OutputFormat(str(name or "").strip().lower())
    except ValueError:
        return FALLBACK_FORMAT


def _font_dirs():
    from config import TITLE_FONT_DIRS
    return TITLE_FONT_DIRS


def to_data_uri(buffer: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(buffer).decode('ascii')}"


def compose_png(qr_buffer: bytes, options=None) -> str:
    """PNG data URI of the composed (or original) QR."""
    result = try_compose_image(qr_buffer, options, _font_dirs())
    return to_data_uri(result.artifact, MIME_PNG)


def compose_jpg(qr_buffer: bytes, options=None) -> str:
    """
    JPEG data URI. Composition always produces PNG; the JPEG is a final
    transcode of that PNG at options.quality.
    """
    opts = _coerce_or_default(options)
    result = try_compose_image(qr_buffer, opts, _font_dirs())
    try:
        jpeg = encode_image(load_image(result.artifact), "JPEG", opts.quality)
    except Exception as e:
        if result.artifact is qr_buffer:
            raise
        logger.exception("Error transcoding composed image to JPEG: %s", e)
        jpeg = encode_image(load_image(qr_buffer), "JPEG", opts.quality)
    return to_data_uri(jpeg, MIME_JPEG)


def compose_base64(qr_buffer: bytes, options=None) -> str:
    """Raw base64 (no data: prefix) of the composed (or original) QR."""
    result = try_compose_image(qr_buffer, options, _font_dirs())
    return base64.b64encode(result.artifact).decode("ascii")


def try_compose_svg(svg: str, options=None) -> CompositionResult:
    try:
        opts = CompositionOptions.coerce(options)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid composition options: {e}")
        return CompositionResult.fallback(svg, e)

    if not opts.has_title:
        return CompositionResult.fallback(svg)

    try:
        svg_info = parse_vector_document(svg)
        composition_config = {
            "position": opts.position,
            "padding": opts.image_padding,
            "background_color": opts.background_color,
            "qr_size": opts.qr_size,
        }
        return CompositionResult.composed_with(
            compose_with_title(svg_info, opts.title_config(), composition_config)
        )
    except Exception as e:
        logger.exception("Error composing SVG with title: %s", e)
        return CompositionResult.fallback(svg, e)


def compose_svg(svg: str, options=None) -> str:
    """Composed SVG document, or svg itself when untitled or on failure."""
    return try_compose_svg(svg, options).artifact


def _coerce_or_default(options) -> CompositionOptions:
    try:
        return CompositionOptions.coerce(options)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid composition options: {e}")
        return CompositionOptions()


FORMAT_COMPOSERS = MappingProxyType({
    OutputFormat.PNG: compose_png,
    OutputFormat.JPG: compose_jpg,
    OutputFormat.JPEG: compose_jpg,
    OutputFormat.SVG: compose_svg,
    OutputFormat.BASE64: compose_base64,
})


def compose(fmt, artifact, options=None) -> str:
    """Dispatch to the composer for fmt (unknown formats use png)."""
    return FORMAT_COMPOSERS[resolve_format(fmt)](artifact, options)
