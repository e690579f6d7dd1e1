"""
Raster title composition.

Strategies lay out a decoded QR image and a title on a fresh Pillow canvas;
the orchestrator decides whether composition is needed, runs a strategy and
re-encodes the result as PNG, falling back to the untouched input buffer on
any failure.
"""
import logging
from types import MappingProxyType

from PIL import Image

from utils.canvas import (
    create_filled_canvas,
    draw_image,
    draw_text,
    encode_image,
    font_spec,
    load_image,
    measure_text,
)
from utils.layout import compute_layout, normalize_position
from services.composition.options import CanvasConfig, CompositionOptions, CompositionResult, TitleConfig

logger = logging.getLogger(__name__)

# Scratch surface used for measuring before the real canvas size is known
_MEASURE_SURFACE_SIZE = (100, 100)


def _measure_title(title_config: TitleConfig, search_dirs=None):
    _, scratch = create_filled_canvas(*_MEASURE_SURFACE_SIZE)
    style = title_config.style
    return measure_text(scratch, title_config.text, font_spec(style.size, style.font), search_dirs)


def _compose(canvas_config: CanvasConfig, qr_image: Image.Image, title_config: TitleConfig,
             position: str, search_dirs=None) -> Image.Image:
    metrics = _measure_title(title_config, search_dirs)
    geometry = compute_layout(
        qr_width=canvas_config.qr_size,
        qr_height=canvas_config.qr_size,
        text_width=metrics.width,
        text_height=metrics.height,
        padding=canvas_config.padding,
        position=position,
    )
    canvas, draw = create_filled_canvas(
        geometry.total_width, geometry.total_height, canvas_config.background_color
    )

    def paint_qr():
        draw_image(canvas, qr_image, geometry.qr_x, geometry.qr_y, geometry.qr_width, geometry.qr_height)

    def paint_title():
        draw_text(draw, title_config.text, geometry.title_x, geometry.title_y, title_config.style, search_dirs)

    if position == "top":
        paint_title()
        paint_qr()
    else:
        paint_qr()
        paint_title()
    return canvas


def title_top(canvas_config: CanvasConfig, qr_image: Image.Image, title_config: TitleConfig,
              search_dirs=None) -> Image.Image:
    """Title above, QR below."""
    return _compose(canvas_config, qr_image, title_config, "top", search_dirs)


def title_bottom(canvas_config: CanvasConfig, qr_image: Image.Image, title_config: TitleConfig,
                 search_dirs=None) -> Image.Image:
    """QR above, title below."""
    return _compose(canvas_config, qr_image, title_config, "bottom", search_dirs)


COMPOSITION_STRATEGIES = MappingProxyType({
    "top": title_top,
    "bottom": title_bottom,
})


def select_strategy(position):
    """Unrecognized positions silently use the bottom layout."""
    return COMPOSITION_STRATEGIES[normalize_position(position)]


def try_compose_image(qr_buffer: bytes, options=None, search_dirs=None) -> CompositionResult:
    """
    Compose qr_buffer with a title, reporting whether composition happened.

    Never raises: without a title, or on any decode/compose/encode error,
    the result carries qr_buffer itself.
    """
    try:
        opts = CompositionOptions.coerce(options)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid composition options: {e}")
        return CompositionResult.fallback(qr_buffer, e)

    if not opts.has_title:
        return CompositionResult.fallback(qr_buffer)

    try:
        qr_image = load_image(qr_buffer)
        strategy = select_strategy(opts.title_position)
        composed = strategy(opts.canvas_config(), qr_image, opts.title_config(), search_dirs)
        return CompositionResult.composed_with(encode_image(composed, "PNG"))
    except Exception as e:
        logger.exception("Error composing image: %s", e)
        return CompositionResult.fallback(qr_buffer, e)


def create_composed_image(qr_buffer: bytes, options=None, search_dirs=None) -> bytes:
    """
    Return a PNG of the QR with its title, or qr_buffer unchanged (same object)
    when no title is requested or composition fails.
    """
    return try_compose_image(qr_buffer, options, search_dirs).artifact
