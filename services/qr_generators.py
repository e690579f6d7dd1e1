"""
QR generation entry points, one per output format.

Encoding is done by the `qrcode` library; these functions render its module
matrix to PNG or SVG and hand off to the format composers when a title is
requested.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

import qrcode
from PIL import Image

from constants import (
    DEFAULT_ERROR_LEVEL,
    DEFAULT_MARGIN,
    DEFAULT_QR_SIZE,
    DEFAULT_DARK_COLOR,
    DEFAULT_LIGHT_COLOR,
    DEFAULT_JPEG_QUALITY,
    MIME_JPEG,
    MIME_PNG,
    SVG_NAMESPACE,
)
from utils.canvas import encode_image
from services.composition.formats import (
    OutputFormat,
    compose_base64,
    compose_jpg,
    compose_png,
    compose_svg,
    resolve_format,
    to_data_uri,
)
from services.composition.options import CompositionOptions
from services.composition.vector import format_number, normalize_dimensions

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


@dataclass(frozen=True)
class QrRenderOptions:
    error_correction_level: str = DEFAULT_ERROR_LEVEL
    margin: int = DEFAULT_MARGIN
    width: int = DEFAULT_QR_SIZE
    dark: str = DEFAULT_DARK_COLOR
    light: str = DEFAULT_LIGHT_COLOR
    quality: float = DEFAULT_JPEG_QUALITY

    @classmethod
    def from_request(cls, payload: Mapping[str, Any]) -> "QrRenderOptions":
        """
        Read encoder options from a request body.

        Raises:
            ValueError: size/margin/quality are not numbers, or out of range
        """
        width = int(_number(payload.get("size"), DEFAULT_QR_SIZE, "size"))
        margin = int(_number(payload.get("margin"), DEFAULT_MARGIN, "margin"))
        quality = float(_number(payload.get("quality"), DEFAULT_JPEG_QUALITY, "quality"))
        if width <= 0:
            raise ValueError("size must be positive")
        if margin < 0:
            raise ValueError("margin must not be negative")
        if not 0 < quality <= 1:
            raise ValueError("quality must be between 0 and 1")
        return cls(
            error_correction_level=str(payload.get("errorLevel") or DEFAULT_ERROR_LEVEL).upper(),
            margin=margin,
            width=width,
            dark=payload.get("darkColor") or DEFAULT_DARK_COLOR,
            light=payload.get("lightColor") or DEFAULT_LIGHT_COLOR,
            quality=quality,
        )


def _number(value, default, name):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number")


def encode_matrix(text: str, options: QrRenderOptions):
    """Module matrix (True = dark), including the quiet-zone margin."""
    if not text:
        raise ValueError("Text is required")
    ecc = ERROR_CORRECTION_LEVELS.get(options.error_correction_level)
    if ecc is None:
        logger.warning(f"Unknown error correction level '{options.error_correction_level}'. Using M.")
        ecc = qrcode.constants.ERROR_CORRECT_M
    qr = qrcode.QRCode(
        version=None,
        error_correction=ecc,
        box_size=1,
        border=options.margin,
    )
    qr.add_data(text)
    qr.make(fit=True)
    return qr.get_matrix()


def render_image(text: str, options: QrRenderOptions) -> Image.Image:
    """QR as a Pillow image of width x width pixels."""
    matrix = encode_matrix(text, options)
    modules = len(matrix)
    img = Image.new("RGBA", (modules, modules), options.light)
    dark = Image.new("RGBA", (1, 1), options.dark).getpixel((0, 0))
    for y, row in enumerate(matrix):
        for x, is_dark in enumerate(row):
            if is_dark:
                img.putpixel((x, y), dark)
    # Integer module edges: nearest-neighbour only
    return img.resize((options.width, options.width), resample=Image.Resampling.NEAREST)


def render_png(text: str, options: QrRenderOptions) -> bytes:
    return encode_image(render_image(text, options), "PNG")


def render_svg(text: str, options: QrRenderOptions) -> str:
    """
    QR as SVG in module coordinates (viewBox 0 0 N N), one background path
    and one path for all dark modules, horizontal runs merged.
    """
    matrix = encode_matrix(text, options)
    modules = len(matrix)
    segments = []
    for y, row in enumerate(matrix):
        x = 0
        while x < modules:
            if not row[x]:
                x += 1
                continue
            run = 1
            while x + run < modules and row[x + run]:
                run += 1
            segments.append(f"M{x} {y}h{run}v1h-{run}z")
            x += run
    size = format_number(options.width)
    return (
        f'<svg xmlns="{SVG_NAMESPACE}" width="{size}" height="{size}" '
        f'viewBox="0 0 {modules} {modules}" shape-rendering="crispEdges">'
        f'<path fill="{options.light}" d="M0 0h{modules}v{modules}H0z"/>'
        f'<path fill="{options.dark}" d="{"".join(segments)}"/>'
        f'</svg>\n'
    )


def _composition(composition_options, **overrides) -> Optional[CompositionOptions]:
    if composition_options is None:
        return None
    return CompositionOptions.coerce(composition_options).replace(**overrides)


def _wants_title(composition_options) -> bool:
    if composition_options is None:
        return False
    if isinstance(composition_options, CompositionOptions):
        return bool(composition_options.title)
    return bool(composition_options.get("title"))


def generate_png(text: str, options: QrRenderOptions, composition_options=None) -> str:
    buffer = render_png(text, options)
    if _wants_title(composition_options):
        return compose_png(buffer, _composition(composition_options, qr_size=options.width))
    return to_data_uri(buffer, MIME_PNG)


def generate_jpg(text: str, options: QrRenderOptions, composition_options=None) -> str:
    if _wants_title(composition_options):
        buffer = render_png(text, options)
        return compose_jpg(buffer, _composition(
            composition_options, qr_size=options.width, quality=options.quality
        ))
    jpeg = encode_image(render_image(text, options), "JPEG", options.quality)
    return to_data_uri(jpeg, MIME_JPEG)


generate_jpeg = generate_jpg


def generate_svg(text: str, options: QrRenderOptions, composition_options=None) -> str:
    svg = render_svg(text, options)
    if not _wants_title(composition_options):
        svg = normalize_dimensions(svg, options.width)
        return svg
    return compose_svg(svg, _composition(composition_options, qr_size=options.width))


def generate_base64(text: str, options: QrRenderOptions, composition_options=None) -> str:
    buffer = render_png(text, options)
    if _wants_title(composition_options):
        return compose_base64(buffer, _composition(composition_options, qr_size=options.width))
    return compose_base64(buffer, None)


GENERATORS = MappingProxyType({
    OutputFormat.PNG: generate_png,
    OutputFormat.JPG: generate_jpg,
    OutputFormat.JPEG: generate_jpeg,
    OutputFormat.SVG: generate_svg,
    OutputFormat.BASE64: generate_base64,
})


def generate_qr(text: str, fmt=None, options: Optional[QrRenderOptions] = None,
                composition_options=None) -> str:
    """Generate a QR for fmt (unknown formats fall back to png)."""
    return GENERATORS[resolve_format(fmt)](text, options or QrRenderOptions(), composition_options)
