"""
Title/QR placement geometry shared by the raster and vector composers.

Both back-ends feed their own text metrics in (measured glyph boxes for
Pillow, a character-count estimate for SVG) and get identical placement
rules back:

    top:     [padding][title][padding][qr][padding]
    bottom:  [padding][qr][padding][title][padding]

Horizontally both elements are centered on the midline of the total width.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class TextMetrics:
    width: float
    height: float


@dataclass(frozen=True)
class LayoutGeometry:
    total_width: float
    total_height: float
    qr_x: float
    qr_y: float
    qr_width: float
    qr_height: float
    title_x: float
    title_y: float


def normalize_position(position) -> str:
    """Anything other than 'top' places the title below the QR."""
    return "top" if position == "top" else "bottom"


def compute_layout(qr_width: float, qr_height: float, text_width: float, text_height: float,
                   padding: float, position: str = "bottom") -> LayoutGeometry:
    """
    Compute canvas size and element origins for a titled QR.

    Returns:
        LayoutGeometry: qr_x/qr_y are the QR's top-left corner,
        title_x/title_y the title's center point.
    """
    total_width = max(qr_width, text_width) + padding * 2
    total_height = qr_height + text_height + padding * 3

    qr_x = (total_width - qr_width) / 2
    title_x = total_width / 2

    if normalize_position(position) == "top":
        title_y = padding + text_height / 2
        qr_y = padding + text_height + padding
    else:
        qr_y = padding
        title_y = padding + qr_height + padding + text_height / 2

    return LayoutGeometry(
        total_width=total_width,
        total_height=total_height,
        qr_x=qr_x,
        qr_y=qr_y,
        qr_width=qr_width,
        qr_height=qr_height,
        title_x=title_x,
        title_y=title_y,
    )
