"""
Vector (SVG) title composition.

The source document is parsed only to validate it and read its viewBox.
The composed document is written out by SvgWriter: the original drawing is
copied verbatim from the source text into a scaled group, so its attributes
never go through a parse/serialize round trip.

There are no glyph metrics on this path; title size is estimated from the
character count (see estimate_text_dimensions).
"""
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Mapping
from xml.sax.saxutils import escape, quoteattr, unescape

from constants import DEFAULT_VIEW_BOX, MIN_VECTOR_SCALE, SVG_NAMESPACE, TEXT_WIDTH_FACTOR
from utils.layout import TextMetrics, compute_layout

logger = logging.getLogger(__name__)

_SVG_START_TAG_RE = re.compile(r"<(?:[\w.-]+:)?svg\b[^>]*?(/?)>", re.IGNORECASE)
_SVG_END_TAG_RE = re.compile(r"</(?:[\w.-]+:)?svg\s*>", re.IGNORECASE)
_DIMENSION_ATTR_RE = re.compile(r"\s+(width|height)\s*=\s*(\"[^\"]*\"|'[^']*')")
_VIEW_BOX_SPLIT_RE = re.compile(r"[\s,]+")
_NAMESPACE_DECL_RE = re.compile(r"\s(xmlns:[\w.-]+)\s*=\s*(\"[^\"]*\"|'[^']*')")


class VectorCompositionError(ValueError):
    """Raised when an SVG document cannot be parsed or composed."""


@dataclass(frozen=True)
class ViewBox:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class SvgInfo:
    element: ET.Element
    document: ET.ElementTree
    view_box: ViewBox
    original_width: float
    original_height: float
    inner_markup: str
    # Prefixed xmlns declarations on the source root, as (name, uri) pairs
    namespaces: tuple = ()


def format_number(value) -> str:
    """Render 256.0 as '256' and 158.4 as '158.4'."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _parse_view_box(raw) -> ViewBox:
    if raw is None or not raw.strip():
        return ViewBox(*DEFAULT_VIEW_BOX)
    parts = _VIEW_BOX_SPLIT_RE.split(raw.strip())
    if len(parts) != 4:
        raise VectorCompositionError(f"Invalid viewBox: {raw!r}")
    try:
        x, y, width, height = (float(p) for p in parts)
    except ValueError:
        raise VectorCompositionError(f"Invalid viewBox: {raw!r}")
    return ViewBox(x, y, width, height)


def _inner_markup(svg: str) -> str:
    start = _SVG_START_TAG_RE.search(svg)
    if start is None or start.group(1) == "/":
        return ""
    end = None
    for end in _SVG_END_TAG_RE.finditer(svg, start.end()):
        pass
    if end is None:
        return ""
    return svg[start.end():end.start()]


def _root_namespaces(svg: str) -> tuple:
    """Prefixed xmlns declarations of the root start tag; the inner markup may use them."""
    start = _SVG_START_TAG_RE.search(svg)
    if start is None:
        return ()
    return tuple(
        (name, unescape(quoted[1:-1], {"&quot;": "\"", "&apos;": "'"}))
        for name, quoted in _NAMESPACE_DECL_RE.findall(start.group(0))
    )


def parse_vector_document(svg: str) -> SvgInfo:
    """
    Parse SVG markup and read its coordinate frame.

    Raises:
        VectorCompositionError: malformed markup, no <svg> element, or an
        unreadable viewBox
    """
    if not isinstance(svg, str) or not svg.strip():
        raise VectorCompositionError("Empty SVG document")
    try:
        root = ET.fromstring(svg)
    except ET.ParseError as e:
        raise VectorCompositionError(f"Malformed SVG: {e}")

    element = next((el for el in root.iter() if _local_name(el.tag) == "svg"), None)
    if element is None:
        raise VectorCompositionError("No <svg> element found")

    view_box = _parse_view_box(element.get("viewBox"))

    return SvgInfo(
        element=element,
        document=ET.ElementTree(root),
        view_box=view_box,
        original_width=view_box.width,
        original_height=view_box.height,
        inner_markup=_inner_markup(svg),
        namespaces=_root_namespaces(svg),
    )


def estimate_text_dimensions(text_config: Mapping) -> TextMetrics:
    """
    Approximate title size as len(text) * size * 0.6 by size.

    The font family is accepted but not used: there are no glyph metrics
    on the vector path.
    """
    size = float(text_config["size"])
    text = text_config.get("text") or ""
    return TextMetrics(width=len(text) * size * TEXT_WIDTH_FACTOR, height=size)


def create_text_element(text_config: Mapping, position: Mapping, document=None) -> ET.Element:
    """
    Build a centered SVG <text> element for the title.

    document is accepted for callers that hold the parsed source; the element
    is standalone and gets written out by SvgWriter.element.
    """
    element = ET.Element("text")
    element.set("x", format_number(position["x"]))
    element.set("y", format_number(position["y"]))
    element.set("text-anchor", "middle")
    element.set("dominant-baseline", "central")
    element.set("font-family", str(text_config["font"]))
    element.set("font-size", format_number(text_config["size"]))
    element.set("fill", str(text_config["color"]))
    element.text = text_config.get("text") or ""
    return element


class SvgWriter:
    """Append-only SVG serializer. Escapes everything except raw()."""

    def __init__(self):
        self._parts = []

    @staticmethod
    def _attrs(attrs) -> str:
        rendered = []
        for name, value in attrs.items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = format_number(value)
            rendered.append(f" {name}={quoteattr(str(value))}")
        return "".join(rendered)

    def open_root(self, width: float, height: float) -> "SvgWriter":
        self._parts.append(
            f'<svg viewBox="0 0 {format_number(width)} {format_number(height)}" '
            f'width="{format_number(width)}" height="{format_number(height)}" '
            f'xmlns="{SVG_NAMESPACE}">'
        )
        return self

    def rect(self, **attrs) -> "SvgWriter":
        self._parts.append(f"<rect{self._attrs(attrs)}/>")
        return self

    def open_group(self, **attrs) -> "SvgWriter":
        self._parts.append(f"<g{self._attrs(attrs)}>")
        return self

    def close_group(self) -> "SvgWriter":
        self._parts.append("</g>")
        return self

    def raw(self, markup: str) -> "SvgWriter":
        self._parts.append(markup)
        return self

    def element(self, element: ET.Element) -> "SvgWriter":
        """Write a flat element (attributes + text, no children)."""
        tag = _local_name(element.tag)
        attrs = self._attrs(dict(element.attrib))
        self._parts.append(f"<{tag}{attrs}>{escape(element.text or '')}</{tag}>")
        return self

    def close_root(self) -> "SvgWriter":
        self._parts.append("</svg>")
        return self

    def getvalue(self) -> str:
        return "".join(self._parts)


def _config_value(config, name, default=None):
    if isinstance(config, Mapping):
        value = config.get(name)
    else:
        value = getattr(config, name, None)
    return default if value is None else value


def compose_with_title(svg_info: SvgInfo, title_config, composition_config) -> str:
    """
    Build a new SVG document holding the original drawing plus a title.

    Args:
        svg_info: Result of parse_vector_document
        title_config: TitleConfig (text + style)
        composition_config: mapping or object with position, padding,
            background_color and optional qr_size

    Returns:
        str: the composed SVG document

    Raises:
        Any error while composing is logged and re-raised; the svg format
        composer decides the fallback.
    """
    try:
        view_box = svg_info.view_box
        style = title_config.style
        text = title_config.text

        position = _config_value(composition_config, "position", "bottom")
        padding = float(_config_value(composition_config, "padding", 0))
        background_color = _config_value(composition_config, "background_color")
        qr_size = _config_value(composition_config, "qr_size")

        text_dimensions = estimate_text_dimensions({"text": text, "size": style.size, "font": style.font})

        qr_width = float(qr_size) if qr_size else view_box.width
        qr_height = float(qr_size) if qr_size else view_box.height

        geometry = compute_layout(
            qr_width=qr_width,
            qr_height=qr_height,
            text_width=text_dimensions.width,
            text_height=text_dimensions.height,
            padding=padding,
            position=position,
        )

        if view_box.width <= 0 or view_box.height <= 0:
            raise VectorCompositionError(f"viewBox must have a positive size: {view_box}")

        # Low-module sources render tiny; never embed below MIN_VECTOR_SCALE
        base_scale = qr_width / view_box.width
        enhanced_scale = max(base_scale, MIN_VECTOR_SCALE)

        # Keep the scaled drawing centered in its qr_width x qr_height slot
        scaled_x = geometry.qr_x + (qr_width - view_box.width * enhanced_scale) / 2
        scaled_y = geometry.qr_y + (qr_height - view_box.height * enhanced_scale) / 2

        writer = SvgWriter().open_root(geometry.total_width, geometry.total_height)

        if background_color and str(background_color).upper() != "#FFFFFF":
            writer.rect(width=geometry.total_width, height=geometry.total_height, fill=background_color)

        transform = (
            f"translate({format_number(scaled_x)}, {format_number(scaled_y)}) "
            f"scale({format_number(enhanced_scale)})"
        )
        # The copied markup keeps its prefixes, so their bindings move onto the group
        group_attrs = {"transform": transform, **dict(svg_info.namespaces)}
        writer.open_group(**group_attrs).raw(svg_info.inner_markup).close_group()

        writer.element(create_text_element(
            {"text": text, "size": style.size, "color": style.color, "font": style.font},
            {"x": geometry.title_x, "y": geometry.title_y},
            svg_info.document,
        ))

        return writer.close_root().getvalue()
    except Exception as e:
        logger.error(f"Error in compose_with_title: {e}")
        raise


def normalize_dimensions(svg: str, width) -> str:
    """Replace the root element's width/height attributes with width x width."""
    start = _SVG_START_TAG_RE.search(svg)
    if start is None:
        return svg
    tag = start.group(0)
    self_closing = tag.endswith("/>")
    body = _DIMENSION_ATTR_RE.sub("", tag[:-2] if self_closing else tag[:-1]).rstrip()
    size = format_number(width)
    new_tag = f'{body} width="{size}" height="{size}"{"/>" if self_closing else ">"}'
    return svg[:start.start()] + new_tag + svg[start.end():]
