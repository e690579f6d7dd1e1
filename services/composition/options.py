"""
Composition options and results.

CompositionOptions carries the title/layout settings for one request.
CompositionResult makes the "never fail the caller" contract explicit: a
composer always hands back an artifact, plus whether it is the composed one
or the untouched original.
"""
import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from constants import (
    DEFAULT_TITLE_POSITION,
    DEFAULT_TITLE_SIZE,
    DEFAULT_TITLE_COLOR,
    DEFAULT_TITLE_FONT,
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_IMAGE_PADDING,
    DEFAULT_QR_SIZE,
    DEFAULT_JPEG_QUALITY,
)
from utils.canvas import TextStyle
from utils.layout import normalize_position

logger = logging.getLogger(__name__)

# Wire (camelCase) name -> field name
REQUEST_FIELD_MAP = {
    "title": "title",
    "titlePosition": "title_position",
    "titleSize": "title_size",
    "titleColor": "title_color",
    "titleFont": "title_font",
    "backgroundColor": "background_color",
    "imagePadding": "image_padding",
    "qrSize": "qr_size",
    "quality": "quality",
}


def _number(value, name) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number")


@dataclass(frozen=True)
class TitleConfig:
    text: str
    position: str
    style: TextStyle


@dataclass(frozen=True)
class CanvasConfig:
    qr_size: float
    padding: float
    background_color: str


@dataclass(frozen=True)
class CompositionOptions:
    title: Optional[str] = None
    title_position: str = DEFAULT_TITLE_POSITION
    title_size: float = DEFAULT_TITLE_SIZE
    title_color: str = DEFAULT_TITLE_COLOR
    title_font: str = DEFAULT_TITLE_FONT
    background_color: str = DEFAULT_BACKGROUND_COLOR
    image_padding: float = DEFAULT_IMAGE_PADDING
    qr_size: float = DEFAULT_QR_SIZE
    quality: float = DEFAULT_JPEG_QUALITY

    @classmethod
    def coerce(cls, value) -> "CompositionOptions":
        """
        Accept None, a mapping, or an instance.

        Mapping keys may be field names or the camelCase wire names. Keys set
        to None fall back to the defaults; unknown keys are logged and ignored.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise TypeError(f"Unsupported composition options: {type(value).__name__}")
        names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, item in value.items():
            name = REQUEST_FIELD_MAP.get(key, key)
            if name not in names:
                logger.debug(f"Ignoring unknown composition option '{key}'")
                continue
            if item is not None:
                kwargs[name] = item
        return cls(**kwargs)

    @classmethod
    def from_request(cls, payload: Mapping[str, Any]) -> "CompositionOptions":
        """
        Build options from a request body using the camelCase wire names.

        Raises:
            ValueError: titleSize is not a positive number, or imagePadding is
            not a non-negative number
        """
        kwargs = {}
        for wire_name, field_name in REQUEST_FIELD_MAP.items():
            value = payload.get(wire_name)
            if value is not None and value != "":
                kwargs[field_name] = value
        if "title_size" in kwargs:
            kwargs["title_size"] = _number(kwargs["title_size"], "titleSize")
            if kwargs["title_size"] <= 0:
                raise ValueError("titleSize must be positive")
        if "image_padding" in kwargs:
            kwargs["image_padding"] = _number(kwargs["image_padding"], "imagePadding")
            if kwargs["image_padding"] < 0:
                raise ValueError("imagePadding must not be negative")
        return cls.coerce(kwargs)

    def replace(self, **changes) -> "CompositionOptions":
        merged = {f.name: getattr(self, f.name) for f in fields(self)}
        merged.update({k: v for k, v in changes.items() if v is not None})
        return CompositionOptions(**merged)

    @property
    def has_title(self) -> bool:
        return isinstance(self.title, str) and self.title.strip() != ""

    @property
    def clean_title(self) -> str:
        return self.title.strip() if self.has_title else ""

    @property
    def position(self) -> str:
        return normalize_position(self.title_position)

    def title_config(self) -> TitleConfig:
        return TitleConfig(
            text=self.clean_title,
            position=self.position,
            style=TextStyle(size=float(self.title_size), color=self.title_color, font=self.title_font),
        )

    def canvas_config(self) -> CanvasConfig:
        return CanvasConfig(
            qr_size=float(self.qr_size),
            padding=float(self.image_padding),
            background_color=self.background_color,
        )


@dataclass(frozen=True)
class CompositionResult:
    artifact: Any
    composed: bool
    error: Optional[BaseException] = None

    @classmethod
    def composed_with(cls, artifact) -> "CompositionResult":
        return cls(artifact=artifact, composed=True)

    @classmethod
    def fallback(cls, original, error: Optional[BaseException] = None) -> "CompositionResult":
        """Carry the original artifact itself (same object) back to the caller."""
        return cls(artifact=original, composed=False, error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None
