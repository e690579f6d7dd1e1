# Title Composition Defaults
DEFAULT_TITLE_POSITION = "bottom"
DEFAULT_TITLE_SIZE = 24
DEFAULT_TITLE_COLOR = "#333333"
DEFAULT_TITLE_FONT = "Arial"
DEFAULT_BACKGROUND_COLOR = "#FFFFFF"
DEFAULT_IMAGE_PADDING = 20
DEFAULT_QR_SIZE = 256
DEFAULT_JPEG_QUALITY = 0.92

# QR Encoder Defaults (request-level)
DEFAULT_ERROR_LEVEL = "M"
DEFAULT_MARGIN = 4
DEFAULT_DARK_COLOR = "#000000"
DEFAULT_LIGHT_COLOR = "#FFFFFF"

# Vector documents without a viewBox are treated as this frame
DEFAULT_VIEW_BOX = (0.0, 0.0, 256.0, 256.0)

# Vector embedding never shows the source graphic below this magnification
MIN_VECTOR_SCALE = 2

# Character width as a fraction of font size, used when no glyph metrics exist
TEXT_WIDTH_FACTOR = 0.6

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

# Output MIME types
MIME_PNG = "image/png"
MIME_JPEG = "image/jpeg"
