import logging

from flask import Blueprint, current_app, jsonify, request

from extensions import limiter
from services.composition.options import CompositionOptions
from services.composition.vector import estimate_text_dimensions
from services.qr_generators import QrRenderOptions, generate_qr
from utils.layout import compute_layout

logger = logging.getLogger(__name__)

generate_bp = Blueprint('generate', __name__)

# Title fields echoed back in the response when a title was supplied
TITLE_FIELDS = (
    ('title', None),
    ('titlePosition', 'bottom'),
    ('titleSize', 24),
    ('titleColor', '#333333'),
    ('titleFont', 'Arial'),
    ('backgroundColor', '#FFFFFF'),
    ('imagePadding', 20),
)


def _composed_extent(render_options, composition_options):
    """Largest edge of the titled canvas, estimated before anything is drawn."""
    title = composition_options.title_config()
    text = estimate_text_dimensions({"text": title.text, "size": title.style.size, "font": title.style.font})
    geometry = compute_layout(
        qr_width=render_options.width,
        qr_height=render_options.width,
        text_width=text.width,
        text_height=text.height,
        padding=float(composition_options.image_padding),
        position=title.position,
    )
    return max(geometry.total_width, geometry.total_height)


def _rate_limit():
    return current_app.config.get('GENERATE_RATE_LIMIT', '60/minute')


@generate_bp.route('/ping')
@limiter.exempt
def ping():
    return jsonify({"status": "ok"}), 200


@generate_bp.route('/generate-qr', methods=['POST'])
@limiter.limit(_rate_limit)
def generate():
    """
    Generate a QR code, optionally with a title.

    Accepts JSON or form data:
    - text (required)
    - format: png | jpg | jpeg | svg | base64 (unknown -> png)
    - size, errorLevel, margin, darkColor, lightColor, quality
    - title, titlePosition, titleSize, titleColor, titleFont,
      backgroundColor, imagePadding
    """
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid request body"}), 400

    text = data.get('text')
    if not text:
        return jsonify({"error": "Text is required"}), 400

    try:
        render_options = QrRenderOptions.from_request(data)
        composition_options = CompositionOptions.from_request(data) if data.get('title') else None
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    max_size = current_app.config.get('QR_MAX_SIZE')
    if max_size and render_options.width > max_size:
        return jsonify({"error": f"size must not exceed {max_size}"}), 400

    max_canvas = current_app.config.get('COMPOSED_MAX_SIZE')
    if composition_options is not None and max_canvas:
        if _composed_extent(render_options, composition_options) > max_canvas:
            return jsonify({"error": f"titled image must not exceed {max_canvas}px"}), 400

    fmt = data.get('format')

    try:
        result = generate_qr(str(text), fmt, render_options, composition_options)
    except Exception as e:
        logger.exception(f"Error generating QR code: {e}")
        return jsonify({"error": f"Failed to generate QR code: {e}"}), 500

    options = {
        "size": render_options.width,
        "errorLevel": data.get('errorLevel') or 'M',
        "margin": render_options.margin,
        "darkColor": render_options.dark,
        "lightColor": render_options.light,
        "quality": render_options.quality,
    }
    if composition_options is not None:
        for name, default in TITLE_FIELDS:
            value = data.get(name)
            options[name] = default if value is None else value

    return jsonify({
        "success": True,
        "data": result,
        "format": fmt or 'png',
        "options": options,
    })
