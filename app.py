import base64

import click
from flask import Flask

from config import (
    SECRET_KEY,
    MAX_CONTENT_LENGTH,
    LOG_LEVEL,
    LOG_JSON,
    GENERATE_RATE_LIMIT,
    RATELIMIT_STORAGE_URI,
    RATELIMIT_ENABLED,
    QR_MAX_SIZE,
    COMPOSED_MAX_SIZE,
    PORT,
)
from extensions import limiter
from routes.generate import generate_bp


def create_app(test_config=None):
    app = Flask(__name__)

    app.config['SECRET_KEY'] = SECRET_KEY
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.config['GENERATE_RATE_LIMIT'] = GENERATE_RATE_LIMIT
    app.config['RATELIMIT_STORAGE_URI'] = RATELIMIT_STORAGE_URI
    app.config['RATELIMIT_ENABLED'] = RATELIMIT_ENABLED
    app.config['QR_MAX_SIZE'] = QR_MAX_SIZE
    app.config['COMPOSED_MAX_SIZE'] = COMPOSED_MAX_SIZE

    # Test overrides win over environment config
    if test_config:
        app.config.update(test_config)

    # Setup Structured Logging
    from utils.logger import setup_logger
    setup_logger(app, level=LOG_LEVEL, json_format=LOG_JSON)

    # Extensions
    limiter.init_app(app)

    # Blueprints
    app.register_blueprint(generate_bp)

    # CLI Commands
    @app.cli.command("render-qr")
    @click.argument("text")
    @click.option("--output", "-o", required=True, type=click.Path(dir_okay=False, writable=True))
    @click.option("--format", "fmt", default="png", show_default=True,
                  type=click.Choice(["png", "jpg", "jpeg", "svg"], case_sensitive=False))
    @click.option("--size", default=256, show_default=True, type=int)
    @click.option("--title", default=None)
    @click.option("--title-position", default="bottom", show_default=True,
                  type=click.Choice(["top", "bottom"]))
    @click.option("--title-size", default=24, show_default=True, type=float)
    @click.option("--title-color", default="#333333", show_default=True)
    @click.option("--title-font", default="Arial", show_default=True)
    @click.option("--background-color", default="#FFFFFF", show_default=True)
    @click.option("--padding", default=20, show_default=True, type=float)
    def render_qr_cmd(text, output, fmt, size, title, title_position, title_size,
                      title_color, title_font, background_color, padding):
        """Render a (titled) QR code to a file."""
        from services.composition.options import CompositionOptions
        from services.qr_generators import QrRenderOptions, generate_qr

        composition = None
        if title:
            composition = CompositionOptions(
                title=title,
                title_position=title_position,
                title_size=title_size,
                title_color=title_color,
                title_font=title_font,
                background_color=background_color,
                image_padding=padding,
            )
        result = generate_qr(text, fmt, QrRenderOptions(width=size), composition)

        if fmt.lower() == "svg":
            with open(output, "w", encoding="utf-8") as f:
                f.write(result)
        else:
            _, encoded = result.split(",", 1)
            with open(output, "wb") as f:
                f.write(base64.b64decode(encoded))
        click.echo(f"Wrote {output}")

    return app


# WSGI Entry Point
app = create_app()

if __name__ == "__main__":
    app.run(host='0.0.0.0', port=PORT, debug=True)
