"""
Pytest fixtures for the QR title composer tests.

Provides a Flask test app/client and QR source artifacts (PNG bytes and SVG
markup) produced by the real encoder.
"""
import io
import os
import pytest
from PIL import Image

# Set test environment before importing app/config
os.environ['FLASK_ENV'] = 'testing'
os.environ['APP_STAGE'] = 'test'
os.environ['SECRET_KEY'] = 'test-secret-key'
os.environ['LOG_JSON'] = 'false'

SAMPLE_SVG = """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 256 256">
        <rect width="256" height="256" fill="white"/>
        <rect x="0" y="0" width="32" height="32" fill="black"/>
        <rect x="64" y="0" width="32" height="32" fill="black"/>
    </svg>"""


@pytest.fixture
def app():
    """Create application for testing."""
    from app import create_app
    return create_app({
        'TESTING': True,
        'RATELIMIT_ENABLED': False,
    })


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def qr_png():
    """256x256 PNG of a real QR code for 'test'."""
    from services.qr_generators import QrRenderOptions, render_png
    return render_png('test', QrRenderOptions(width=256))


@pytest.fixture
def qr_svg():
    """SVG of a real QR code for 'test' (module coordinates)."""
    from services.qr_generators import QrRenderOptions, render_svg
    return render_svg('test', QrRenderOptions(width=256))


@pytest.fixture
def sample_svg():
    return SAMPLE_SVG


@pytest.fixture
def solid_qr_png():
    """Opaque black 256x256 square standing in for a QR, for placement checks."""
    out = io.BytesIO()
    Image.new('RGB', (256, 256), (0, 0, 0)).save(out, format='PNG')
    return out.getvalue()
