"""
Tests for raster title composition (strategies + orchestrator).
"""
import io
import math
import pytest
from PIL import Image

from services.composition.options import CompositionOptions
from services.composition.raster import (
    COMPOSITION_STRATEGIES,
    create_composed_image,
    select_strategy,
    title_bottom,
    title_top,
    try_compose_image,
)
from utils.canvas import create_filled_canvas, font_spec, measure_text

try:
    from pyzbar.pyzbar import decode
    ZBAR_AVAILABLE = True
except (ImportError, OSError):
    ZBAR_AVAILABLE = False


def _open(buffer):
    return Image.open(io.BytesIO(buffer)).convert('RGB')


def _row_has_color(img, y, predicate):
    return any(predicate(img.getpixel((x, y))) for x in range(img.width))


class TestNoTitle:

    def test_returns_original_buffer_when_no_title(self, qr_png):
        assert create_composed_image(qr_png, {}) is qr_png

    def test_returns_original_buffer_when_title_empty(self, qr_png):
        assert create_composed_image(qr_png, {'title': ''}) is qr_png

    def test_returns_original_buffer_when_title_blank(self, qr_png):
        assert create_composed_image(qr_png, {'title': '   \t '}) is qr_png

    def test_returns_original_buffer_without_options(self, qr_png):
        assert create_composed_image(qr_png, None) is qr_png

    def test_no_title_result_is_not_a_failure(self, qr_png):
        result = try_compose_image(qr_png, {})
        assert result.composed is False
        assert result.failed is False
        assert result.artifact is qr_png


class TestComposition:

    def test_create_composed_image_with_title(self, qr_png):
        result = create_composed_image(qr_png, {
            'title': 'Test Title',
            'title_position': 'bottom',
            'title_size': 24,
            'title_color': '#333333',
            'title_font': 'Arial',
            'background_color': '#FFFFFF',
            'image_padding': 20,
            'qr_size': 256,
        })

        assert isinstance(result, bytes)
        assert result is not qr_png
        assert result.startswith(b'\x89PNG')
        assert len(result) > len(qr_png)

    def test_composed_dimensions_follow_layout(self, qr_png):
        options = CompositionOptions(title='Test Title', qr_size=256, image_padding=20)
        _, scratch = create_filled_canvas(100, 100)
        metrics = measure_text(scratch, 'Test Title', font_spec(24, 'Arial'))

        img = _open(create_composed_image(qr_png, options))

        assert img.width == math.ceil(max(256, metrics.width) + 40)
        assert img.height == math.ceil(256 + metrics.height + 60)
        assert img.height > 256

    def test_long_title_widens_image(self, qr_png):
        title = 'This is a very long title that should exceed the QR code width'
        img = _open(create_composed_image(qr_png, {'title': title, 'qr_size': 256}))
        assert img.width > 256 + 40

    def test_title_is_trimmed(self, qr_png):
        padded = create_composed_image(qr_png, {'title': '  Trim Me  '})
        trimmed = create_composed_image(qr_png, {'title': 'Trim Me'})
        assert padded == trimmed

    def test_handle_title_at_top(self, qr_png):
        result = create_composed_image(qr_png, {
            'title': 'Top Title',
            'title_position': 'top',
            'title_size': 24,
            'qr_size': 256,
        })
        assert isinstance(result, bytes)
        assert len(result) > len(qr_png)

    def test_background_fills_canvas(self, qr_png):
        img = _open(create_composed_image(qr_png, {
            'title': 'BG', 'background_color': '#00FF00', 'image_padding': 20,
        }))
        assert img.getpixel((0, 0)) == (0, 255, 0)
        assert img.getpixel((img.width - 1, img.height - 1)) == (0, 255, 0)


class TestPlacement:

    def test_bottom_places_qr_above_title(self, solid_qr_png):
        img = _open(create_composed_image(solid_qr_png, {
            'title': 'Label', 'title_position': 'bottom', 'title_color': '#FF0000',
            'image_padding': 20, 'qr_size': 256,
        }))
        center_x = img.width // 2

        assert img.getpixel((center_x, 25)) == (0, 0, 0)
        assert img.getpixel((center_x, 20 + 255)) == (0, 0, 0)
        is_red = lambda p: p[0] > 150 and p[1] < 100 and p[2] < 100
        assert any(_row_has_color(img, y, is_red) for y in range(20 + 256, img.height))
        assert not any(_row_has_color(img, y, is_red) for y in range(0, 20 + 256))

    def test_top_places_title_above_qr(self, solid_qr_png):
        img = _open(create_composed_image(solid_qr_png, {
            'title': 'Label', 'title_position': 'top', 'title_color': '#FF0000',
            'image_padding': 20, 'qr_size': 256,
        }))
        center_x = img.width // 2
        qr_top = img.height - 20 - 256

        assert img.getpixel((center_x, 25)) != (0, 0, 0)
        assert img.getpixel((center_x, qr_top + 5)) == (0, 0, 0)
        is_red = lambda p: p[0] > 150 and p[1] < 100 and p[2] < 100
        assert any(_row_has_color(img, y, is_red) for y in range(0, qr_top))

    def test_qr_scaled_to_configured_size(self, solid_qr_png):
        img = _open(create_composed_image(solid_qr_png, {
            'title': 'x', 'qr_size': 100, 'image_padding': 10,
        }))
        qr_left = (img.width - 100) // 2
        row = [img.getpixel((x, 50)) for x in range(img.width)]
        dark = [x for x, p in enumerate(row) if p == (0, 0, 0)]
        assert len(dark) == 100
        assert abs(dark[0] - qr_left) <= 1

    def test_unrecognized_position_falls_back_to_bottom(self, qr_png):
        left = create_composed_image(qr_png, {'title': 'Pos', 'title_position': 'left'})
        bottom = create_composed_image(qr_png, {'title': 'Pos', 'title_position': 'bottom'})
        assert left == bottom


class TestStrategies:

    def test_strategy_selection(self):
        assert select_strategy('top') is title_top
        assert select_strategy('bottom') is title_bottom
        assert select_strategy(None) is title_bottom
        assert select_strategy('sideways') is title_bottom

    def test_strategy_table_is_read_only(self):
        with pytest.raises(TypeError):
            COMPOSITION_STRATEGIES['left'] = title_top

    def test_strategies_agree_on_canvas_size(self, qr_png):
        options = CompositionOptions(title='Same Size')
        qr_image = Image.open(io.BytesIO(qr_png))
        top = title_top(options.canvas_config(), qr_image, options.title_config())
        bottom = title_bottom(options.canvas_config(), qr_image, options.title_config())
        assert top.size == bottom.size


class TestFailures:

    def test_corrupt_buffer_returns_original(self):
        corrupt = b'\x89PNG\r\n\x1a\nthis is not really a png'
        assert create_composed_image(corrupt, {'title': 'Oops'}) is corrupt

    def test_corrupt_buffer_reports_failure(self):
        corrupt = b'garbage'
        result = try_compose_image(corrupt, {'title': 'Oops'})
        assert result.composed is False
        assert result.failed is True
        assert result.artifact is corrupt

    def test_invalid_color_returns_original(self, qr_png):
        assert create_composed_image(qr_png, {'title': 'Bad', 'background_color': 'not-a-color'}) is qr_png

    def test_invalid_options_type_returns_original(self, qr_png):
        assert create_composed_image(qr_png, ['title']) is qr_png


@pytest.mark.skipif(not ZBAR_AVAILABLE, reason="zbar not available")
@pytest.mark.parametrize("position", ['top', 'bottom'])
def test_composed_qr_still_decodes(position):
    from services.qr_generators import QrRenderOptions, render_png
    data = 'https://example.com/composed'
    buffer = render_png(data, QrRenderOptions(width=300))

    img = _open(create_composed_image(buffer, {
        'title': 'Scan me', 'title_position': position, 'qr_size': 300,
    }))
    results = decode(img)

    assert len(results) > 0
    assert results[0].data.decode('utf-8') == data
