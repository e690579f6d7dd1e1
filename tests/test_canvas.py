"""
Tests for the Pillow canvas primitives.
"""
import io
import pytest
from PIL import Image, ImageFont

from utils.canvas import (
    TextStyle,
    create_filled_canvas,
    draw_image,
    draw_text,
    encode_image,
    font_spec,
    jpeg_quality,
    load_font,
    load_image,
    measure_text,
    parse_font_spec,
)


def test_create_canvas_with_dimensions_and_fill():
    canvas, draw = create_filled_canvas(400, 300, '#FF0000')

    assert canvas.size == (400, 300)
    assert draw is not None
    # Every pixel is the background color before any drawing
    assert canvas.getcolors() == [(400 * 300, (255, 0, 0, 255))]


def test_create_canvas_rounds_fractional_size_up():
    canvas, _ = create_filled_canvas(100.2, 50.7)
    assert canvas.size == (101, 51)


def test_font_spec_round_trip():
    assert font_spec(24, 'Arial') == '24px Arial'
    assert font_spec(12.5, 'Times New Roman') == '12.5px Times New Roman'
    assert parse_font_spec('24px Arial') == (24.0, 'Arial')
    assert parse_font_spec('12.5px Times New Roman') == (12.5, 'Times New Roman')


def test_parse_font_spec_rejects_garbage():
    with pytest.raises(ValueError):
        parse_font_spec('Arial')


def test_load_font_unknown_family_falls_back():
    font = load_font('Definitely Not A Real Font Family', 20)
    assert isinstance(font, (ImageFont.FreeTypeFont, ImageFont.ImageFont))


def test_measure_text():
    _, draw = create_filled_canvas(100, 100)
    metrics = measure_text(draw, 'Test', '20px Arial')

    assert metrics.width > 0
    assert metrics.height > 0


def test_measure_text_grows_with_length():
    _, draw = create_filled_canvas(100, 100)
    short = measure_text(draw, 'Hi', '24px Arial')
    longer = measure_text(draw, 'Hi there, world', '24px Arial')
    assert longer.width > short.width


def test_measure_empty_text():
    _, draw = create_filled_canvas(100, 100)
    metrics = measure_text(draw, '', '24px Arial')
    assert metrics.width == 0
    assert metrics.height == 0


def test_draw_text_marks_pixels_around_center():
    canvas, draw = create_filled_canvas(200, 60, '#FFFFFF')
    draw_text(draw, 'HELLO', 100, 30, TextStyle(size=24, color='#000000', font='Arial'))

    bbox = Image.eval(canvas.convert('L'), lambda p: 255 - p).getbbox()
    assert bbox is not None
    left, top, right, bottom = bbox
    # Centered on (100, 30) within a few pixels
    assert abs((left + right) / 2 - 100) <= 3
    assert abs((top + bottom) / 2 - 30) <= 4


def test_draw_image_scales_and_positions():
    canvas, _ = create_filled_canvas(100, 100, '#FFFFFF')
    block = Image.new('RGB', (10, 10), (0, 0, 255))

    draw_image(canvas, block, 20, 30, 40, 50)

    assert canvas.getpixel((20, 30)) == (0, 0, 255, 255)
    assert canvas.getpixel((59, 79)) == (0, 0, 255, 255)
    assert canvas.getpixel((60, 80)) == (255, 255, 255, 255)
    assert canvas.getpixel((19, 30)) == (255, 255, 255, 255)


def test_load_image_rejects_corrupt_bytes():
    with pytest.raises(Exception):
        load_image(b'not an image')


def test_encode_png_and_jpeg():
    img = Image.new('RGBA', (20, 20), (10, 20, 30, 255))

    png = encode_image(img, 'PNG')
    jpeg = encode_image(img, 'JPEG', quality=0.8)

    assert png.startswith(b'\x89PNG')
    assert jpeg.startswith(b'\xff\xd8')
    assert Image.open(io.BytesIO(jpeg)).mode == 'RGB'


@pytest.mark.parametrize("quality,expected", [
    (None, 92),
    (0.92, 92),
    (0.8, 80),
    (1, 95),
    (0.001, 1),
    (75, 75),
])
def test_jpeg_quality_mapping(quality, expected):
    assert jpeg_quality(quality) == expected
