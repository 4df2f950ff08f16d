"""
Tests for utils/image.py
"""
import io

from PIL import Image

from vaultexport.utils.image import optimize_cover, resize_to_bounds

THRESHOLD = 100 * 1024


def encode(im, fmt="JPEG"):
    buf = io.BytesIO()
    im.save(buf, format=fmt)
    return buf.getvalue()


def noise(width, height):
    return Image.effect_noise((width, height), 100).convert("RGB")


class TestOptimizeCover:
    """optimize_cover"""

    def test_small_payload_untouched(self):
        data = encode(Image.new("RGB", (40, 60), "blue"))
        result = optimize_cover(data, THRESHOLD, 600, 900, 85)

        assert result.data is data
        assert result.optimized is False
        assert result.saved_bytes == 0

    def test_large_payload_fits_bounds(self):
        data = encode(noise(1000, 1000))
        assert len(data) > THRESHOLD

        result = optimize_cover(data, THRESHOLD, 600, 900, 85)

        assert result.optimized is True
        assert result.original_size == len(data)
        with Image.open(io.BytesIO(result.data)) as im:
            assert im.format == "JPEG"
            assert im.size == (600, 600)

    def test_undecodable_payload_kept(self):
        data = b"\x00" * (THRESHOLD + 1)
        result = optimize_cover(data, THRESHOLD, 600, 900, 85)

        assert result.data == data
        assert result.optimized is False


class TestResizeToBounds:
    """resize_to_bounds"""

    def test_never_upscales(self):
        data = encode(Image.new("RGB", (300, 200), "red"))
        with Image.open(io.BytesIO(resize_to_bounds(data, 600, 900, 85))) as im:
            assert im.size == (300, 200)

    def test_transparent_png_becomes_jpeg(self):
        data = encode(Image.new("RGBA", (1200, 900), (0, 0, 0, 0)), fmt="PNG")
        with Image.open(io.BytesIO(resize_to_bounds(data, 600, 900, 85))) as im:
            assert im.format == "JPEG"
            assert im.mode == "RGB"
            assert im.size == (600, 450)
