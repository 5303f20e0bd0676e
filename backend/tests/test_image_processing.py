import io
import unittest

from PIL import Image

from app.core.image_processing import (
    OUTPUT_CONTENT_TYPE,
    ImageDecodeError,
    recompress_screenshot,
)


def _png(width: int, height: int, mode: str = "RGB", color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def _jpeg(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (10, 120, 200)).save(buf, format="JPEG", quality=90)
    return buf.getvalue()


def _open(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class RecompressScreenshotTests(unittest.TestCase):
    def test_png_is_transcoded_to_jpeg(self):
        result = recompress_screenshot(_png(400, 300))
        self.assertTrue(result.recompressed)
        self.assertEqual(result.content_type, OUTPUT_CONTENT_TYPE)
        img = _open(result.data)
        self.assertEqual(img.format, "JPEG")
        self.assertEqual(img.size, (400, 300))

    def test_wide_image_is_scaled_to_max_width_keeping_aspect(self):
        result = recompress_screenshot(_png(1440, 900), max_width=1280)
        self.assertEqual((result.width, result.height), (1280, 800))
        self.assertEqual(_open(result.data).size, (1280, 800))

    def test_tall_image_is_cropped_to_max_height(self):
        result = recompress_screenshot(_png(200, 500), max_width=100, max_height=120)
        # 200x500 -> 100x250 -> cropped to 100x120
        self.assertEqual((result.width, result.height), (100, 120))

    def test_small_jpeg_passes_through_untouched(self):
        original = _jpeg(320, 240)
        result = recompress_screenshot(original)
        self.assertFalse(result.recompressed)
        self.assertIs(result.data, original)
        self.assertEqual((result.width, result.height), (320, 240))

    def test_oversized_jpeg_is_reencoded(self):
        result = recompress_screenshot(_jpeg(2000, 100), max_width=1000)
        self.assertTrue(result.recompressed)
        self.assertEqual(result.width, 1000)

    def test_transparency_is_flattened_onto_white(self):
        result = recompress_screenshot(_png(50, 50, mode="RGBA", color=(0, 0, 0, 0)))
        img = _open(result.data)
        self.assertEqual(img.mode, "RGB")
        r, g, b = img.getpixel((25, 25))
        self.assertGreater(min(r, g, b), 240)

    def test_undecodable_bytes_raise(self):
        with self.assertRaises(ImageDecodeError):
            recompress_screenshot(b"<html>not an image</html>")
        with self.assertRaises(ImageDecodeError):
            recompress_screenshot(b"")
