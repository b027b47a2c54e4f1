"""Tests for reading and embedding EXIF blocks."""

import io

import piexif
import pytest
from PIL import Image

from conftest import make_jpeg
from takeout_fixer.metadata import load_exif, new_exif_dict, write_exif


def jpeg_with_make(make: str = "Canon") -> bytes:
    exif = Image.Exif()
    exif[piexif.ImageIFD.Make] = make
    return make_jpeg(exif=exif.tobytes())


def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color="green").save(buffer, "PNG")
    return buffer.getvalue()


class TestLoadExif:

    def test_jpeg_without_exif(self):
        assert load_exif(make_jpeg()) == new_exif_dict()

    def test_jpeg_with_exif(self):
        exif_dict = load_exif(jpeg_with_make("Canon"))

        assert exif_dict['0th'][piexif.ImageIFD.Make] == b"Canon"
        assert 'GPS' in exif_dict

    def test_png_without_exif(self):
        assert load_exif(png_bytes()) == new_exif_dict()

    def test_not_an_image(self):
        assert load_exif(b"definitely not an image") == new_exif_dict()


class TestWriteExif:

    def test_roundtrip_into_jpeg(self, tmp_path):
        path = tmp_path / "photo.jpg"
        path.write_bytes(jpeg_with_make("Nikon"))
        exif_dict = load_exif(path.read_bytes())
        exif_dict['0th'][piexif.ImageIFD.ImageDescription] = b"Lake"

        write_exif(path, exif_dict)

        written = piexif.load(str(path))
        assert written['0th'][piexif.ImageIFD.ImageDescription] == b"Lake"
        assert written['0th'][piexif.ImageIFD.Make] == b"Nikon"
        # Still a decodable image
        with Image.open(path) as img:
            assert img.size == (32, 24)

    def test_png_not_supported(self, tmp_path):
        path = tmp_path / "image.png"
        original = png_bytes()
        path.write_bytes(original)

        with pytest.raises(ValueError):
            write_exif(path, new_exif_dict())

        assert path.read_bytes() == original
