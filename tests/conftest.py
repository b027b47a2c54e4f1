"""Shared fixtures: Takeout-shaped zip and tar.gz archives built on the fly."""

import io
import json
import tarfile
import time
import zipfile
from pathlib import Path
from typing import Dict, Union

import pytest
from PIL import Image

PREFIX = "Takeout/Google Photos/"

Content = Union[bytes, str]


def make_jpeg(color: str = "red", size=(32, 24), exif: bytes = b"") -> bytes:
    """Encode a small JPEG, optionally carrying an EXIF block."""
    buffer = io.BytesIO()
    img = Image.new("RGB", size, color=color)
    if exif:
        img.save(buffer, "JPEG", exif=exif)
    else:
        img.save(buffer, "JPEG")
    return buffer.getvalue()


def sidecar_json(title: str = "photo.jpg", **fields) -> str:
    """Serialize a sidecar document; keyword names are the JSON keys."""
    document = {"title": title}
    document.update(fields)
    return json.dumps(document)


def _as_bytes(content: Content) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def write_zip(path: Path, entries: Dict[str, Content]) -> Path:
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, _as_bytes(content))
    return path


def write_targz(path: Path, entries: Dict[str, Content], dot_prefix: bool = False) -> Path:
    with tarfile.open(path, "w:gz") as tf:
        for name, content in entries.items():
            data = _as_bytes(content)
            info = tarfile.TarInfo(name=f"./{name}" if dot_prefix else name)
            info.size = len(data)
            info.mtime = int(time.time())
            tf.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def album_entries(jpeg_bytes) -> Dict[str, Content]:
    """One album with an image and its untruncated sidecar."""
    return {
        f"{PREFIX}Trip 2019/photo.jpg": jpeg_bytes,
        f"{PREFIX}Trip 2019/photo.jpg.supplemental-metadata.json": sidecar_json(
            title="photo.jpg",
            description="Lake Balaton",
            photoTakenTime={"timestamp": "1563032119", "formatted": "13 Jul 2019, 15:35:19 UTC"},
            geoData={
                "latitude": 46.7234,
                "longitude": 17.3456,
                "altitude": 105.5,
                "latitudeSpan": 0.0,
                "longitudeSpan": 0.0,
            },
        ),
    }
