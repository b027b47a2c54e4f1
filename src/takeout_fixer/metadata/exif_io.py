"""Reading and embedding EXIF blocks.

Pillow locates the existing EXIF block in whatever container the image
uses; piexif decodes it into a tag dict and writes it back. piexif can only
insert into JPEG and WebP files, so writing to other formats fails and the
caller treats that as a warning.
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict

import piexif
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def new_exif_dict() -> Dict[str, Any]:
    """An empty tag set in piexif layout."""
    return {'0th': {}, 'Exif': {}, 'GPS': {}, 'Interop': {}, '1st': {}, 'thumbnail': None}


def load_exif(data: bytes) -> Dict[str, Any]:
    """Decode the EXIF tags already present in an image.

    Returns an empty tag set when the image has no EXIF block or cannot be
    decoded; images are never repaired.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            raw_exif = img.info.get('exif')
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"Cannot open image for EXIF: {{'error': {str(e)!r}}}")
        return new_exif_dict()

    if not raw_exif:
        return new_exif_dict()

    try:
        exif_dict = piexif.load(raw_exif)
    except Exception as e:
        logger.debug(f"Cannot decode existing EXIF, starting empty: {{'error': {str(e)!r}}}")
        return new_exif_dict()

    for ifd, default in new_exif_dict().items():
        exif_dict.setdefault(ifd, default)
    return exif_dict


def write_exif(path: Path, exif_dict: Dict[str, Any]) -> None:
    """Embed ``exif_dict`` into the image file at ``path`` in place.

    Raises:
        ValueError: piexif cannot serialize the tags or the file is neither
            JPEG nor WebP
    """
    exif_bytes = piexif.dump(exif_dict)
    piexif.insert(exif_bytes, str(path))
