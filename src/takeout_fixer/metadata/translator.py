"""Translate Google sidecar metadata into EXIF tags.

The tag set is a piexif-style dict (``{"0th": {...}, "Exif": {...},
"GPS": {...}, ...}``). Translation only sets the tags it owns and leaves
everything else the image already carried untouched.
"""

import logging
import math
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Tuple

import piexif

from ..errors import InvalidTimestampError
from .schema import GeoData, parse_sidecar

logger = logging.getLogger(__name__)

_UNIX_EPOCH = datetime(1970, 1, 1)
# Signed 64-bit range at most
_INTEGER_RE = re.compile(r'[+-]?[0-9]{1,19}')

Rational = Tuple[int, int]


def apply_google_metadata(json_text: str, exif_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a sidecar document to an EXIF tag set.

    - non-empty ``description`` -> ImageDescription
    - ``photoTakenTime.timestamp`` (integer seconds) -> DateTimeOriginal
    - ``geoData`` unless it is 0/0 -> GPS latitude/longitude with references,
      plus altitude when non-zero

    Args:
        json_text: Raw sidecar JSON
        exif_dict: Existing tags; updated in place

    Returns:
        ``exif_dict`` itself

    Raises:
        UnknownFieldError: The JSON has a key the schema does not know
        JsonParseError: The JSON is malformed or violates the schema
        InvalidTimestampError: The timestamp is outside the calendar range
    """
    sidecar = parse_sidecar(json_text)

    zeroth = exif_dict.setdefault('0th', {})
    exif = exif_dict.setdefault('Exif', {})

    if sidecar.description:
        zeroth[piexif.ImageIFD.ImageDescription] = sidecar.description.encode('utf-8')

    if sidecar.photo_taken_time is not None:
        raw = sidecar.photo_taken_time.timestamp.strip()
        if _INTEGER_RE.fullmatch(raw):
            exif[piexif.ExifIFD.DateTimeOriginal] = format_exif_datetime(int(raw)).encode('ascii')
        else:
            logger.debug(f"Skipping non-integer photoTakenTime: {{'timestamp': {raw!r}}}")

    if sidecar.geo_data is not None and sidecar.geo_data.is_set():
        _apply_gps(exif_dict.setdefault('GPS', {}), sidecar.geo_data)

    return exif_dict


def _apply_gps(gps: Dict[int, Any], geo: GeoData) -> None:
    lat_ref, lat_vals = decimal_to_dms_exif(geo.latitude, is_latitude=True)
    lon_ref, lon_vals = decimal_to_dms_exif(geo.longitude, is_latitude=False)

    gps[piexif.GPSIFD.GPSLatitudeRef] = lat_ref
    gps[piexif.GPSIFD.GPSLatitude] = lat_vals
    gps[piexif.GPSIFD.GPSLongitudeRef] = lon_ref
    gps[piexif.GPSIFD.GPSLongitude] = lon_vals

    if geo.altitude != 0.0:
        # 0 = above sea level, 1 = below
        gps[piexif.GPSIFD.GPSAltitudeRef] = 0 if geo.altitude >= 0.0 else 1
        gps[piexif.GPSIFD.GPSAltitude] = (int(abs(geo.altitude) * 1000), 1000)


def format_exif_datetime(timestamp: int) -> str:
    """Format Unix seconds (UTC, no leap seconds) as ``YYYY:MM:DD HH:MM:SS``.

    >>> format_exif_datetime(1563032119)
    '2019:07:13 15:35:19'
    """
    try:
        dt = _UNIX_EPOCH + timedelta(seconds=timestamp)
    except OverflowError as e:
        raise InvalidTimestampError(timestamp) from e

    return (
        f"{dt.year:04d}:{dt.month:02d}:{dt.day:02d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )


def decimal_to_dms_exif(decimal: float, is_latitude: bool) -> Tuple[bytes, Tuple[Rational, Rational, Rational]]:
    """Convert decimal degrees to an EXIF reference and DMS rationals.

    Seconds keep three decimals (numerator scaled by 1000 over 1000).

    Returns:
        (reference, ((degrees, 1), (minutes, 1), (seconds * 1000, 1000)))
        where reference is ``b'N'``/``b'S'`` or ``b'E'``/``b'W'``
    """
    if is_latitude:
        reference = b'N' if decimal >= 0.0 else b'S'
    else:
        reference = b'E' if decimal >= 0.0 else b'W'

    abs_decimal = abs(decimal)
    degrees = math.floor(abs_decimal)
    minutes_float = (abs_decimal - degrees) * 60.0
    minutes = math.floor(minutes_float)
    seconds_float = (minutes_float - minutes) * 60.0
    # Half away from zero
    seconds_milli = math.floor(seconds_float * 1000.0 + 0.5)

    return reference, ((degrees, 1), (minutes, 1), (seconds_milli, 1000))
