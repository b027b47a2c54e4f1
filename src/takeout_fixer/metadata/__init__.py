"""Google sidecar JSON parsing and EXIF translation."""

from .schema import (
    GoogleSupplementalMetadata,
    GoogleTimestamp,
    GeoData,
    GooglePhotosOrigin,
    parse_sidecar,
)
from .translator import apply_google_metadata, format_exif_datetime, decimal_to_dms_exif
from .exif_io import new_exif_dict, load_exif, write_exif

__all__ = [
    'GoogleSupplementalMetadata',
    'GoogleTimestamp',
    'GeoData',
    'GooglePhotosOrigin',
    'parse_sidecar',
    'apply_google_metadata',
    'format_exif_datetime',
    'decimal_to_dms_exif',
    'new_exif_dict',
    'load_exif',
    'write_exif',
]
