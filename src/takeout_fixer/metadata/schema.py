"""Strict schema for Google Takeout ``*.supplemental-metadata.json`` files.

Unknown keys are rejected rather than ignored, so a change in Google's
export format surfaces as an :class:`UnknownFieldError` naming the new key
instead of silently dropping data.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from ..errors import JsonParseError, UnknownFieldError

logger = logging.getLogger(__name__)


class _StrictSidecarModel(BaseModel):
    model_config = ConfigDict(extra='forbid', alias_generator=to_camel, frozen=True)

    @model_validator(mode='before')
    @classmethod
    def reject_unknown_keys(cls, data: Any) -> Any:
        # Keys must be the camelCase JSON names, never the Python field names
        if isinstance(data, dict):
            known = {field.alias or name for name, field in cls.model_fields.items()}
            for key in data:
                if key not in known:
                    raise PydanticCustomError(
                        'unknown_field', "Unknown field {field}", {'field': key}
                    )
        return data


class GoogleTimestamp(_StrictSidecarModel):
    """``{"timestamp": "1563032119", "formatted": "13 Jul 2019, 15:35:19 UTC"}``"""

    timestamp: str
    formatted: str


class GeoData(_StrictSidecarModel):
    """Location in decimal degrees; altitude in meters."""

    latitude: float
    longitude: float
    altitude: float
    latitude_span: float = 0.0
    longitude_span: float = 0.0

    def is_set(self) -> bool:
        # Google writes 0.0/0.0 when it has no location
        return self.latitude != 0.0 or self.longitude != 0.0


class GooglePhotosOrigin(BaseModel):
    """How the item reached Google Photos. Kept as-is, never translated."""

    model_config = ConfigDict(extra='allow', alias_generator=to_camel, frozen=True)

    web_upload: Optional[Any] = None
    mobile_upload: Optional[Any] = None
    from_partner_sharing: Optional[Any] = None


class GoogleSupplementalMetadata(_StrictSidecarModel):
    """Top-level sidecar document."""

    title: str
    description: str = ""
    image_views: Optional[str] = None
    creation_time: Optional[GoogleTimestamp] = None
    photo_taken_time: Optional[GoogleTimestamp] = None
    geo_data: Optional[GeoData] = None
    geo_data_exif: Optional[GeoData] = None
    url: Optional[str] = None
    google_photos_origin: Optional[GooglePhotosOrigin] = None
    # Accepted for completeness, not translated into tags
    people: Optional[Any] = None
    enrichments: Optional[Any] = None
    favorited: Optional[bool] = None
    archived: Optional[bool] = None
    trashed: Optional[bool] = None
    app_source: Optional[Any] = None


def parse_sidecar(json_text: str) -> GoogleSupplementalMetadata:
    """Parse sidecar JSON text.

    Args:
        json_text: Raw JSON as read from the archive

    Returns:
        Validated sidecar document

    Raises:
        UnknownFieldError: If the document contains a key the schema does not
            know; the dotted location of the key is reported
        JsonParseError: For any other syntax or schema problem
    """
    try:
        return GoogleSupplementalMetadata.model_validate_json(json_text)
    except ValidationError as e:
        for error in e.errors():
            if error['type'] in ('extra_forbidden', 'unknown_field'):
                loc = list(error['loc'])
                if error['type'] == 'unknown_field':
                    loc.append(error['ctx']['field'])
                field = '.'.join(str(part) for part in loc)
                logger.debug(f"Unknown sidecar field: {{'field': {field!r}}}")
                raise UnknownFieldError(field=field, json=json_text) from e
        raise JsonParseError(message=str(e), json=json_text) from e
