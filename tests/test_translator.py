"""Tests for sidecar to EXIF translation."""

import json

import piexif
import pytest

from takeout_fixer.errors import InvalidTimestampError, JsonParseError, UnknownFieldError
from takeout_fixer.metadata import (
    apply_google_metadata,
    decimal_to_dms_exif,
    format_exif_datetime,
    new_exif_dict,
)

GPS = piexif.GPSIFD


def sidecar(**fields) -> str:
    document = {"title": "photo.jpg"}
    document.update(fields)
    return json.dumps(document)


def geo(latitude, longitude, altitude=0.0):
    return {"latitude": latitude, "longitude": longitude, "altitude": altitude}


class TestFormatExifDatetime:

    def test_known_timestamp(self):
        assert format_exif_datetime(1563032119) == "2019:07:13 15:35:19"

    def test_epoch(self):
        assert format_exif_datetime(0) == "1970:01:01 00:00:00"

    def test_day_boundary(self):
        assert format_exif_datetime(86399) == "1970:01:01 23:59:59"
        assert format_exif_datetime(86400) == "1970:01:02 00:00:00"

    def test_leap_day(self):
        assert format_exif_datetime(951782400) == "2000:02:29 00:00:00"

    def test_before_epoch(self):
        assert format_exif_datetime(-1) == "1969:12:31 23:59:59"

    def test_out_of_range(self):
        with pytest.raises(InvalidTimestampError) as exc_info:
            format_exif_datetime(10 ** 15)
        assert exc_info.value.timestamp == 10 ** 15


class TestDecimalToDms:

    def test_north_east(self):
        lat_ref, lat = decimal_to_dms_exif(46.7234, is_latitude=True)
        lon_ref, lon = decimal_to_dms_exif(17.3456, is_latitude=False)

        assert lat_ref == b'N'
        assert lat[0] == (46, 1)
        assert lat[1] == (43, 1)
        # 0.404 min = 24.24 s
        assert lat[2] == (24240, 1000)
        assert lon_ref == b'E'
        assert lon[0] == (17, 1)
        assert lon[1] == (20, 1)

    def test_south_west(self):
        lat_ref, lat = decimal_to_dms_exif(-33.8688, is_latitude=True)
        lon_ref, lon = decimal_to_dms_exif(-17.3456, is_latitude=False)

        assert lat_ref == b'S'
        assert lat[0] == (33, 1)
        assert lon_ref == b'W'
        assert lon[0] == (17, 1)

    def test_zero_is_north_east(self):
        assert decimal_to_dms_exif(0.0, is_latitude=True)[0] == b'N'
        assert decimal_to_dms_exif(0.0, is_latitude=False)[0] == b'E'

    def test_denominators(self):
        _, values = decimal_to_dms_exif(12.5, is_latitude=True)
        assert values == ((12, 1), (30, 1), (0, 1000))


class TestApplyGoogleMetadata:

    def test_description(self):
        exif = apply_google_metadata(sidecar(description="Lake Balaton"), new_exif_dict())
        assert exif['0th'][piexif.ImageIFD.ImageDescription] == "Lake Balaton".encode("utf-8")

    def test_empty_description_not_written(self):
        exif = apply_google_metadata(sidecar(description=""), new_exif_dict())
        assert piexif.ImageIFD.ImageDescription not in exif['0th']

    def test_photo_taken_time(self):
        exif = apply_google_metadata(
            sidecar(photoTakenTime={"timestamp": "1563032119", "formatted": "13 Jul 2019"}),
            new_exif_dict(),
        )
        assert exif['Exif'][piexif.ExifIFD.DateTimeOriginal] == b"2019:07:13 15:35:19"

    def test_non_integer_timestamp_skipped(self):
        exif = apply_google_metadata(
            sidecar(photoTakenTime={"timestamp": "yesterday", "formatted": "?"}),
            new_exif_dict(),
        )
        assert piexif.ExifIFD.DateTimeOriginal not in exif['Exif']

    def test_timestamp_with_thousands_of_digits_skipped(self):
        exif = apply_google_metadata(
            sidecar(photoTakenTime={"timestamp": "9" * 5000, "formatted": "?"}),
            new_exif_dict(),
        )
        assert piexif.ExifIFD.DateTimeOriginal not in exif['Exif']

    def test_twenty_digit_timestamp_skipped(self):
        exif = apply_google_metadata(
            sidecar(photoTakenTime={"timestamp": "1" + "0" * 19, "formatted": "?"}),
            new_exif_dict(),
        )
        assert piexif.ExifIFD.DateTimeOriginal not in exif['Exif']

    def test_nineteen_digit_timestamp_out_of_range(self):
        with pytest.raises(InvalidTimestampError):
            apply_google_metadata(
                sidecar(photoTakenTime={"timestamp": "9999999999999999999", "formatted": "?"}),
                new_exif_dict(),
            )

    def test_out_of_range_timestamp(self):
        with pytest.raises(InvalidTimestampError):
            apply_google_metadata(
                sidecar(photoTakenTime={"timestamp": str(10 ** 15), "formatted": "?"}),
                new_exif_dict(),
            )

    def test_gps(self):
        exif = apply_google_metadata(sidecar(geoData=geo(46.7234, -17.3456)), new_exif_dict())
        gps = exif['GPS']

        assert gps[GPS.GPSLatitudeRef] == b'N'
        assert gps[GPS.GPSLatitude][0] == (46, 1)
        assert gps[GPS.GPSLongitudeRef] == b'W'
        assert gps[GPS.GPSLongitude][0] == (17, 1)
        assert GPS.GPSAltitude not in gps

    def test_zero_zero_location_ignored(self):
        exif = apply_google_metadata(sidecar(geoData=geo(0.0, 0.0, 120.0)), new_exif_dict())
        assert exif['GPS'] == {}

    def test_single_zero_coordinate_applied(self):
        exif = apply_google_metadata(sidecar(geoData=geo(0.0, 12.0)), new_exif_dict())
        assert exif['GPS'][GPS.GPSLatitude][0] == (0, 1)
        assert exif['GPS'][GPS.GPSLongitude][0] == (12, 1)

    def test_altitude_above_sea_level(self):
        exif = apply_google_metadata(sidecar(geoData=geo(1.0, 1.0, 105.5)), new_exif_dict())
        assert exif['GPS'][GPS.GPSAltitudeRef] == 0
        assert exif['GPS'][GPS.GPSAltitude] == (105500, 1000)

    def test_altitude_below_sea_level(self):
        exif = apply_google_metadata(sidecar(geoData=geo(31.5, 35.5, -430.25)), new_exif_dict())
        assert exif['GPS'][GPS.GPSAltitudeRef] == 1
        assert exif['GPS'][GPS.GPSAltitude] == (430250, 1000)

    def test_geo_data_exif_not_used(self):
        exif = apply_google_metadata(sidecar(geoDataExif=geo(46.0, 17.0)), new_exif_dict())
        assert exif['GPS'] == {}

    def test_existing_tags_preserved(self):
        exif_dict = new_exif_dict()
        exif_dict['0th'][piexif.ImageIFD.Make] = b"Canon"
        exif_dict['Exif'][piexif.ExifIFD.ISOSpeedRatings] = 200

        result = apply_google_metadata(sidecar(description="x"), exif_dict)

        assert result is exif_dict
        assert result['0th'][piexif.ImageIFD.Make] == b"Canon"
        assert result['Exif'][piexif.ExifIFD.ISOSpeedRatings] == 200

    def test_missing_ifds_created(self):
        result = apply_google_metadata(sidecar(description="x", geoData=geo(1.0, 1.0)), {})
        assert '0th' in result and 'GPS' in result

    def test_unknown_field(self):
        with pytest.raises(UnknownFieldError) as exc_info:
            apply_google_metadata(sidecar(brandNewField=1), new_exif_dict())
        assert exc_info.value.field == "brandNewField"

    def test_malformed(self):
        with pytest.raises(JsonParseError):
            apply_google_metadata("{", new_exif_dict())
