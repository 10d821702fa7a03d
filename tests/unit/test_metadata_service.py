from datetime import UTC, datetime, timedelta

import pytest
from PIL import ExifTags
from PIL.TiffImagePlugin import IFDRational

from image_factory import make_exif, make_heic, make_jpeg, make_png
from src.domain.entities.image import ImageType
from src.domain.entities.image_metadata import MetadataSource
from src.domain.services.metadata_service import MetadataService


def test_extracts_gps_and_capture_time():
    data = make_jpeg(200, 150, exif=make_exif(lat=45.46, lon=9.19, taken="2021:07:14 18:30:00"))
    meta = MetadataService.extract(data)
    assert meta.source is MetadataSource.EXTRACTED
    assert meta.latitude == pytest.approx(45.46, abs=1e-4)
    assert meta.longitude == pytest.approx(9.19, abs=1e-4)
    assert meta.taken_at == datetime(2021, 7, 14, 18, 30, tzinfo=UTC)
    assert meta.has_coordinates


def test_southern_and_western_hemispheres_are_negative():
    data = make_jpeg(exif=make_exif(lat=-33.8688, lon=-70.6693))
    meta = MetadataService.extract(data)
    assert meta.latitude == pytest.approx(-33.8688, abs=1e-4)
    assert meta.longitude == pytest.approx(-70.6693, abs=1e-4)


def test_zero_coordinates_are_not_absent():
    meta = MetadataService.extract(make_jpeg(exif=make_exif(lat=0.0, lon=0.0)))
    assert meta.source is MetadataSource.EXTRACTED
    assert meta.latitude == 0.0
    assert meta.longitude == 0.0


def test_capture_time_without_gps():
    meta = MetadataService.extract(make_jpeg(exif=make_exif(taken="2019:01:02 03:04:05")))
    assert meta.source is MetadataSource.EXTRACTED
    assert meta.taken_at == datetime(2019, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert meta.latitude is None
    assert meta.longitude is None


def test_no_exif_falls_back_to_now():
    before = datetime.now(UTC)
    meta = MetadataService.extract(make_png())
    assert meta.source is MetadataSource.DEFAULTED
    assert before - timedelta(seconds=1) <= meta.taken_at <= datetime.now(UTC) + timedelta(seconds=1)
    assert meta.latitude is None
    assert meta.longitude is None
    assert meta.type is ImageType.COUPLE


def test_garbage_never_raises():
    now = datetime(2024, 2, 29, 12, 0, tzinfo=UTC)
    meta = MetadataService.extract(b"\x00\x01not-an-image", now=now)
    assert meta.source is MetadataSource.DEFAULTED
    assert meta.taken_at == now
    assert meta.error
    assert not meta.has_coordinates


def test_unparseable_datetime_is_ignored():
    meta = MetadataService.extract(make_jpeg(exif=make_exif(lat=1.5, lon=2.5, taken="yesterday")))
    assert meta.source is MetadataSource.EXTRACTED
    assert meta.latitude == pytest.approx(1.5, abs=1e-4)
    assert (datetime.now(UTC) - meta.taken_at) < timedelta(seconds=5)


def test_heic_without_exif_defaults():
    heic = make_heic()
    if heic is None:
        pytest.skip("libheif encoder not available")
    meta = MetadataService.extract(heic)
    assert meta.source is MetadataSource.DEFAULTED
    assert meta.latitude is None


def test_gps_without_fix_is_absent_not_nan():
    exif = make_exif()
    no_fix = (IFDRational(0, 0),) * 3
    exif[ExifTags.IFD.GPSInfo] = {
        ExifTags.GPS.GPSLatitudeRef: "N",
        ExifTags.GPS.GPSLatitude: no_fix,
        ExifTags.GPS.GPSLongitudeRef: "E",
        ExifTags.GPS.GPSLongitude: no_fix,
    }
    meta = MetadataService.extract(make_jpeg(exif=exif))
    assert meta.latitude is None
    assert meta.longitude is None
    assert meta.source is MetadataSource.DEFAULTED


@pytest.mark.parametrize("part", [(0, 0), (5, 0), IFDRational(0, 0), float("inf")])
def test_unusable_rational_parts(part):
    assert MetadataService._rational_to_float(part) is None
    assert MetadataService._dms_to_decimal((part, 0.0, 0.0), "N") is None


def test_zero_over_one_is_still_zero():
    assert MetadataService._rational_to_float((0, 1)) == 0.0
    assert MetadataService._dms_to_decimal((IFDRational(0, 1),) * 3, "N") == 0.0


def test_capture_time_offset_is_applied():
    data = make_jpeg(exif=make_exif(taken="2022:05:01 20:00:00", offset="+02:00"))
    meta = MetadataService.extract(data)
    assert meta.taken_at == datetime(2022, 5, 1, 18, 0, tzinfo=UTC)


def test_malformed_offset_falls_back_to_wall_clock():
    data = make_jpeg(exif=make_exif(taken="2022:05:01 20:00:00", offset="local"))
    assert MetadataService.extract(data).taken_at == datetime(2022, 5, 1, 20, 0, tzinfo=UTC)
