"""Builders for in-memory test images."""
from __future__ import annotations

import io

import numpy as np
import pillow_heif
from PIL import ExifTags, Image
from PIL.TiffImagePlugin import IFDRational


def _gradient(w: int, h: int) -> Image.Image:
    xs = np.linspace(0, 255, w, dtype=np.float32)
    ys = np.linspace(0, 255, h, dtype=np.float32)
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[..., 0] = xs[np.newaxis, :].astype(np.uint8)
    arr[..., 1] = ys[:, np.newaxis].astype(np.uint8)
    arr[..., 2] = 96
    return Image.fromarray(arr)


def _dms(value: float) -> tuple[IFDRational, IFDRational, IFDRational]:
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = round((minutes_full - minutes) * 60, 2)
    return (IFDRational(degrees, 1), IFDRational(minutes, 1), IFDRational(round(seconds * 100), 100))


def make_exif(
    lat: float | None = None,
    lon: float | None = None,
    taken: str | None = None,
    offset: str | None = None,
) -> Image.Exif:
    exif = Image.Exif()
    if taken is not None:
        exif[ExifTags.Base.DateTime] = taken
        exif_ifd = {ExifTags.Base.DateTimeOriginal: taken}
        if offset is not None:
            exif_ifd[ExifTags.Base.OffsetTimeOriginal] = offset
        exif[ExifTags.IFD.Exif] = exif_ifd
    if lat is not None and lon is not None:
        exif[ExifTags.IFD.GPSInfo] = {
            ExifTags.GPS.GPSLatitudeRef: "N" if lat >= 0 else "S",
            ExifTags.GPS.GPSLatitude: _dms(abs(lat)),
            ExifTags.GPS.GPSLongitudeRef: "E" if lon >= 0 else "W",
            ExifTags.GPS.GPSLongitude: _dms(abs(lon)),
        }
    return exif


def make_jpeg(w: int = 64, h: int = 48, exif: Image.Exif | None = None) -> bytes:
    buf = io.BytesIO()
    if exif is not None:
        _gradient(w, h).save(buf, format="JPEG", quality=85, exif=exif)
    else:
        _gradient(w, h).save(buf, format="JPEG", quality=85)
    return buf.getvalue()


def make_png(w: int = 64, h: int = 48, alpha: bool = False) -> bytes:
    img = _gradient(w, h)
    if alpha:
        img = img.convert("RGBA")
        img.putalpha(128)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_gif(w: int = 64, h: int = 48) -> bytes:
    buf = io.BytesIO()
    _gradient(w, h).convert("P").save(buf, format="GIF")
    return buf.getvalue()


def make_heic(w: int = 320, h: int = 240) -> bytes | None:
    """HEIC bytes, or None when the installed libheif has no encoder."""
    buf = io.BytesIO()
    try:
        pillow_heif.from_pillow(_gradient(w, h)).save(buf, quality=90)
    except Exception:
        return None
    return buf.getvalue()


def size_of(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def format_of(data: bytes) -> str:
    with Image.open(io.BytesIO(data)) as img:
        return img.format
