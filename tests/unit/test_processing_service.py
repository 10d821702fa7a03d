import pytest

from image_factory import format_of, make_gif, make_heic, make_jpeg, make_png, size_of
from src.domain.errors import FormatError
from src.domain.services.processing_service import ProcessingService as PS


@pytest.mark.parametrize(
    "filename, expected",
    [("photo.jpg", "jpg"), ("IMG_0001.HEIC", "heic"), ("scan.Jpeg", "jpeg"), ("a.b.png", "png"), ("x.gif", "gif")],
)
def test_detect_format_accepts_known_extensions(filename, expected):
    assert PS.detect_format(filename) == expected


@pytest.mark.parametrize("filename", ["doc.pdf", "image.bmp", "archive.heic.zip", "noext"])
def test_detect_format_rejects_others(filename):
    with pytest.raises(ValueError, match="Unsupported file type"):
        PS.detect_format(filename)


def test_detect_format_falls_back_to_content_type():
    assert PS.detect_format("blob", "image/png") == "png"


def test_normalize_png_with_alpha_keeps_dimensions():
    out = PS.normalize(make_png(120, 80, alpha=True), "png")
    assert format_of(out) == "JPEG"
    assert size_of(out) == (120, 80)


def test_normalize_gif():
    out = PS.normalize(make_gif(50, 30), "gif")
    assert format_of(out) == "JPEG"
    assert size_of(out) == (50, 30)


def test_normalize_large_jpeg_is_not_resized():
    out = PS.normalize(make_jpeg(2000, 1500), "jpg")
    assert size_of(out) == (2000, 1500)


def test_normalize_corrupt_bytes_raises():
    with pytest.raises(FormatError):
        PS.normalize(b"definitely not an image", "jpg")


def test_normalize_empty_buffer_raises():
    with pytest.raises(FormatError):
        PS.normalize(b"", "png")


def test_normalize_fake_heic_raises():
    # a JPEG renamed to .heic must not silently pass through
    with pytest.raises(FormatError, match="HEIC"):
        PS.normalize(b"\x00\x00\x00\x18ftypheic" + b"\x00" * 64, "heic")


def test_normalize_real_heic():
    heic = make_heic(320, 240)
    if heic is None:
        pytest.skip("libheif encoder not available")
    out = PS.normalize(heic, "heic")
    assert format_of(out) == "JPEG"
    assert size_of(out) == (320, 240)


def test_small_source_is_never_upscaled():
    src = PS.normalize(make_jpeg(100, 100), "jpg")
    assert size_of(PS.make_thumb_big(src)) == (100, 100)
    assert size_of(PS.make_thumb_small(src)) == (100, 100)


def test_only_oversized_side_is_bounded():
    src = PS.normalize(make_jpeg(300, 150), "jpg")
    assert size_of(PS.make_thumb_big(src)) == (300, 150)
    assert size_of(PS.make_thumb_small(src)) == (200, 100)


@pytest.mark.parametrize("w, h", [(2000, 1500), (1500, 2000), (1234, 567), (401, 3), (999, 1000)])
def test_derivatives_preserve_aspect_ratio(w, h):
    src = PS.normalize(make_jpeg(w, h), "jpg")
    for cap, fn in ((400, PS.make_thumb_big), (200, PS.make_thumb_small)):
        dw, dh = size_of(fn(src))
        assert max(dw, dh) == min(cap, max(w, h))
        if w >= h:
            assert abs(dh - h * dw / w) <= 1
        else:
            assert abs(dw - w * dh / h) <= 1


def test_landscape_scenario_sizes():
    src = PS.normalize(make_jpeg(2000, 1500), "jpg")
    assert size_of(PS.make_thumb_big(src)) == (400, 300)
    assert size_of(PS.make_thumb_small(src)) == (200, 150)


def test_derivative_of_corrupt_buffer_raises():
    with pytest.raises(FormatError):
        PS.make_derivative(b"\xff\xd8\xff garbage", 400)


def test_derivative_rejects_non_positive_cap():
    with pytest.raises(ValueError):
        PS.make_derivative(make_jpeg(), 0)
