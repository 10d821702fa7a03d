from __future__ import annotations

from io import BytesIO
from pathlib import PurePath

import pillow_heif
from PIL import Image, UnidentifiedImageError

from src.domain.errors import FormatError

# Lets Image.open read HEIC/HEIF too, which the metadata extractor relies on.
pillow_heif.register_heif_opener()


class ProcessingService:
    """Pillow-based format handling for uploaded photos.

    All operations take and return encoded bytes. Nothing here touches the
    filesystem; persisting the results is the storage adapter's job.
    """

    ALLOWED_FORMATS = frozenset({"jpg", "jpeg", "png", "gif", "heic", "heif"})
    HEIC_FORMATS = frozenset({"heic", "heif"})

    CANONICAL_EXT = "jpg"
    CANONICAL_MIME = "image/jpeg"
    NORMALIZED_QUALITY = 90

    THUMB_BIG_SIZE = 400
    THUMB_SMALL_SIZE = 200
    THUMB_QUALITY = 80

    # lowercase extension token from the original filename
    @classmethod
    def detect_format(cls, filename: str | None, content_type: str | None = None) -> str:
        suffix = PurePath(filename or "").suffix.lower().lstrip(".")
        if not suffix and content_type:
            # fall back to the declared MIME subtype, e.g. image/heic -> heic
            suffix = content_type.split("/")[-1].lower()
        if suffix not in cls.ALLOWED_FORMATS:
            allowed = ", ".join(sorted(cls.ALLOWED_FORMATS))
            raise ValueError(f"Unsupported file type '{suffix or filename}'. Allowed: {allowed}")
        return suffix

    @classmethod
    def is_heic(cls, fmt: str) -> bool:
        return fmt.lower() in cls.HEIC_FORMATS

    @staticmethod
    def _to_rgb(img: Image.Image) -> Image.Image:
        if img.mode == "RGB":
            return img
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            # flatten transparency on white, JPEG has no alpha channel
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return img.convert("RGB")

    @staticmethod
    def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
        buf = BytesIO()
        img.save(buf, format="JPEG", quality=quality)
        return buf.getvalue()

    @staticmethod
    def _decode_heic(data: bytes) -> Image.Image:
        try:
            heif_file = pillow_heif.open_heif(BytesIO(data), convert_hdr_to_8bit=True)
            return heif_file.to_pillow()
        except Exception as exc:
            raise FormatError(f"HEIC conversion failed: {exc}") from exc

    @staticmethod
    def _decode(data: bytes) -> Image.Image:
        if not data:
            raise FormatError("Empty image buffer")
        try:
            img = Image.open(BytesIO(data))
            img.load()
            return img
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise FormatError(f"Cannot decode image: {exc}") from exc

    # Format Normalizer: re-encode to the canonical format, dimensions untouched
    @classmethod
    def normalize(cls, data: bytes, fmt: str) -> bytes:
        img = cls._decode_heic(data) if cls.is_heic(fmt) else cls._decode(data)
        try:
            return cls._encode_jpeg(cls._to_rgb(img), cls.NORMALIZED_QUALITY)
        except (OSError, ValueError) as exc:
            raise FormatError(f"Cannot encode normalized image: {exc}") from exc

    # Derivative Generator: fit inside max_side x max_side, never enlarge
    @classmethod
    def make_derivative(cls, data: bytes, max_side: int, quality: int | None = None) -> bytes:
        if max_side <= 0:
            raise ValueError("max_side must be positive")
        img = cls._to_rgb(cls._decode(data))
        # thumbnail() keeps the aspect ratio and is a no-op for smaller sources
        img.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
        try:
            return cls._encode_jpeg(img, quality or cls.THUMB_QUALITY)
        except (OSError, ValueError) as exc:
            raise FormatError(f"Cannot encode derivative: {exc}") from exc

    @classmethod
    def make_thumb_big(cls, data: bytes) -> bytes:
        return cls.make_derivative(data, cls.THUMB_BIG_SIZE)

    @classmethod
    def make_thumb_small(cls, data: bytes) -> bytes:
        return cls.make_derivative(data, cls.THUMB_SMALL_SIZE)

    @staticmethod
    def image_size(data: bytes) -> tuple[int, int]:
        with Image.open(BytesIO(data)) as img:
            return img.size
