"""Image preparation: validate, decode, resize, enhance and size-bound an upload."""

import logging
import os
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from vtryon.config import Settings
from vtryon.enhance import auto_white_balance, enhance_contrast, smooth_skin
from vtryon.errors import DecodeError, FileTooLargeError, UnsupportedFileTypeError
from vtryon.parts import InlineBinaryPart

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "JPEG"
OUTPUT_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class PreparedImage:
    data: bytes
    mime_type: str
    width: int
    height: int
    filename: str
    quality: Optional[float] = None
    enhanced: bool = False

    @property
    def size(self) -> int:
        return len(self.data)

    def to_part(self) -> InlineBinaryPart:
        return InlineBinaryPart(data=self.data, mime_type=self.mime_type)


def validate_upload(data: bytes, mime_type: Optional[str], max_bytes: int = 10 * 1024 * 1024) -> None:
    """Reject non-image MIME types and oversized uploads before any decoding."""
    if not mime_type or not mime_type.startswith("image/"):
        raise UnsupportedFileTypeError(f"Unsupported file type: {mime_type!r}")
    if len(data) > max_bytes:
        raise FileTooLargeError(
            f"File is {len(data)} bytes; the limit is {max_bytes} bytes"
        )


def _open_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Unable to decode image: {e}") from e
    return image


def _to_rgba(image: Image.Image) -> Image.Image:
    return ImageOps.exif_transpose(image).convert("RGBA")


def decode_image(data: bytes) -> Image.Image:
    """Decode bytes into an upright RGBA image or raise DecodeError."""
    return _to_rgba(_open_image(data))


def scaled_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Target size for a downscale; the input size when no scaling is needed."""
    if max(width, height) <= max_dimension:
        return width, height
    ratio = min(max_dimension / width, max_dimension / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def resize_image(image: Image.Image, max_dimension: int) -> Image.Image:
    size = scaled_size(image.width, image.height, max_dimension)
    if size == image.size:
        return image
    return image.resize(size, Image.Resampling.LANCZOS)


def encode_image(image: Image.Image, quality: float) -> bytes:
    buf = BytesIO()
    image.convert("RGB").save(buf, OUTPUT_FORMAT, quality=int(round(quality * 100)))
    return buf.getvalue()


def encode_with_ceiling(
    image: Image.Image,
    target_bytes: int,
    initial_quality: float = 0.8,
    min_quality: float = 0.4,
    step: float = 0.1,
) -> Tuple[bytes, float]:
    """Lower JPEG quality step by step until the output fits ``target_bytes``.

    Once the quality floor is reached the smallest encoding produced so far is
    returned, whether or not it fits.
    """
    # Integer percentages keep 0.8 - 4 * 0.1 from landing just under the floor.
    percent = int(round(initial_quality * 100))
    floor = int(round(min_quality * 100))
    step_percent = max(1, int(round(step * 100)))

    smallest: Optional[Tuple[bytes, float]] = None
    while percent >= floor:
        quality = percent / 100
        data = encode_image(image, quality)
        logger.debug("Encoded %dKB at quality %d%%", len(data) // 1024, percent)
        if smallest is None or len(data) < len(smallest[0]):
            smallest = (data, quality)
        if len(data) <= target_bytes:
            return data, quality
        percent -= step_percent

    if smallest is None:
        return encode_image(image, min_quality), min_quality
    return smallest


def _jpeg_filename(filename: str) -> str:
    stem, _ = os.path.splitext(os.path.basename(filename or ""))
    return f"{stem or 'image'}.jpg"


def _passthrough(data: bytes, source: Image.Image, filename: str) -> PreparedImage:
    return PreparedImage(
        data=data,
        mime_type=Image.MIME.get(source.format or "", "application/octet-stream"),
        width=source.width,
        height=source.height,
        filename=filename,
    )


def prepare_for_cleanup(
    data: bytes,
    filename: str = "image.jpg",
    settings: Optional[Settings] = None,
) -> PreparedImage:
    """Resize, white balance, stretch contrast, smooth skin and size-bound an image.

    Decode failures propagate as DecodeError. Any failure after decoding is
    logged and the original bytes are returned unchanged.
    """
    settings = settings or Settings()
    source = _open_image(data)
    try:
        image = _to_rgba(source)
        logger.info("Pre-processing %s (%dx%d)", filename, image.width, image.height)
        image = resize_image(image, settings.enhance_max_dimension)

        pixels = np.asarray(image, dtype=np.uint8)
        pixels = auto_white_balance(pixels)
        pixels = enhance_contrast(pixels, settings.contrast_factor)
        pixels = smooth_skin(pixels, settings.skin_strength)
        image = Image.fromarray(pixels, "RGBA")

        encoded, quality = encode_with_ceiling(
            image,
            settings.target_bytes,
            settings.initial_quality,
            settings.min_quality,
            settings.quality_step,
        )
    except Exception as e:
        logger.warning("Image pre-processing failed for %s, using original: %s", filename, e)
        return _passthrough(data, source, filename)

    logger.info(
        "Pre-processed %s to %dx%d, %dKB at quality %d%%",
        filename, image.width, image.height, len(encoded) // 1024, round(quality * 100),
    )
    return PreparedImage(
        data=encoded,
        mime_type=OUTPUT_MIME_TYPE,
        width=image.width,
        height=image.height,
        filename=_jpeg_filename(filename),
        quality=quality,
        enhanced=True,
    )


def compress_for_upload(
    data: bytes,
    filename: str = "image.jpg",
    settings: Optional[Settings] = None,
) -> PreparedImage:
    """Lightweight path used when enhancement is skipped: resize and compress only.

    Encodes once at the configured quality and, if that is over the byte
    target, once more at the fallback quality, which is accepted as is.
    """
    settings = settings or Settings()
    source = _open_image(data)
    try:
        image = resize_image(_to_rgba(source), settings.compress_max_dimension)
        quality = settings.compress_quality
        encoded = encode_image(image, quality)
        if len(encoded) > settings.compress_target_bytes:
            quality = settings.compress_fallback_quality
            encoded = encode_image(image, quality)
    except Exception as e:
        logger.warning("Compression failed for %s, using original: %s", filename, e)
        return _passthrough(data, source, filename)

    logger.info("Compressed %s to %dKB", filename, len(encoded) // 1024)
    return PreparedImage(
        data=encoded,
        mime_type=OUTPUT_MIME_TYPE,
        width=image.width,
        height=image.height,
        filename=_jpeg_filename(filename),
        quality=quality,
    )


def prepare_image(data: bytes, filename: str, settings: Settings) -> PreparedImage:
    """Route an upload through the enhancement or the compression path."""
    if settings.enhance_images:
        return prepare_for_cleanup(data, filename, settings)
    return compress_for_upload(data, filename, settings)
