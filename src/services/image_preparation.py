"""Image preparation for upload and decoding of fetched results.

The edits endpoint only accepts square-ish RGBA PNGs under 4 MB, so photos
from the camera or library are converted, downsized and re-encoded here
before any request is built.
"""

import io
from typing import Union

from PIL import Image, UnidentifiedImageError

from services.image_errors import ImageDecodeError, ImageEncodeError
from utils.logging import get_logger

logger = get_logger(__name__)

ImageSource = Union[bytes, bytearray, Image.Image]

MAX_UPLOAD_BYTES = 4 * 1024 * 1024
MAX_DIMENSION = 1024
MIN_DIMENSION = 64


def _open(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise ImageEncodeError("Image data is empty")
        try:
            image = Image.open(io.BytesIO(source))
            image.load()
            return image
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ImageEncodeError(f"Unsupported image data: {e}") from e
    raise ImageEncodeError(f"Unsupported image source type: {type(source).__name__}")


def _fit(image: Image.Image, max_dimension: int) -> Image.Image:
    """Downsize so the longest side is at most ``max_dimension``."""
    width, height = image.size
    longest = max(width, height)
    if longest <= max_dimension:
        return image

    scale = max_dimension / longest
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def _to_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def encode_png_with_alpha(
    source: ImageSource,
    max_dimension: int = MAX_DIMENSION,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> bytes:
    """Encode an image as an RGBA PNG that fits the upload limits.

    Args:
        source: Encoded image bytes or a Pillow image
        max_dimension: Longest allowed side in pixels
        max_bytes: Largest allowed encoded size

    Returns:
        PNG bytes with an alpha channel

    Raises:
        ImageEncodeError: If the source cannot be decoded, converted or shrunk
            under ``max_bytes``
    """
    image = _open(source)

    try:
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        image = _fit(image, max_dimension)
        png = _to_png(image)

        # Halve the longest side until the PNG fits
        while len(png) > max_bytes:
            longest = max(image.size)
            if longest // 2 < MIN_DIMENSION:
                raise ImageEncodeError(
                    f"Image cannot be reduced below {max_bytes} bytes "
                    f"(smallest attempt was {len(png)} bytes)"
                )
            image = _fit(image, longest // 2)
            png = _to_png(image)
            logger.debug(
                "upload_reduced",
                width=image.size[0],
                height=image.size[1],
                bytes=len(png),
            )

    except ImageEncodeError:
        raise
    except (OSError, ValueError) as e:
        raise ImageEncodeError(f"Could not convert image to PNG: {e}") from e

    return png


def decode_image(data: bytes) -> tuple[str, int, int]:
    """Verify fetched bytes form an image.

    Returns:
        (format, width, height)

    Raises:
        ImageDecodeError: If the bytes are empty or not a readable image
    """
    if not data:
        raise ImageDecodeError()

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            return image.format or "PNG", image.size[0], image.size[1]
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
        SyntaxError,
    ) as e:
        raise ImageDecodeError(f"Could not create image from data: {e}") from e
