"""Image compression applied to every capture before it is uploaded.

Decoding and re-encoding run in a worker thread so the event loop keeps
serving other work while a large photo is being shrunk.
"""

import asyncio
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from librophoto.errors import CompressionError
from librophoto.logging import get_logger
from librophoto.models import CompressedImage, ImageInput

logger = get_logger(__name__)

JPEG_CONTENT_TYPE = "image/jpeg"
JPEG_EXTENSION = "jpg"

# Quality drop per re-encode, then dimension scale per shrink pass
_QUALITY_STEP = 10
_SHRINK_FACTOR = 0.8
_MIN_SIDE_PX = 16


@dataclass(frozen=True)
class CompressionProfile:
    """Bounds every compressed capture must satisfy.

    Attributes:
        max_bytes: Ceiling on the encoded size
        max_dimension_px: Ceiling on the longest side
        quality: JPEG quality of the first encode attempt
        min_quality: Lowest quality tried before dimensions are reduced
    """

    max_bytes: int
    max_dimension_px: int
    quality: int = 80
    min_quality: int = 40


def compress_to_jpeg(img: Image.Image, quality: int = 80) -> bytes:
    """Compress PIL Image to JPEG bytes.

    Args:
        img: PIL Image to compress
        quality: JPEG quality (1-100), default 80 for good balance

    Returns:
        JPEG image as bytes
    """
    buffer = BytesIO()
    img.save(
        buffer,
        format="JPEG",
        quality=quality,
        optimize=True,
        progressive=True,
    )
    return buffer.getvalue()


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and drop modes JPEG cannot hold."""
    if img.mode in ("RGB", "L"):
        return img
    if img.mode == "P":
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.getchannel("A"))
        return background
    return img.convert("RGB")


def _decode(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
        # Phone cameras store rotation in EXIF; bake it in before resizing
        return ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise CompressionError(f"Unreadable image: {e}") from e


def compress_bytes(data: bytes, profile: CompressionProfile) -> CompressedImage:
    """Re-encode image bytes as a JPEG within the profile's bounds.

    The longest side is first scaled down to max_dimension_px (aspect ratio
    preserved). The image is then encoded at decreasing quality until it
    fits max_bytes; if even min_quality is too large, the image is shrunk
    further and encoding resumes at min_quality.

    Raises:
        CompressionError: If the data cannot be decoded or cannot be
            brought under max_bytes.
    """
    img = _to_rgb(_decode(data))
    original_size = img.size
    img.thumbnail(
        (profile.max_dimension_px, profile.max_dimension_px),
        Image.Resampling.LANCZOS,
    )

    quality = profile.quality
    while True:
        encoded = compress_to_jpeg(img, quality)
        if len(encoded) <= profile.max_bytes:
            break
        if quality > profile.min_quality:
            quality = max(profile.min_quality, quality - _QUALITY_STEP)
            continue

        width, height = img.size
        if max(width, height) <= _MIN_SIDE_PX:
            raise CompressionError(
                f"Cannot compress image below {profile.max_bytes} bytes"
            )
        img = img.resize(
            (max(1, int(width * _SHRINK_FACTOR)), max(1, int(height * _SHRINK_FACTOR))),
            Image.Resampling.LANCZOS,
        )

    logger.debug(
        "image_compressed",
        original_size=original_size,
        final_size=img.size,
        quality=quality,
        input_bytes=len(data),
        output_bytes=len(encoded),
    )

    return CompressedImage(
        data=encoded,
        content_type=JPEG_CONTENT_TYPE,
        extension=JPEG_EXTENSION,
        width=img.width,
        height=img.height,
    )


async def compress_image(image: ImageInput, profile: CompressionProfile) -> CompressedImage:
    """Compress an input image without blocking the event loop.

    Args:
        image: Image bytes plus MIME hint
        profile: Size and dimension bounds

    Returns:
        CompressedImage within the profile's bounds

    Raises:
        CompressionError: If the image is unreadable or cannot be compressed
    """
    if not image.data:
        raise CompressionError("Empty image")
    return await asyncio.to_thread(compress_bytes, image.data, profile)
