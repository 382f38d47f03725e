"""Image utilities: data URL handling, reference normalization, thumbnails."""

import asyncio
import base64
import binascii
import io
import logging
from typing import Optional, Tuple
from urllib.parse import urljoin

import requests
from PIL import Image, UnidentifiedImageError

from src.core.exceptions import FetchError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"
DEFAULT_MIME_TYPE = "image/jpeg"


class ImageFormat:
    """Supported thumbnail formats."""
    PNG = "PNG"
    JPEG = "JPEG"
    WEBP = "WEBP"


def is_data_url(value: str) -> bool:
    """Check whether a string is an embedded ``data:`` URL."""
    return value.startswith(DATA_URL_PREFIX)


def is_remote_reference(value: str) -> bool:
    """Check whether an image input must be fetched before use.

    Absolute http(s) URLs and site-relative paths (``/models/a.png``) are
    remote; data URLs and bare base64 payloads are already embedded.
    """
    return value.startswith(("http://", "https://", "/"))


def split_data_url(value: str) -> Tuple[str, str]:
    """Split an image input into (mime type, base64 payload).

    Bare base64 payloads are returned with the default MIME type.

    Args:
        value: Data URL or bare base64 string

    Returns:
        Tuple of (mime_type, base64_data)
    """
    if not is_data_url(value):
        return DEFAULT_MIME_TYPE, value

    head, _, data = value.partition(",")
    mime = head[len(DATA_URL_PREFIX):].split(";")[0].strip().lower()
    return (mime or DEFAULT_MIME_TYPE), data


def strip_data_url_prefix(value: str) -> str:
    """Return the base64 payload of a data URL (bare payloads pass through)."""
    return split_data_url(value)[1]


def to_data_url(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URL."""
    return f"{DATA_URL_PREFIX}{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def data_url_to_bytes(value: str) -> bytes:
    """Decode the payload of a data URL.

    Raises:
        ValueError: If the payload is not valid base64
    """
    try:
        return base64.b64decode(strip_data_url_prefix(value), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


def detect_mime_type(data: bytes) -> Optional[str]:
    """Guess an image MIME type from its leading bytes."""
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return None


def _fetch_bytes(url: str, timeout: float) -> Tuple[bytes, Optional[str]]:
    try:
        response = requests.get(url, timeout=timeout, headers={"Accept": "image/*"})
    except requests.exceptions.RequestException as e:
        logger.error(f"Image fetch failed for {url}: {e}")
        raise FetchError(url, str(e)) from e

    if not response.ok:
        logger.error(f"Image fetch for {url} returned HTTP {response.status_code}")
        raise FetchError(url, f"HTTP {response.status_code}")

    content_type = (response.headers.get("Content-Type") or "").split(";")[0].strip().lower()
    return response.content, content_type or None


def _encode(url: str, data: bytes, content_type: Optional[str]) -> str:
    if not data:
        raise FetchError(url, "empty response body")

    mime_type = content_type if content_type and content_type.startswith("image/") else None
    mime_type = mime_type or detect_mime_type(data)
    if mime_type is None:
        raise FetchError(url, f"response is not an image (Content-Type: {content_type})")

    return to_data_url(data, mime_type)


async def normalize_image(
    image: str,
    base_url: Optional[str] = None,
    timeout: float = 30.0,
) -> str:
    """Return an image input in embedded (data URL) form.

    Embedded inputs are returned unchanged without any network access.
    Remote references are downloaded in a worker thread and encoded.

    Args:
        image: Data URL, bare base64, http(s) URL, or site-relative path
        base_url: Base used to resolve site-relative paths
        timeout: Per-request timeout in seconds

    Returns:
        The image as a data URL (or the unchanged embedded input)

    Raises:
        FetchError: If the download fails, returns non-2xx, or is not an image
    """
    if not is_remote_reference(image):
        return image

    url = image
    if image.startswith("/"):
        if not base_url:
            raise FetchError(image, "relative reference without a configured base URL")
        url = urljoin(base_url, image)

    logger.debug(f"Fetching reference image: {url}")
    data, content_type = await asyncio.to_thread(_fetch_bytes, url, timeout)
    return _encode(url, data, content_type)


def create_thumbnail(
    image: str,
    max_width: int = 300,
    max_height: int = 300,
    quality: int = 70,
    format: str = ImageFormat.JPEG,
) -> str:
    """Downscale an embedded image, preserving aspect ratio.

    Images already within bounds keep their size but are re-encoded.

    Args:
        image: Source image as a data URL or bare base64
        max_width: Maximum thumbnail width in pixels
        max_height: Maximum thumbnail height in pixels
        quality: Encoder quality (1-100) for lossy formats
        format: Output format (JPEG, PNG or WEBP)

    Returns:
        Thumbnail as a data URL

    Raises:
        ValueError: If the input cannot be decoded as an image
    """
    raw = data_url_to_bytes(image)
    try:
        pil_image = Image.open(io.BytesIO(raw))
        pil_image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Cannot decode image for thumbnail: {e}") from e

    ratio = min(max_width / pil_image.width, max_height / pil_image.height)
    if ratio < 1:
        new_size = (max(1, int(pil_image.width * ratio)), max(1, int(pil_image.height * ratio)))
        pil_image = pil_image.resize(new_size, Image.LANCZOS)

    # JPEG has no alpha channel
    if format == ImageFormat.JPEG and pil_image.mode not in ("RGB", "L"):
        pil_image = pil_image.convert("RGB")

    output = io.BytesIO()
    if format == ImageFormat.PNG:
        pil_image.save(output, format="PNG")
    else:
        pil_image.save(output, format=format, quality=quality)

    return to_data_url(output.getvalue(), f"image/{format.lower()}")


def get_image_info(image: str) -> dict:
    """Get basic information about an embedded image.

    Args:
        image: Data URL or bare base64

    Returns:
        Dictionary with width, height, format, mode and byte size
    """
    raw = data_url_to_bytes(image)
    pil_image = Image.open(io.BytesIO(raw))

    return {
        "width": pil_image.width,
        "height": pil_image.height,
        "format": pil_image.format,
        "mode": pil_image.mode,
        "size_bytes": len(raw),
    }
