"""
Normalizes the three accepted image inputs (remote URL, data URL, raw base64)
into an ImagePayload, rejecting anything that is not an allowed image.
"""
import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from .config import DEFAULT_HTTP_TIMEOUT, MAX_INLINE_UPLOAD_BYTES, USER_AGENT
from .errors import (
    EmptyPayloadError,
    FetchError,
    FormatError,
    MissingContentTypeError,
    SizeLimitError,
    UnsupportedTypeError,
)
from .helpers import DEFAULT_CONTENT_TYPE, format_file_size, is_allowed_image_type

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    content_type: str
    size: int

    def __post_init__(self):
        if self.size != len(self.data):
            raise ValueError(f"size {self.size} does not match payload length {len(self.data)}")


def fetch_image(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: Tuple[float, float] = DEFAULT_HTTP_TIMEOUT,
) -> ImagePayload:
    """
    Download an image from a URL.

    No size ceiling is applied here, unlike inline uploads.

    Args:
        url: Image URL to download
        session: Optional requests session (defaults to the requests module)
        timeout: (connect, read) timeouts in seconds

    Returns:
        ImagePayload: Body, content type and size

    Raises:
        FetchError: On a network fault or non-2xx response
        UnsupportedTypeError: If the response is not an allowed image type
    """
    http = session or requests
    logger.info(f"Downloading image from: {url}")
    try:
        response = http.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Failed to fetch image from URL: {e}") from e

    if not response.ok:
        raise FetchError(
            f"HTTP {response.status_code}: {response.reason}",
            status_code=response.status_code,
            reason=response.reason,
        )

    content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
    if not is_allowed_image_type(content_type):
        raise UnsupportedTypeError(f"Unsupported content type: {content_type}")

    data = response.content
    logger.info(f"Downloaded {len(data)} bytes (type: {content_type})")
    return ImagePayload(data=data, content_type=content_type, size=len(data))


def parse_image_data(image_data: str, fallback_content_type: Optional[str] = None) -> ImagePayload:
    """
    Decode a data URL or raw base64 string.

    Args:
        image_data: 'data:<mime>;base64,<payload>' or a bare base64 string
        fallback_content_type: Content type to use for bare base64, usually
            derived from the caller's filename

    Returns:
        ImagePayload: Decoded bytes, content type and size

    Raises:
        FormatError: Malformed data URL or invalid base64
        MissingContentTypeError: Bare base64 with no fallback content type
        EmptyPayloadError: Nothing left after decoding
        SizeLimitError: Decoded payload larger than 10 MB
        UnsupportedTypeError: Content type is not an allowed image type
    """
    if image_data.startswith("data:"):
        match = _DATA_URL.match(image_data)
        if not match:
            raise FormatError("Invalid data URL format. Expected data:<mime>;base64,<payload>")
        content_type, encoded = match.group(1), match.group(2)
    else:
        content_type, encoded = fallback_content_type, image_data

    if not content_type:
        raise MissingContentTypeError("Could not determine content type for image data")

    data = _decode_base64(encoded)
    size = len(data)

    if size == 0:
        raise EmptyPayloadError("Image data is empty")

    if size > MAX_INLINE_UPLOAD_BYTES:
        raise SizeLimitError(
            f"Image size {format_file_size(size)} exceeds the maximum allowed size of "
            f"{format_file_size(MAX_INLINE_UPLOAD_BYTES)}"
        )

    if not is_allowed_image_type(content_type):
        raise UnsupportedTypeError(f"Unsupported content type: {content_type}")

    return ImagePayload(data=data, content_type=content_type, size=size)


def _decode_base64(encoded: str) -> bytes:
    compact = "".join(encoded.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Invalid base64 image data: {e}") from e
