"""
Common helper functions for the image2url server: content type and extension
mapping, storage-safe filename generation and size formatting.
"""
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

# --- Shared Mappings ---

# Content type to file extension mapping
CONTENT_TYPE_MAPPING = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",  # common but non-standard
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "image/x-icon": "ico",
}

# File extension to content type mapping, kept separate from the one above:
# the aliases do not mirror each other.
EXT_TO_CONTENT_TYPE = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "ico": "image/x-icon",
}

ALLOWED_IMAGE_TYPES = frozenset(CONTENT_TYPE_MAPPING)

DEFAULT_EXTENSION = "jpg"
DEFAULT_CONTENT_TYPE = "image/jpeg"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")
_TRAILING_EXTENSION = re.compile(r"\.[^/.]+$")

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def extension_for(content_type: Optional[str]) -> str:
    """
    Infer file extension (without the dot) from a content type.
    Defaults to 'jpg' if the type is unknown or missing, so a returned
    extension says nothing about whether the type was allowed.
    """
    return CONTENT_TYPE_MAPPING.get(content_type or "", DEFAULT_EXTENSION)


def content_type_for(filename: str) -> str:
    """
    Infer content type from the extension after the last '.' of a filename.
    Defaults to 'image/jpeg'.
    """
    ext = filename.rsplit(".", 1)[-1].lower()
    return EXT_TO_CONTENT_TYPE.get(ext, DEFAULT_CONTENT_TYPE)


def is_allowed_image_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return content_type in ALLOWED_IMAGE_TYPES


def strip_extension(filename: str) -> str:
    """'photo.final.png' -> 'photo.final'"""
    return _TRAILING_EXTENSION.sub("", filename)


def generate_filename(hint: Optional[str] = None) -> str:
    """
    Build a collision-resistant base name: <unix millis>-<uuid4>-<hint>.

    Args:
        hint: Human-readable name to embed. Characters outside
            [A-Za-z0-9-_] become '-' and the result is lowercased. When
            omitted, the first 8 characters of the UUID are used instead.

    Returns:
        str: Base name without extension.
    """
    timestamp = int(time.time() * 1000)
    unique_id = str(uuid.uuid4())
    if hint:
        clean_hint = _UNSAFE_FILENAME_CHARS.sub("-", hint).lower()
    else:
        clean_hint = unique_id[:8]
    return f"{timestamp}-{unique_id}-{clean_hint}"


def build_image_key(content_type: str, hint: Optional[str] = None) -> str:
    """Storage key for an uploaded image; extension follows the content type."""
    base = generate_filename(strip_extension(hint) if hint else None)
    return f"images/{base}.{extension_for(content_type)}"


def format_file_size(num_bytes: int) -> str:
    """
    Human-readable size, e.g. 1536 -> '1.5 KB', 10485760 -> '10 MB'.
    """
    if num_bytes <= 0:
        return "0 Bytes"

    i = 0
    value = float(num_bytes)
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[i]}"


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. '2024-05-01T12:00:00.123Z'."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
