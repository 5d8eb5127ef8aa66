"""Exceptions raised by the image2url MCP server."""
from typing import Optional


class Image2URLError(Exception):
    """Base exception for the image2url server."""


class ConfigurationError(Image2URLError):
    """Required configuration is missing or invalid."""


class ValidationError(Image2URLError):
    """Input was rejected before any network or storage call."""


class UnsupportedTypeError(ValidationError):
    """Content type is not one of the allowed image types."""


class SizeLimitError(ValidationError):
    """Decoded payload is larger than the inline upload limit."""


class EmptyPayloadError(ValidationError):
    """Decoded payload has no bytes."""


class FormatError(ValidationError):
    """Malformed data URL or undecodable base64."""


class MissingContentTypeError(ValidationError):
    """No content type could be determined for the payload."""


class InvalidArgumentsError(ValidationError):
    """Tool arguments do not match any accepted combination."""


class FetchError(Image2URLError):
    """Retrieving a remote URL failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class StorageError(Image2URLError):
    """Object storage errors."""


class StorageWriteError(StorageError):
    """Writing an object to storage failed."""


class StorageReadError(StorageError):
    """Reading object metadata from storage failed."""


class NotFoundError(StorageError):
    """The requested object does not exist."""


class MethodNotFoundError(Image2URLError):
    """No tool is registered under the requested name."""
