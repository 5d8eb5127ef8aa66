"""
Transport-independent implementations of the image2url tools.

ImageTools holds the configuration, the storage gateway and an HTTP session,
all built once at startup. Every MCP transport registers the same four tools
and routes them through ImageTools.dispatch.
"""
import logging
import time
from datetime import timezone
from email.utils import format_datetime
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests
from pydantic import ValidationError as PydanticValidationError

from .config import SERVER_VERSION, ServerConfig
from .errors import FetchError, InvalidArgumentsError, MethodNotFoundError
from .helpers import build_image_key, content_type_for, utc_now_iso
from .payload import ImagePayload, fetch_image, parse_image_data
from .schemas import (
    HealthCheckArgs,
    ImageInfoArgs,
    ImageInfoResult,
    UploadFileArgs,
    UploadImageArgs,
    UploadResult,
)
from .storage import R2Storage

logger = logging.getLogger(__name__)

TOOL_SCHEMAS = {
    "upload_image": UploadImageArgs,
    "upload_file": UploadFileArgs,
    "get_image_info": ImageInfoArgs,
    "health_check": HealthCheckArgs,
}

_STARTED_AT = time.monotonic()


class ImageTools:
    """Handlers for upload_image, upload_file, get_image_info and health_check."""

    def __init__(
        self,
        config: ServerConfig,
        storage: R2Storage,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.storage = storage
        self.session = session or requests.Session()

    def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Validate arguments for the named tool and run it.

        Raises:
            MethodNotFoundError: If `name` is not a known tool
            InvalidArgumentsError: If the arguments fail the tool's schema
        """
        schema = TOOL_SCHEMAS.get(name)
        if schema is None:
            raise MethodNotFoundError(f"Unknown tool: {name}")

        try:
            args = schema.model_validate(dict(arguments or {}))
        except PydanticValidationError as e:
            raise InvalidArgumentsError(_describe_validation_error(e)) from e

        handler = getattr(self, name)
        return handler(**args.model_dump())

    def upload_image(
        self,
        image_url: Optional[str] = None,
        image_data: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload from a URL, or from inline data named by `filename`."""
        if image_url:
            logger.info(f"Tool 'upload_image' called for URL: {image_url}")
            payload = fetch_image(image_url, session=self.session, timeout=self.config.http_timeout)
            key = build_image_key(payload.content_type, filename)
            metadata = {
                "original-url": image_url,
                "custom-filename": filename or "",
                "upload-source": "url",
            }
            return self._store(payload, key, metadata)

        if image_data and filename:
            logger.info(f"Tool 'upload_image' called with inline data for '{filename}'")
            payload = parse_image_data(image_data, content_type_for(filename))
            return self._store_named(payload, filename, "base64")

        raise InvalidArgumentsError("Either image_url or (image_data and filename) must be provided")

    def upload_file(
        self,
        image_data: str,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload inline data under a caller-supplied filename."""
        logger.info(f"Tool 'upload_file' called for '{filename}'")
        payload = parse_image_data(image_data, mime_type or content_type_for(filename))
        return self._store_named(payload, filename, "direct_file")

    def get_image_info(self, image_url: str) -> Dict[str, Any]:
        """
        Describe an uploaded image.

        Storage metadata is read first, so a missing object fails with
        NotFoundError. Headers from a live HEAD of the public URL take
        precedence over storage values when the HEAD succeeds.
        """
        key = urlparse(image_url).path[1:]
        logger.info(f"Tool 'get_image_info' called for key: {key}")

        info = self.storage.head(key)

        try:
            response = self.session.head(image_url, timeout=self.config.http_timeout, allow_redirects=True)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"HEAD request failed: {e}") from e
        live = response.headers if response.ok else {}

        stored_last_modified = None
        if info.last_modified is not None:
            stored_last_modified = format_datetime(info.last_modified.astimezone(timezone.utc), usegmt=True)

        result = ImageInfoResult(
            url=image_url,
            size=live.get("Content-Length") or (str(info.size) if info.size is not None else None),
            type=live.get("Content-Type") or info.content_type,
            cache_control=live.get("Cache-Control"),
            last_modified=live.get("Last-Modified") or stored_last_modified,
        )
        return result.model_dump(exclude_none=True)

    def health_check(self) -> Dict[str, Any]:
        """Probe storage with a real write. Reports failures instead of raising."""
        probe_key = f"temp/health-check-{int(time.time() * 1000)}.txt"
        try:
            self.storage.put(probe_key, b"health check", "text/plain", {"health-check": "true"})
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "timestamp": utc_now_iso(),
                "version": SERVER_VERSION,
                "error": str(e),
                "services": {
                    "mcp_server": "online",
                    "r2_storage": "disconnected",
                    "upload_capability": "failed",
                },
            }

        return {
            "status": "healthy",
            "timestamp": utc_now_iso(),
            "version": SERVER_VERSION,
            "services": {
                "mcp_server": "online",
                "r2_storage": "connected",
                "upload_capability": "functional",
            },
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
            "memory_usage": _memory_usage(),
            "domain": self.config.domain,
        }

    # --- Internal ---

    def _store_named(self, payload: ImagePayload, filename: str, source: str) -> Dict[str, Any]:
        key = build_image_key(payload.content_type, filename)
        base_name = key[len("images/"):].rsplit(".", 1)[0]
        metadata = {
            "original-filename": filename,
            "custom-filename": base_name,
            "upload-source": source,
        }
        return self._store(payload, key, metadata)

    def _store(self, payload: ImagePayload, key: str, metadata: Dict[str, str]) -> Dict[str, Any]:
        stored = self.storage.put(key, payload.data, payload.content_type, metadata)
        logger.info(f"Upload successful: {stored.key} ({payload.size} bytes)")
        return UploadResult(
            url=stored.url,
            filename=stored.key,
            size=payload.size,
            type=payload.content_type,
            uploaded_at=utc_now_iso(),
        ).model_dump()


def _describe_validation_error(error: PydanticValidationError) -> str:
    messages = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"])
        msg = item["msg"].removeprefix("Value error, ")
        messages.append(f"{field}: {msg}" if field else msg)
    return "; ".join(messages)


def _memory_usage() -> Optional[Dict[str, int]]:
    try:
        import resource
    except ImportError:  # not available on Windows
        return None
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {"max_rss_kb": usage.ru_maxrss}
