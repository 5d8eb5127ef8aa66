"""
Cloudflare R2 storage gateway.

R2 speaks the S3 API, so this is a thin wrapper over a boto3 S3 client
pointed at the account's R2 endpoint. It is the only path the server uses to
read or write objects.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import CACHE_CONTROL, ServerConfig
from .errors import NotFoundError, StorageReadError, StorageWriteError
from .helpers import utc_now_iso

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NotFound", "NoSuchKey"}

# S3 metadata travels as HTTP headers and must be ASCII. Printable ASCII other
# than "%" is left readable.
_METADATA_SAFE_CHARS = " !\"#$&'()*+,/:;<=>?@[\\]^`{|}~"


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str


@dataclass(frozen=True)
class ObjectInfo:
    size: Optional[int] = None
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None
    metadata: Optional[Dict[str, str]] = None


def get_r2_client(config: ServerConfig):
    """Create an S3 client for the configured R2 account."""
    client = boto3.client(
        "s3",
        endpoint_url=config.r2_endpoint,
        aws_access_key_id=config.r2_access_key_id,
        aws_secret_access_key=config.r2_secret_access_key,
        region_name="auto",
    )
    logger.info(f"R2 client created for endpoint {config.r2_endpoint}")
    return client


def encode_metadata_value(value: str) -> str:
    """Percent-encode a metadata value as UTF-8 so boto3 will send it. Reverse with `unquote`."""
    return quote(value, safe=_METADATA_SAFE_CHARS)


class R2Storage:
    """Writes and inspects objects in a single R2 bucket."""

    def __init__(self, config: ServerConfig, client: Any = None):
        self.bucket_name = config.r2_bucket_name
        self.public_url = config.r2_public_url.rstrip("/")
        self.client = client if client is not None else get_r2_client(config)

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StoredObject:
        """
        Upload bytes under `key`. Returns once the object is stored.

        Raises:
            StorageWriteError: Wrapping any client or transport fault
        """
        object_metadata = {"upload-time": utc_now_iso()}
        for name, value in (metadata or {}).items():
            object_metadata[name] = encode_metadata_value(value)

        logger.info(f"Uploading {len(data)} bytes to R2 as '{key}' (type: {content_type})")
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                ContentLength=len(data),
                CacheControl=CACHE_CONTROL,
                Metadata=object_metadata,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"R2 upload failed: {e}") from e

        return StoredObject(key=key, url=self.public_url_for(key))

    def head(self, key: str) -> ObjectInfo:
        """
        Fetch object metadata without the body.

        Raises:
            NotFoundError: If no object exists under `key`
            StorageReadError: For any other client or transport fault
        """
        try:
            response = self.client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise NotFoundError("File not found") from e
            raise StorageReadError(f"Failed to get file info: {e}") from e
        except BotoCoreError as e:
            raise StorageReadError(f"Failed to get file info: {e}") from e

        return ObjectInfo(
            size=response.get("ContentLength"),
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
            metadata=response.get("Metadata"),
        )

    def public_url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"
