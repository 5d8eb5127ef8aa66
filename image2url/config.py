"""
Configuration loader for the image2url MCP server.
Loads settings from a .env file and the process environment into a single
validated ServerConfig value, built once at startup.
"""
import os
from typing import Literal, Mapping, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError

SERVER_NAME = "image2url"
SERVER_VERSION = "1.0.0"
USER_AGENT = "Image2URL-MCP-Server/1.0"

# Inline uploads only; URL ingestion is not capped
MAX_INLINE_UPLOAD_BYTES = 10 * 1024 * 1024

CACHE_CONTROL = "public, max-age=31536000"

DEFAULT_HTTP_TIMEOUT = (15, 60)  # (connect, read) timeouts in seconds

_HTTP_URL = TypeAdapter(HttpUrl)


class ServerConfig(BaseModel):
    """Process-wide settings. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    r2_account_id: str = Field(..., alias="R2_ACCOUNT_ID", min_length=1)
    r2_access_key_id: str = Field(..., alias="R2_ACCESS_KEY_ID", min_length=1)
    r2_secret_access_key: str = Field(..., alias="R2_SECRET_ACCESS_KEY", min_length=1, repr=False)
    r2_bucket_name: str = Field(..., alias="R2_BUCKET_NAME", min_length=1)
    r2_public_url: str = Field(..., alias="R2_PUBLIC_URL", min_length=1)

    transport: Literal["stdio", "http", "streamable-http", "sse"] = Field("stdio", alias="MCP_TRANSPORT")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3001, alias="PORT")
    domain: str = Field("localhost", alias="MCP_DOMAIN")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field("INFO", alias="LOG_LEVEL")

    http_connect_timeout: float = Field(DEFAULT_HTTP_TIMEOUT[0], alias="HTTP_CONNECT_TIMEOUT", gt=0)
    http_read_timeout: float = Field(DEFAULT_HTTP_TIMEOUT[1], alias="HTTP_READ_TIMEOUT", gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("r2_public_url")
    @classmethod
    def _check_public_url(cls, value: str) -> str:
        try:
            _HTTP_URL.validate_python(value)
        except PydanticValidationError:
            raise ValueError("must be a well-formed http(s) URL")
        return value.rstrip("/")

    @property
    def r2_endpoint(self) -> str:
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    @property
    def http_timeout(self) -> Tuple[float, float]:
        """(connect, read) timeouts in seconds, as accepted by requests."""
        return (self.http_connect_timeout, self.http_read_timeout)


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build the server configuration.

    Args:
        environ: Mapping to read settings from. Defaults to os.environ after
            loading a .env file from the working directory.

    Returns:
        ServerConfig: The validated configuration.

    Raises:
        ConfigurationError: If any required value is missing or invalid.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    aliases = [field.alias for field in ServerConfig.model_fields.values()]
    values = {name: environ[name] for name in aliases if environ.get(name) not in (None, "")}

    try:
        return ServerConfig.model_validate(values)
    except PydanticValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            problems.append(f"{field}: {error['msg']}")
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems)) from e
