"""Argument and result models for the image2url tools."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _require_http_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if not (value.startswith("http://") or value.startswith("https://")):
        raise ValueError("image_url must start with http:// or https://")
    return value


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UploadImageArgs(ToolArgs):
    """Arguments of upload_image. Either a URL or inline data plus filename."""

    image_url: Optional[str] = Field(None, description="The URL of the image to upload (alternative to image_data)")
    image_data: Optional[str] = Field(
        None,
        description="Base64 encoded image data (alternative to image_url). Can be data URL format or raw base64.",
    )
    filename: Optional[str] = Field(
        None, description="Optional custom filename. Required when using image_data."
    )

    check_image_url = field_validator("image_url")(_require_http_url)

    @model_validator(mode="after")
    def check_input_shape(self):
        if not self.image_url and not (self.image_data and self.filename):
            raise ValueError("Either image_url or (image_data and filename) must be provided")
        return self


class UploadFileArgs(ToolArgs):
    """Arguments of upload_file."""

    image_data: str = Field(
        ...,
        min_length=1,
        description="Base64 encoded image data. Can be data URL format (data:image/png;base64,xxxx) or raw base64 string.",
    )
    filename: str = Field(
        ..., min_length=1, description="Original filename with extension (e.g., 'photo.jpg', 'image.png')"
    )
    mime_type: Optional[str] = Field(
        None, description="Content type for raw base64 data. Overrides the type implied by the filename."
    )


class ImageInfoArgs(ToolArgs):
    """Arguments of get_image_info."""

    image_url: str = Field(..., min_length=1, description="The URL of the uploaded image")

    check_image_url = field_validator("image_url")(_require_http_url)


class HealthCheckArgs(ToolArgs):
    """health_check takes no arguments."""


class UploadResult(BaseModel):
    success: bool = True
    url: str
    filename: str = Field(..., description="Storage key of the uploaded object")
    size: int
    type: str
    uploaded_at: str


class ImageInfoResult(BaseModel):
    url: str
    size: Optional[str] = None
    type: Optional[str] = None
    cache_control: Optional[str] = None
    last_modified: Optional[str] = None
