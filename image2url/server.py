"""
Image2URL MCP Server
Uploads images from a URL or base64 data to Cloudflare R2 and returns a
permanent public URL.
"""
import asyncio
import json
import logging
from typing import Annotated, Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from .config import SERVER_NAME, SERVER_VERSION, ServerConfig
from .errors import Image2URLError
from .helpers import utc_now_iso
from .storage import R2Storage
from .tools import ImageTools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Stores images permanently. Use upload_image with a public image URL, or with "
    "base64/data-URL image_data plus a filename. upload_file takes base64 data and a "
    "filename with extension. get_image_info describes an uploaded image by its URL."
)


def create_server(tools: ImageTools) -> FastMCP:
    """Register the image2url tools and HTTP routes on a new FastMCP server."""
    mcp = FastMCP(name=SERVER_NAME, instructions=INSTRUCTIONS)

    async def call_tool(name: str, arguments: Dict[str, Any]) -> str:
        logger.info("=" * 60)
        logger.info(f"Tool '{name}' called")
        logger.info("=" * 60)
        try:
            result = await asyncio.to_thread(tools.dispatch, name, arguments)
        except Image2URLError as e:
            logger.error(f"Tool '{name}' failed: {e}")
            raise ToolError(str(e)) from e
        return json.dumps(result, indent=2)

    @mcp.tool(
        name="upload_image",
        description="Upload an image from URL or base64 data and convert it to a permanent URL",
    )
    async def upload_image(
        image_url: Annotated[
            Optional[str], Field(description="The URL of the image to upload (alternative to image_data)")
        ] = None,
        image_data: Annotated[
            Optional[str],
            Field(description="Base64 encoded image data (alternative to image_url). Can be data URL format or raw base64."),
        ] = None,
        filename: Annotated[
            Optional[str], Field(description="Optional custom filename. Required when using image_data.")
        ] = None,
    ) -> str:
        return await call_tool(
            "upload_image",
            {"image_url": image_url, "image_data": image_data, "filename": filename},
        )

    @mcp.tool(
        name="upload_file",
        description="Upload a file directly using base64 data and convert it to a permanent URL",
    )
    async def upload_file(
        image_data: Annotated[
            str,
            Field(description="Base64 encoded image data. Can be data URL format (data:image/png;base64,xxxx) or raw base64 string."),
        ],
        filename: Annotated[
            str, Field(description="Original filename with extension (e.g., 'photo.jpg', 'image.png')")
        ],
        mime_type: Annotated[
            Optional[str], Field(description="Content type of raw base64 data, if the filename does not imply it")
        ] = None,
    ) -> str:
        return await call_tool(
            "upload_file",
            {"image_data": image_data, "filename": filename, "mime_type": mime_type},
        )

    @mcp.tool(
        name="get_image_info",
        description="Get information about an uploaded image",
        annotations={"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True},
    )
    async def get_image_info(
        image_url: Annotated[str, Field(description="The URL of the uploaded image")],
    ) -> str:
        return await call_tool("get_image_info", {"image_url": image_url})

    @mcp.tool(
        name="health_check",
        description="Check MCP server health and configuration",
    )
    async def health_check() -> str:
        return await call_tool("health_check", {})

    @mcp.custom_route("/health", methods=["GET"])
    async def http_health(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "healthy",
            "timestamp": utc_now_iso(),
            "version": SERVER_VERSION,
            "services": {
                "http_server": "online",
                "mcp_server": "ready",
            },
        })

    @mcp.custom_route("/", methods=["GET"])
    async def index(request: Request) -> JSONResponse:
        return JSONResponse({
            "name": "Image2URL MCP Server",
            "version": SERVER_VERSION,
            "description": "Upload images and get permanent URLs",
            "endpoints": {
                "health": "/health",
                "mcp": "/mcp",
            },
        })

    return mcp


def build_server(config: ServerConfig, storage_client: Any = None) -> FastMCP:
    """Wire configuration, storage and tool handlers into a ready server."""
    storage = R2Storage(config, client=storage_client)
    return create_server(ImageTools(config, storage))


def run_server(config: ServerConfig) -> None:
    mcp = build_server(config)

    logger.info("=" * 60)
    logger.info("Starting Image2URL MCP Server")
    logger.info(f"Transport: {config.transport}")
    logger.info(f"Bucket: {config.r2_bucket_name}")
    logger.info(f"Public URL: {config.r2_public_url}")
    logger.info(f"Domain: {config.domain}")
    logger.info("=" * 60)

    if config.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport=config.transport, host=config.host, port=config.port)
