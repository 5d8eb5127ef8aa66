"""MCP server that stores images in Cloudflare R2 and returns permanent URLs."""

from .config import SERVER_VERSION as __version__

__all__ = ["__version__"]
