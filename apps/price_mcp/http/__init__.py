"""HTTP surface for the price MCP server."""

from .main import create_app

__all__ = ["create_app"]
