"""FreeCoinPrice MCP server package."""

from apps.price_mcp.config import Settings
from apps.price_mcp.http import create_app
from apps.price_mcp.session import Session, create_session

__all__ = ["Settings", "Session", "create_app", "create_session"]
