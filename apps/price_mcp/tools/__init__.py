"""Tool registry and the price tools registered into it."""

from .coingecko import build_registry
from .registry import ToolDefinition, ToolRegistry

__all__ = ["ToolDefinition", "ToolRegistry", "build_registry"]
