from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server

from apps.price_mcp.envelope import ToolOutcome, render
from apps.price_mcp.errors import ArgumentError, DuplicateToolError, UnknownToolError
from apps.price_mcp.observability import log_event
from apps.price_mcp.validation import ArgumentSchema

__all__ = ["ToolDefinition", "ToolHandler", "ToolRegistry"]

ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolOutcome]]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A named tool with its argument schema and async handler."""

    name: str
    description: str
    arguments: ArgumentSchema
    handler: ToolHandler

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.arguments.to_json_schema(),
        )


class ToolRegistry:
    """Per-session mapping of tool name to :class:`ToolDefinition`.

    A registry is never shared: each session builds its own, so nothing a tool
    does in one request is visible to another.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        description: str,
        arguments: ArgumentSchema | Mapping[str, Any],
        handler: ToolHandler,
    ) -> ToolDefinition:
        """Add a tool to this registry.

        Registering a name twice is a programming error and raises
        :class:`DuplicateToolError`; the first definition is kept.
        """

        if name in self._tools:
            raise DuplicateToolError(name)
        schema = arguments if isinstance(arguments, ArgumentSchema) else ArgumentSchema(arguments)
        definition = ToolDefinition(
            name=name, description=description, arguments=schema, handler=handler
        )
        self._tools[name] = definition
        return definition

    def get(self, name: str) -> ToolDefinition:
        if name not in self._tools:
            raise UnknownToolError(name, self.names())
        return self._tools[name]

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[types.Tool]:
        return [definition.to_mcp_tool() for definition in self._tools.values()]

    async def call(self, name: str, arguments: Mapping[str, Any] | None) -> types.CallToolResult:
        """Validate ``arguments`` and run the tool.

        Raises :class:`UnknownToolError` or :class:`ArgumentError` before the
        handler runs; those are protocol errors for the caller.
        """

        definition = self.get(name)
        validated = definition.arguments.validate(arguments)
        log_event(event="tool.invoke", status="accepted", tool=name, arguments=validated)
        outcome = await definition.handler(validated)
        return render(outcome)

    def bind(self, server: Server) -> None:
        """Install ``tools/list`` and ``tools/call`` handlers on ``server``."""

        async def _list_tools(_: types.ListToolsRequest) -> types.ServerResult:
            return types.ServerResult(types.ListToolsResult(tools=self.list_tools()))

        async def _call_tool(request: types.CallToolRequest) -> types.ServerResult:
            name = request.params.name
            try:
                result = await self.call(name, request.params.arguments)
            except (ArgumentError, UnknownToolError) as exc:
                log_event(
                    event="tool.rejected",
                    status=exc.canonical_code,
                    level=logging.WARNING,
                    tool=name,
                    reason=str(exc),
                )
                raise exc.to_mcp_error() from exc
            return types.ServerResult(result)

        server.request_handlers[types.ListToolsRequest] = _list_tools
        server.request_handlers[types.CallToolRequest] = _call_tool
