"""Content envelopes returned by tool calls.

Upstream failures are never signalled structurally: a failed fetch still
produces a normal ``CallToolResult`` whose single text block carries an
``{"error": ...}`` JSON object. Protocol errors (bad arguments, unknown tool)
are raised elsewhere and never pass through this module.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from mcp.types import CallToolResult, TextContent

from .errors import UpstreamError
from .observability import log_event

__all__ = ["Failed", "Ok", "ToolOutcome", "failure", "render", "success", "text"]


@dataclass(frozen=True, slots=True)
class Ok:
    payload: Any
    raw: bool = False


@dataclass(frozen=True, slots=True)
class Failed:
    context: str
    error: BaseException | None = None
    tool: str | None = None


ToolOutcome = Ok | Failed


def text(value: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=value)], isError=False)


def success(payload: Any) -> CallToolResult:
    """Wrap ``payload`` verbatim as a JSON text block."""

    return text(json.dumps(payload))


def failure(context: str, error: BaseException | None = None, *, tool: str | None = None) -> CallToolResult:
    """Wrap a recovered failure; ``error`` detail goes to the log only."""

    status_code = error.status_code if isinstance(error, UpstreamError) else None
    log_event(
        event="tool.upstream_failure",
        status="recovered",
        level=logging.ERROR,
        tool=tool,
        context=context,
        status_code=status_code,
        error=f"{type(error).__name__}: {error}" if error is not None else None,
    )
    return text(json.dumps({"error": context}))


def render(outcome: ToolOutcome) -> CallToolResult:
    """Single conversion point from a handler outcome to the wire envelope."""

    if isinstance(outcome, Failed):
        return failure(outcome.context, outcome.error, tool=outcome.tool)
    if outcome.raw:
        return text(str(outcome.payload))
    return success(outcome.payload)
