from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import ErrorData

__all__ = [
    "ArgumentError",
    "CanonicalError",
    "DuplicateToolError",
    "PriceMcpError",
    "SessionStateError",
    "UnknownToolError",
    "UpstreamError",
]


@dataclass(frozen=True)
class _CanonicalSpec:
    code: str
    description: str
    retryable: bool
    http_status: int
    jsonrpc_code: int
    message: str


class CanonicalError:
    """Canonical codes carried by protocol-level tool errors."""

    _SPECS: tuple[_CanonicalSpec, ...] = (
        _CanonicalSpec(
            "INVALID_INPUT",
            "Tool arguments failed validation",
            False,
            400,
            -32602,
            "Invalid tool arguments",
        ),
        _CanonicalSpec(
            "NOT_FOUND",
            "Requested tool is not registered in this session",
            False,
            404,
            -32602,
            "Unknown tool",
        ),
        _CanonicalSpec(
            "INTERNAL_ERROR",
            "Unexpected server-side failure",
            True,
            500,
            -32603,
            "Internal server error",
        ),
    )

    _BY_CODE: dict[str, _CanonicalSpec] = {spec.code: spec for spec in _SPECS}

    @classmethod
    def _lookup(cls, code: str) -> _CanonicalSpec:
        if code not in cls._BY_CODE:
            raise KeyError(f"{code} is not a canonical error code")
        return cls._BY_CODE[code]

    @classmethod
    def to_error_data(
        cls,
        code: str,
        message: str | None = None,
        *,
        details: Mapping[str, Any] | None = None,
    ) -> ErrorData:
        """Build a JSON-RPC error payload for the protocol runtime."""

        spec = cls._lookup(code)
        data: dict[str, Any] = {
            "canonical": spec.code,
            "httpStatus": spec.http_status,
            "retryable": spec.retryable,
        }
        if details:
            data["details"] = dict(details)
        return ErrorData(code=spec.jsonrpc_code, message=message or spec.message, data=data)


class PriceMcpError(Exception):
    """Base class for errors raised by the price MCP server."""

    canonical_code = "INTERNAL_ERROR"

    def details(self) -> dict[str, Any]:
        return {}

    def to_mcp_error(self) -> McpError:
        data = CanonicalError.to_error_data(
            self.canonical_code, str(self), details=self.details()
        )
        return McpError(data)


class ArgumentError(PriceMcpError):
    """A tool argument failed type, enum or presence checks."""

    canonical_code = "INVALID_INPUT"

    def __init__(self, parameter: str | None, reason: str) -> None:
        self.parameter = parameter
        self.reason = reason
        if parameter:
            super().__init__(f"Invalid argument '{parameter}': {reason}")
        else:
            super().__init__(f"Invalid arguments: {reason}")

    def details(self) -> dict[str, Any]:
        return {"parameter": self.parameter, "reason": self.reason}


class UnknownToolError(PriceMcpError):
    canonical_code = "NOT_FOUND"

    def __init__(self, name: str, available: Sequence[str]) -> None:
        self.name = name
        self.available = tuple(available)
        super().__init__(f"Unknown tool: '{name}'")

    def details(self) -> dict[str, Any]:
        return {"tool": self.name, "available": list(self.available)}


class DuplicateToolError(PriceMcpError, ValueError):
    """Raised when a tool name is registered twice within one session."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered in this session")


class UpstreamError(PriceMcpError):
    """The price API call failed: non-2xx status, network error or bad body.

    Recovered by the tool handlers and never turned into a protocol error.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SessionStateError(PriceMcpError, RuntimeError):
    """A session was driven out of its forward-only state order."""
