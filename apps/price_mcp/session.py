"""Per-request MCP sessions.

Every ``POST /mcp`` gets its own server, tool registry, upstream client and
Streamable HTTP transport. Nothing survives the exchange and no MCP session
identifier is issued.
"""

from __future__ import annotations

import logging
from enum import Enum
from uuid import uuid4

import anyio
import httpx
from anyio.abc import TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Message, Receive, Scope, Send

from .config import Settings
from .errors import SessionStateError
from .gateway import CoinGeckoGateway
from .observability import log_event
from .tools import ToolRegistry, build_registry

__all__ = ["Session", "SessionState", "create_session"]


class SessionState(Enum):
    CREATED = "created"
    CONNECTED = "connected"
    SERVING = "serving"
    CLOSED = "closed"


class Session:
    """Single-shot binding of a protocol server to one HTTP exchange.

    States only move forward: ``CREATED -> CONNECTED -> SERVING -> CLOSED``.
    :meth:`close` may be reached from normal completion, from an early client
    disconnect, or without :meth:`handle` ever running; it releases the
    transport and upstream client exactly once.
    """

    def __init__(
        self,
        *,
        server: Server,
        registry: ToolRegistry,
        gateway: CoinGeckoGateway,
    ) -> None:
        self.server = server
        self.registry = registry
        self.gateway = gateway
        self.transport: StreamableHTTPServerTransport | None = None
        self.state = SessionState.CREATED
        # Log correlation only; never sent to the client.
        self.trace_id = uuid4().hex
        self._cancel_scope: anyio.CancelScope | None = None
        self._response_sent = False

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve one inbound request and tear the session down afterwards."""

        if self.state is not SessionState.CREATED:
            raise SessionStateError(f"Session already {self.state.value}; sessions are single-shot")

        transport = StreamableHTTPServerTransport(
            mcp_session_id=None,
            is_json_response_enabled=True,
        )
        self.transport = transport
        body_consumed = anyio.Event()

        async def tracked_receive() -> Message:
            message = await receive()
            if message["type"] == "http.disconnect" or not message.get("more_body", False):
                body_consumed.set()
            return message

        async def tracked_send(message: Message) -> None:
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                self._response_sent = True
            await send(message)

        log_event(event="session.open", status="ok", trace_id=self.trace_id)
        try:
            async with anyio.create_task_group() as task_group:
                self._cancel_scope = task_group.cancel_scope
                await task_group.start(self._run_server, transport)
                self.state = SessionState.CONNECTED
                task_group.start_soon(self._watch_disconnect, receive, body_consumed)
                self.state = SessionState.SERVING
                await transport.handle_request(scope, tracked_receive, tracked_send)
                await self.close()
        finally:
            await self.close()

    async def close(self, *, reason: str = "completed") -> None:
        """Release the server, transport and upstream client. Idempotent."""

        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()
        with anyio.CancelScope(shield=True):
            if self.transport is not None:
                await self.transport.terminate()
            await self.gateway.aclose()
        log_event(event="session.close", status=reason, trace_id=self.trace_id)

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    async def _run_server(
        self,
        transport: StreamableHTTPServerTransport,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        async with transport.connect() as (read_stream, write_stream):
            task_status.started()
            try:
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                    stateless=True,
                )
            except Exception as exc:
                log_event(
                    event="session.server_error",
                    status="crashed",
                    level=logging.ERROR,
                    trace_id=self.trace_id,
                    error=f"{type(exc).__name__}: {exc}",
                )

    async def _watch_disconnect(self, receive: Receive, body_consumed: anyio.Event) -> None:
        # Only read once the transport has finished consuming the request body.
        await body_consumed.wait()
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
        if self._response_sent or self.closed:
            return
        log_event(
            event="session.disconnect",
            status="client_gone",
            level=logging.WARNING,
            trace_id=self.trace_id,
        )
        await self.close(reason="disconnected")


def create_session(
    settings: Settings,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> Session:
    """Build a fully wired, unconnected session for one request."""

    server: Server = Server(settings.server_name, version=settings.server_version)
    gateway = CoinGeckoGateway(settings, transport=http_transport)
    registry = build_registry(gateway)
    registry.bind(server)
    return Session(server=server, registry=registry, gateway=gateway)
