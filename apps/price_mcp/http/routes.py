from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter
from starlette.types import Receive, Scope, Send

from apps.price_mcp.session import Session

__all__ = ["McpEndpoint", "SessionFactory", "build_router"]

SessionFactory = Callable[[], Session]


class McpEndpoint:
    """ASGI endpoint creating a fresh :class:`Session` for every request."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        session = self._session_factory()
        await session.handle(scope, receive, send)


def build_router(session_factory: SessionFactory) -> APIRouter:
    router = APIRouter()

    router.add_route(
        "/mcp",
        McpEndpoint(session_factory),
        methods=["POST"],
        include_in_schema=False,
    )

    @router.get("/healthz")
    def health() -> dict[str, Any]:
        return {"status": "ok"}

    return router
