from __future__ import annotations

import functools

from fastapi import FastAPI

from apps.price_mcp.config import Settings
from apps.price_mcp.session import create_session

from .routes import SessionFactory, build_router

__all__ = ["create_app"]


def create_app(
    settings: Settings,
    *,
    session_factory: SessionFactory | None = None,
    enable_openapi: bool = False,
) -> FastAPI:
    """Return a FastAPI application exposing ``POST /mcp`` and ``GET /healthz``."""

    factory = session_factory or functools.partial(create_session, settings)
    docs_url = "/docs" if enable_openapi else None
    openapi_url = "/openapi.json" if enable_openapi else None
    app = FastAPI(
        title=f"{settings.server_name} MCP Server",
        version=settings.server_version,
        docs_url=docs_url,
        openapi_url=openapi_url,
    )
    app.include_router(build_router(factory))
    return app
