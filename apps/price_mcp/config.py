"""Process-wide settings for the price MCP server."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["DEFAULT_API_BASE", "Settings"]

DEFAULT_API_BASE = "https://api.coingecko.com/api/v3"
API_KEY_HEADER = "x-cg-demo-api-key"


class Settings(BaseModel):
    """Immutable configuration built once at process start.

    Handlers never read the environment; the gateway receives this value by
    reference when a session is created.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_key: str = Field(default="", description="CoinGecko demo API key")
    api_base: str = Field(default=DEFAULT_API_BASE, description="Upstream base URL")
    timeout_s: float | None = Field(
        default=None,
        description="Upstream timeout in seconds; None keeps the HTTP client default",
    )
    server_name: str = Field(default="FreeCoinPrice")
    server_version: str = Field(default="1.0.0")

    @field_validator("api_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("api_base must not be empty")
        return value.rstrip("/")

    @field_validator("timeout_s")
    @classmethod
    def _positive_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("timeout_s must be a positive number")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        raw_timeout = env.get("COINGECKO_TIMEOUT_S", "").strip() or None
        return cls(
            api_key=env.get("COINGECKO_API_KEY", ""),
            api_base=env.get("COINGECKO_API_BASE", DEFAULT_API_BASE),
            timeout_s=raw_timeout,
            server_name=env.get("PRICE_MCP_SERVER_NAME", "FreeCoinPrice"),
        )

    def headers(self) -> dict[str, str]:
        """Return the fixed header set attached to every upstream call."""

        return {API_KEY_HEADER: self.api_key, "accept": "application/json"}
