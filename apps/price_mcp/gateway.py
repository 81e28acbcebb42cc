"""Async client for the CoinGecko price API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from .config import Settings
from .errors import ArgumentError, UpstreamError
from .observability import log_event

__all__ = [
    "HOLDINGS_COIN_IDS",
    "CoinGeckoGateway",
    "UpstreamRequestSpec",
]

HOLDINGS_COIN_IDS = ("bitcoin", "ethereum")


@dataclass(frozen=True, slots=True)
class UpstreamRequestSpec:
    """Path and query of a single upstream GET."""

    path: str
    query: Mapping[str, str | None] = field(default_factory=dict)

    def params(self) -> dict[str, str]:
        """Return the query with unset parameters omitted."""

        return {key: value for key, value in self.query.items() if value is not None}


class CoinGeckoGateway:
    """Stateless gateway issuing one GET per logical operation.

    Every call is a single attempt. Failures of any kind surface as
    :class:`UpstreamError` and are left to the calling tool handler.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        client_options: dict[str, Any] = {"transport": transport}
        if settings.timeout_s is not None:
            client_options["timeout"] = settings.timeout_s
        self._client = httpx.AsyncClient(**client_options)
        self._closed = False

    async def fetch_supported_currencies(self) -> Any:
        return await self._get(UpstreamRequestSpec("/simple/supported_vs_currencies"))

    async def fetch_prices(
        self,
        ids: str | None = None,
        names: str | None = None,
        symbols: str | None = None,
        vs_currencies: str = "usd",
    ) -> Any:
        # At least one of ids/names/symbols is expected upstream; not enforced here.
        spec = UpstreamRequestSpec(
            "/simple/price",
            {
                "ids": ids,
                "names": names,
                "symbols": symbols,
                "vs_currencies": vs_currencies,
            },
        )
        return await self._get(spec)

    async def fetch_public_company_holdings(self, coin_id: str) -> Any:
        if coin_id not in HOLDINGS_COIN_IDS:
            raise ArgumentError(
                "coin_id", f"must be one of {list(HOLDINGS_COIN_IDS)}, got {coin_id!r}"
            )
        return await self._get(UpstreamRequestSpec(f"/companies/public_treasury/{coin_id}"))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._client.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    async def _get(self, spec: UpstreamRequestSpec) -> Any:
        url = f"{self._settings.api_base}{spec.path}"
        params = spec.params()
        log_event(event="upstream.request", status="pending", path=spec.path, params=params)
        try:
            response = await self._client.get(
                url, params=params, headers=self._settings.headers()
            )
        except httpx.HTTPError as exc:
            log_event(
                event="upstream.error",
                status="network_error",
                level=logging.WARNING,
                path=spec.path,
                error=f"{type(exc).__name__}: {exc}",
            )
            raise UpstreamError(f"Request to {spec.path} failed: {exc}") from exc

        if not response.is_success:
            log_event(
                event="upstream.error",
                status="http_error",
                level=logging.WARNING,
                path=spec.path,
                status_code=response.status_code,
            )
            raise UpstreamError(
                f"{spec.path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"{spec.path} returned a body that is not JSON",
                status_code=response.status_code,
            ) from exc
