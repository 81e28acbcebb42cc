"""Tool definitions exposed by the price MCP server.

Tools
-----
  hello                       : fixed "hello" text, useful as a connectivity check
  getSupportedCurrencies      : currencies accepted as ``vs_currencies``
  getCoinPrice                : spot prices for coins by id, name or symbol
  getPublicCompaniesHoldings  : public company treasuries for bitcoin or ethereum
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from apps.price_mcp.envelope import Failed, Ok, ToolOutcome
from apps.price_mcp.errors import UpstreamError
from apps.price_mcp.gateway import HOLDINGS_COIN_IDS, CoinGeckoGateway
from apps.price_mcp.validation import ArgumentSpec

from .registry import ToolRegistry

__all__ = [
    "COIN_PRICE_ERROR",
    "HOLDINGS_ERROR",
    "SUPPORTED_CURRENCIES_ERROR",
    "build_registry",
]

SUPPORTED_CURRENCIES_ERROR = "Failed to fetch supported currencies"
COIN_PRICE_ERROR = "Failed to fetch coin prices"
HOLDINGS_ERROR = "Failed to fetch public companies holdings"

COIN_PRICE_ARGUMENTS = {
    "ids": ArgumentSpec("string", "Comma-separated list of coin IDs"),
    "names": ArgumentSpec("string", "Comma-separated list of coin names"),
    "symbols": ArgumentSpec("string", "Comma-separated list of coin symbols"),
    "vs_currencies": ArgumentSpec(
        "string", "Comma-separated list of target currencies", default="usd"
    ),
}

HOLDINGS_ARGUMENTS = {
    "coin_id": ArgumentSpec(
        "string",
        "Coin to report public company holdings for",
        required=True,
        enum=HOLDINGS_COIN_IDS,
    ),
}


async def _proxy(tool: str, context: str, fetch: Callable[[], Awaitable[Any]]) -> ToolOutcome:
    try:
        payload = await fetch()
    except UpstreamError as exc:
        return Failed(context, exc, tool=tool)
    return Ok(payload)


def build_registry(gateway: CoinGeckoGateway) -> ToolRegistry:
    """Return a fresh registry with every tool bound to ``gateway``."""

    registry = ToolRegistry()

    async def hello(_: dict[str, Any]) -> ToolOutcome:
        return Ok("hello", raw=True)

    async def get_supported_currencies(_: dict[str, Any]) -> ToolOutcome:
        return await _proxy(
            "getSupportedCurrencies",
            SUPPORTED_CURRENCIES_ERROR,
            gateway.fetch_supported_currencies,
        )

    async def get_coin_price(args: dict[str, Any]) -> ToolOutcome:
        return await _proxy(
            "getCoinPrice",
            COIN_PRICE_ERROR,
            lambda: gateway.fetch_prices(
                ids=args.get("ids"),
                names=args.get("names"),
                symbols=args.get("symbols"),
                vs_currencies=args["vs_currencies"],
            ),
        )

    async def get_public_companies_holdings(args: dict[str, Any]) -> ToolOutcome:
        return await _proxy(
            "getPublicCompaniesHoldings",
            HOLDINGS_ERROR,
            lambda: gateway.fetch_public_company_holdings(args["coin_id"]),
        )

    registry.register("hello", "Reply with a fixed greeting.", {}, hello)
    registry.register(
        "getSupportedCurrencies",
        "List the currency codes that coin prices can be quoted in.",
        {},
        get_supported_currencies,
    )
    registry.register(
        "getCoinPrice",
        (
            "Get current prices for coins identified by ids, names or symbols, "
            "quoted in one or more target currencies."
        ),
        COIN_PRICE_ARGUMENTS,
        get_coin_price,
    )
    registry.register(
        "getPublicCompaniesHoldings",
        "Get bitcoin or ethereum holdings of publicly traded companies.",
        HOLDINGS_ARGUMENTS,
        get_public_companies_holdings,
    )
    return registry
