from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from mcp import types
from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError

from apps.price_mcp.config import Settings
from apps.price_mcp.envelope import Ok, ToolOutcome
from apps.price_mcp.errors import ArgumentError, DuplicateToolError, UnknownToolError
from apps.price_mcp.gateway import CoinGeckoGateway
from apps.price_mcp.tools import ToolRegistry, build_registry
from apps.price_mcp.tools.coingecko import (
    COIN_PRICE_ERROR,
    HOLDINGS_ERROR,
    SUPPORTED_CURRENCIES_ERROR,
)
from apps.price_mcp.validation import ArgumentSpec
from tests.helpers.upstream import FakeUpstream, path

EXPECTED_TOOLS = ["hello", "getSupportedCurrencies", "getCoinPrice", "getPublicCompaniesHoldings"]


async def _echo(args: dict[str, Any]) -> ToolOutcome:
    return Ok(args)


def _call(registry: ToolRegistry, gateway: CoinGeckoGateway | None, name: str, arguments: Any):
    async def _invoke():
        try:
            return await registry.call(name, arguments)
        finally:
            if gateway is not None:
                await gateway.aclose()

    return asyncio.run(_invoke())


def _payload(result: types.CallToolResult) -> Any:
    assert result.isError is False
    assert len(result.content) == 1
    return json.loads(result.content[0].text)


def test_register_rejects_duplicate_names() -> None:
    registry = ToolRegistry()
    registry.register("echo", "Echo", {}, _echo)
    with pytest.raises(DuplicateToolError):
        registry.register("echo", "Echo again", {}, _echo)
    assert registry.get("echo").description == "Echo"


def test_unknown_tool_is_a_protocol_error() -> None:
    registry = ToolRegistry()
    with pytest.raises(UnknownToolError):
        _call(registry, None, "missing", {})


def test_call_validates_before_running_handler() -> None:
    calls: list[dict[str, Any]] = []

    async def handler(args: dict[str, Any]) -> ToolOutcome:
        calls.append(args)
        return Ok(args)

    registry = ToolRegistry()
    registry.register("count", "Count", {"n": ArgumentSpec("integer", required=True)}, handler)

    with pytest.raises(ArgumentError):
        _call(registry, None, "count", {"n": "many"})
    assert calls == []

    assert _payload(_call(registry, None, "count", {"n": "3"})) == {"n": 3}
    assert calls == [{"n": 3}]


def test_build_registry_registers_all_tools(settings: Settings, upstream: FakeUpstream) -> None:
    gateway = CoinGeckoGateway(settings, transport=upstream.transport())
    registry = build_registry(gateway)
    asyncio.run(gateway.aclose())

    assert registry.names() == EXPECTED_TOOLS
    tools = {tool.name: tool for tool in registry.list_tools()}
    holdings_schema = tools["getPublicCompaniesHoldings"].inputSchema
    assert holdings_schema["required"] == ["coin_id"]
    assert holdings_schema["properties"]["coin_id"]["enum"] == ["bitcoin", "ethereum"]
    assert tools["getCoinPrice"].inputSchema["properties"]["vs_currencies"]["default"] == "usd"
    assert tools["hello"].inputSchema["properties"] == {}


def test_hello_returns_plain_text(settings: Settings, upstream: FakeUpstream) -> None:
    gateway = CoinGeckoGateway(settings, transport=upstream.transport())
    result = _call(build_registry(gateway), gateway, "hello", None)
    assert result.content[0].text == "hello"
    assert upstream.requests == []


def test_proxy_tools_return_upstream_payload_verbatim(
    settings: Settings, upstream: FakeUpstream
) -> None:
    holdings = {"total_holdings": 264136, "companies": [{"name": "MicroStrategy"}]}
    upstream.json(path("/simple/supported_vs_currencies"), ["usd", "eur"])
    upstream.json(path("/simple/price"), {"bitcoin": {"usd": 67000}})
    upstream.json(path("/companies/public_treasury/bitcoin"), holdings)

    for name, arguments, expected in [
        ("getSupportedCurrencies", {}, ["usd", "eur"]),
        ("getCoinPrice", {"ids": "bitcoin"}, {"bitcoin": {"usd": 67000}}),
        ("getPublicCompaniesHoldings", {"coin_id": "bitcoin"}, holdings),
    ]:
        gateway = CoinGeckoGateway(settings, transport=upstream.transport())
        assert _payload(_call(build_registry(gateway), gateway, name, arguments)) == expected


def test_get_coin_price_without_arguments_sends_only_default(
    settings: Settings, upstream: FakeUpstream
) -> None:
    upstream.json(path("/simple/price"), {})
    gateway = CoinGeckoGateway(settings, transport=upstream.transport())

    _call(build_registry(gateway), gateway, "getCoinPrice", {})

    assert dict(upstream.last.url.params) == {"vs_currencies": "usd"}


def test_holdings_rejects_unknown_coin_without_upstream_call(
    settings: Settings, upstream: FakeUpstream
) -> None:
    gateway = CoinGeckoGateway(settings, transport=upstream.transport())
    with pytest.raises(ArgumentError) as excinfo:
        _call(build_registry(gateway), gateway, "getPublicCompaniesHoldings", {"coin_id": "solana"})
    assert excinfo.value.parameter == "coin_id"
    assert upstream.requests == []


@pytest.mark.parametrize(
    ("name", "arguments", "upstream_path", "message"),
    [
        ("getSupportedCurrencies", {}, "/simple/supported_vs_currencies", SUPPORTED_CURRENCIES_ERROR),
        ("getCoinPrice", {"ids": "bitcoin"}, "/simple/price", COIN_PRICE_ERROR),
        (
            "getPublicCompaniesHoldings",
            {"coin_id": "ethereum"},
            "/companies/public_treasury/ethereum",
            HOLDINGS_ERROR,
        ),
    ],
)
@pytest.mark.parametrize("status_code", [401, 500])
def test_upstream_failures_become_success_shaped_errors(
    settings: Settings,
    upstream: FakeUpstream,
    name: str,
    arguments: dict[str, Any],
    upstream_path: str,
    message: str,
    status_code: int,
) -> None:
    upstream.status(path(upstream_path), status_code, "upstream diagnostic detail")
    gateway = CoinGeckoGateway(settings, transport=upstream.transport())

    result = _call(build_registry(gateway), gateway, name, arguments)

    assert _payload(result) == {"error": message}
    assert "diagnostic" not in result.content[0].text
    assert len(upstream.requests) == 1


def test_bind_installs_protocol_handlers(settings: Settings, upstream: FakeUpstream) -> None:
    gateway = CoinGeckoGateway(settings, transport=upstream.transport())
    registry = build_registry(gateway)
    server: Server = Server("test")
    registry.bind(server)

    list_handler = server.request_handlers[types.ListToolsRequest]
    call_handler = server.request_handlers[types.CallToolRequest]

    async def _exercise():
        try:
            listed = await list_handler(types.ListToolsRequest(method="tools/list"))
            called = await call_handler(
                types.CallToolRequest(
                    method="tools/call",
                    params=types.CallToolRequestParams(name="hello", arguments={}),
                )
            )
            with pytest.raises(McpError) as excinfo:
                await call_handler(
                    types.CallToolRequest(
                        method="tools/call",
                        params=types.CallToolRequestParams(
                            name="getPublicCompaniesHoldings", arguments={"coin_id": "xrp"}
                        ),
                    )
                )
            return listed, called, excinfo.value
        finally:
            await gateway.aclose()

    listed, called, error = asyncio.run(_exercise())

    assert [tool.name for tool in listed.root.tools] == EXPECTED_TOOLS
    assert called.root.content[0].text == "hello"
    assert error.error.code == -32602
    assert error.error.data["canonical"] == "INVALID_INPUT"
