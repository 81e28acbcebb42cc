from __future__ import annotations

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

from apps.price_mcp.config import Settings
from apps.price_mcp.http import create_app
from apps.price_mcp.observability import configure_logging, log_event

_UVICORN_LOG_LEVELS = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARN": "warning",
    "ERROR": "error",
}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the FreeCoinPrice MCP server")
    parser.add_argument("--host", default="127.0.0.1", help="HTTP host")
    parser.add_argument("--port", type=int, default=3000, help="HTTP port")
    parser.add_argument(
        "--log-level",
        choices=list(_UVICORN_LOG_LEVELS),
        default="INFO",
        help="Logging level",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file to load before reading settings",
    )
    parser.add_argument(
        "--enable-openapi",
        action="store_true",
        help="Serve /docs and /openapi.json",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return create_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging("WARNING" if args.log_level == "WARN" else args.log_level)
    load_dotenv(args.env_file)
    settings = Settings.from_env()
    if not settings.api_key:
        log_event(event="config.api_key", status="missing", level=logging.WARNING)

    app = create_app(settings, enable_openapi=args.enable_openapi)
    log_event(event="server.start", status="ok", host=args.host, port=args.port)
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=_UVICORN_LOG_LEVELS[args.log_level],
        access_log=False,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
