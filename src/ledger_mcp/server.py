from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from ledger_common.errors import ConfigurationError
from ledger_common.telemetry import telemetry_recent
from ledger_config.settings import ProcessConfig, init_runtime, load_process_config
from ledger_mcp import __version__
from ledger_mcp.dispatcher import Dispatcher
from ledger_mcp.forwarder import Forwarder


logger = logging.getLogger(__name__)

SERVER_NAME = "test-results-mcp"


def create_server(dispatcher: Dispatcher) -> Server:
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return dispatcher.list_tools()

    # The analytics API validates arguments; schema mismatches come back as API errors.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await dispatcher.call_tool(name, arguments)

    return server


def build_dispatcher(config: ProcessConfig) -> Dispatcher:
    try:
        config.require_base_url()
    except ConfigurationError as e:
        # Keep serving: list_tools works and every call reports this in-band.
        logger.warning("%s", e)
    return Dispatcher(Forwarder(config))


async def run_stdio(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Test Results MCP Server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def _parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="test-ledger-mcp",
        description="MCP server exposing test-results analytics tools over stdio.",
    )
    ap.add_argument("--api-url", default=None, help="Analytics API base URL (env: TEST_LEDGER_API_URL)")
    ap.add_argument("--api-key", default=None, help="Bearer token (env: TEST_LEDGER_API_KEY)")
    ap.add_argument("--project-id", default=None, help="Default project_id (env: TEST_LEDGER_PROJECT_ID)")
    ap.add_argument(
        "--api-prefix",
        default=None,
        help="Path prefix in front of /tests/..., e.g. /api (env: TEST_LEDGER_API_PREFIX)",
    )
    ap.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds (default: 25)")
    ap.add_argument("--log-level", default=None, help="Log level (env: TEST_LEDGER_LOG_LEVEL)")
    ap.add_argument(
        "--show-telemetry",
        type=int,
        metavar="N",
        default=None,
        help="Print the last N telemetry records and exit",
    )
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    init_runtime(log_level=args.log_level)

    if args.show_telemetry is not None:
        for rec in telemetry_recent(args.show_telemetry)["records"]:
            print(json.dumps(rec, ensure_ascii=False))
        return 0

    config = load_process_config().with_overrides(
        base_url=args.api_url,
        api_key=args.api_key,
        default_project_id=args.project_id,
        api_prefix=args.api_prefix,
        timeout_s=args.timeout,
    )

    try:
        asyncio.run(run_stdio(create_server(build_dispatcher(config))))
    except KeyboardInterrupt:
        return 0
    except Exception:
        logger.exception("Fatal error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
