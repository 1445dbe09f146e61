from __future__ import annotations

import asyncio
import json
from typing import Any, Mapping

from mcp import types

from ledger_common.errors import UnknownToolError
from ledger_common.tooling import InstrumentConfig, instrument_async_tool
from ledger_mcp.catalog import TOOLS, ToolDescriptor, as_mcp_tools, endpoint_table
from ledger_mcp.forwarder import ForwardResult, Forwarder


def to_envelope(result: ForwardResult) -> types.CallToolResult:
    """Wrap a forward result in the MCP call_tool response.

    Errors travel in-band (isError=True) so the calling model can read them.
    """
    if result.ok:
        text = json.dumps(result.payload, indent=2, ensure_ascii=False)
        return types.CallToolResult(content=[types.TextContent(type="text", text=text)])
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=f"Error: {result.error}")],
        isError=True,
    )


class Dispatcher:
    """Binds MCP list_tools / call_tool requests to the catalog and the forwarder."""

    def __init__(self, forwarder: Forwarder, tools: tuple[ToolDescriptor, ...] = TOOLS) -> None:
        self.forwarder = forwarder
        self.tools = tools
        self.endpoints = endpoint_table(tools)

    def list_tools(self) -> list[types.Tool]:
        return as_mcp_tools(self.tools)

    @instrument_async_tool(InstrumentConfig(kind="tool"))
    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None = None) -> types.CallToolResult:
        endpoint = self.endpoints.get(name)
        if endpoint is None:
            return to_envelope(ForwardResult.failure(UnknownToolError(name)))

        # requests is blocking; keep the event loop free for concurrent calls
        result = await asyncio.to_thread(self.forwarder.try_forward, endpoint, dict(arguments or {}))
        return to_envelope(result)
