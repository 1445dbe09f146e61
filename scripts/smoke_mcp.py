"""
Smoke script for a live analytics API (no test doubles).

It performs:
 1) Spawns the server over stdio (`python -m ledger_mcp`) with the current environment
 2) Lists tools
 3) Calls one tool (LEDGER_SMOKE_TOOL, default get_flaky_specs) and prints the result

Needs TEST_LEDGER_API_URL / TEST_LEDGER_API_KEY (or a .env file) to reach a real backend.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client

_REPO_ROOT = Path(__file__).resolve().parents[1]


def _pretty(text: str) -> str:
    s = text.strip()
    if s.startswith("{") or s.startswith("["):
        try:
            return json.dumps(json.loads(s), indent=2, ensure_ascii=False)
        except json.JSONDecodeError:
            return text
    return text


def _first_text(res: Any) -> str:
    content = getattr(res, "content", None) or []
    return getattr(content[0], "text", "") if content else ""


async def main() -> int:
    python_cmd = os.getenv("MCP_PYTHON") or sys.executable
    tool = os.getenv("LEDGER_SMOKE_TOOL", "get_flaky_specs")
    tool_args = json.loads(os.getenv("LEDGER_SMOKE_ARGS", "{}"))

    env = dict(os.environ)
    src = str(_REPO_ROOT / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)

    print(f"[smoke] Repo root: {_REPO_ROOT}")
    print(f"[smoke] Python: {python_cmd}")
    print(f"[smoke] API: {os.getenv('TEST_LEDGER_API_URL') or '(from .env or unset)'}")

    server = StdioServerParameters(command=python_cmd, args=["-m", "ledger_mcp"], env=env)

    async with stdio_client(server) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            tools = await session.list_tools()
            print("\n[smoke] TOOLS:")
            for t in tools.tools:
                print(f" - {t.name}")

            res = await session.call_tool(tool, tool_args)
            print(f"\n[smoke] CALL {tool}({tool_args}):")
            print(_pretty(_first_text(res)))

    if res.isError:
        print("\n[smoke] FAILED")
        return 1
    print("\n[smoke] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
