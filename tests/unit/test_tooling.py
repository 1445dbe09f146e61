import pytest
from mcp import types

import ledger_common.tooling as tooling
from ledger_common.context import get_request_id
from ledger_common.tooling import InstrumentConfig, instrument_async_tool, sanitize_args_for_log


def test_sanitize_args_for_log_redacts_secret_keys():
    out = sanitize_args_for_log({"spec_file": "a", "API_KEY": "k", "token": "t"})
    assert out == {"spec_file": "a", "API_KEY": "***redacted***", "token": "***redacted***"}
    assert sanitize_args_for_log(None) == {}


class _Handler:
    def __init__(self, result):
        self.result = result
        self.seen_ids = []

    @instrument_async_tool(InstrumentConfig(kind="tool"))
    async def call_tool(self, name, arguments=None):
        self.seen_ids.append(get_request_id())
        return self.result


@pytest.mark.asyncio
async def test_instrument_records_success(monkeypatch):
    events = []
    monkeypatch.setattr(tooling, "log_event", lambda *a, **k: events.append((a, k)))

    h = _Handler(types.CallToolResult(content=[types.TextContent(type="text", text="{}")]))
    out = await h.call_tool("get_flaky_tests", {"days": 3})

    assert out is h.result
    (args, kwargs), = events
    assert args[:3] == ("tool", "get_flaky_tests", {"args": {"days": 3}})
    assert kwargs["ok"] is True
    assert kwargs["error"] is None
    assert kwargs["corr_id"] == h.seen_ids[0]


@pytest.mark.asyncio
async def test_instrument_records_in_band_error(monkeypatch):
    events = []
    monkeypatch.setattr(tooling, "log_event", lambda *a, **k: events.append((a, k)))

    err = types.CallToolResult(content=[types.TextContent(type="text", text="Error: boom")], isError=True)
    await _Handler(err).call_tool("get_test_trend", {"spec_file": "x"})

    (_, kwargs), = events
    assert kwargs["ok"] is False
    assert kwargs["error"] == "Error: boom"


@pytest.mark.asyncio
async def test_each_call_gets_its_own_corr_id(monkeypatch):
    monkeypatch.setattr(tooling, "log_event", lambda *a, **k: None)
    h = _Handler(types.CallToolResult(content=[]))
    await h.call_tool("a", {})
    await h.call_tool("b", {})
    assert len(set(h.seen_ids)) == 2
    assert get_request_id() is None
