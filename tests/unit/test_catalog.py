from __future__ import annotations

import pytest

from ledger_mcp.catalog import ENDPOINTS, TOOLS, ToolDescriptor, as_mcp_tools, endpoint_table


EXPECTED = {
    "get_test_history": ("/tests/history", ["spec_file"]),
    "get_test_errors": ("/tests/errors", ["spec_file"]),
    "get_failure_patterns": ("/tests/patterns", ["spec_file"]),
    "get_correlated_failures": ("/tests/correlations", ["spec_file"]),
    "get_flaky_tests": ("/tests/flaky", []),
    "get_flaky_specs": ("/tests/flaky-specs", []),
    "get_recent_failures": ("/tests/recent-failures", []),
    "get_test_trend": ("/tests/trend", ["spec_file"]),
    "get_failure_screenshots": ("/tests/failure-screenshots", ["spec_file"]),
    "get_consecutive_failures": ("/tests/consecutive-failures", []),
    "search_errors": ("/tests/search-errors", ["query"]),
}


def test_every_catalog_tool_is_dispatchable_and_nothing_else():
    names = [t.name for t in TOOLS]
    assert len(names) == len(set(names))
    assert set(names) == set(ENDPOINTS)
    assert len(ENDPOINTS) == len(TOOLS)


@pytest.mark.parametrize("name", sorted(EXPECTED))
def test_endpoint_and_required_args(name):
    endpoint, required = EXPECTED[name]
    tool = next(t for t in TOOLS if t.name == name)
    assert ENDPOINTS[name] == endpoint
    assert tool.input_schema.get("required", []) == required
    for arg in required:
        assert arg in tool.input_schema["properties"]


def test_schemas_are_objects_with_described_properties():
    for tool in TOOLS:
        assert tool.description
        assert tool.input_schema["type"] == "object"
        for prop in tool.input_schema["properties"].values():
            assert prop["type"] in {"string", "number"}
            assert prop["description"]


def test_granularity_is_a_closed_enum():
    trend = next(t for t in TOOLS if t.name == "get_test_trend")
    granularity = trend.input_schema["properties"]["granularity"]
    assert granularity["enum"] == ["day", "week"]
    assert granularity["default"] == "day"


def test_numeric_defaults_are_declared():
    flaky = next(t for t in TOOLS if t.name == "get_flaky_tests")
    props = flaky.input_schema["properties"]
    assert props["days"]["default"] == 3
    assert props["limit"]["default"] == 20
    assert "default" not in props["project_id"]


def test_endpoint_table_is_read_only():
    with pytest.raises(TypeError):
        ENDPOINTS["get_nonexistent"] = "/x"  # type: ignore[index]


def test_endpoint_table_rejects_duplicate_names():
    dup = ToolDescriptor(name="a", description="d", input_schema={"type": "object", "properties": {}}, endpoint="/x")
    with pytest.raises(ValueError, match="Duplicate tool name"):
        endpoint_table((dup, dup))


def test_as_mcp_tools_keeps_order_and_schema():
    tools = as_mcp_tools()
    assert [t.name for t in tools] == [t.name for t in TOOLS]
    assert tools[0].inputSchema["required"] == ["spec_file"]
