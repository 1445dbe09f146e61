"""Tool catalog: every tool the server exposes and the API endpoint it forwards to.

Defaults declared in the schemas document what the analytics API applies when
an argument is omitted. They are never filled in locally.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from mcp import types


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Mapping[str, Any]
    endpoint: str

    def to_mcp(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=dict(self.input_schema))


def _string(description: str, **extra: Any) -> dict:
    return {"type": "string", "description": description, **extra}


def _number(description: str, default: float | int | None = None) -> dict:
    prop: dict[str, Any] = {"type": "number", "description": description}
    if default is not None:
        prop["default"] = default
    return prop


def _schema(properties: dict[str, dict], required: tuple[str, ...] = ()) -> dict:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(required)
    return schema


_PROJECT_ID = _number("Project ID to filter by (optional)")
_TEST_TITLE = _string("Specific test title (optional)")


TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="get_test_history",
        description=(
            "Get historical pass/fail/flaky statistics for a specific test. "
            "Use this to understand how often a test fails and its overall reliability."
        ),
        input_schema=_schema(
            {
                "spec_file": _string("The spec file path (e.g., 'login.spec.js' or 'tests/checkout.spec.ts')"),
                "test_title": _string(
                    "Specific test title to filter by (optional - omit to get all tests in the spec)"
                ),
                "project_id": _PROJECT_ID,
                "days": _number("Number of days to look back (default: 30)", 30),
            },
            required=("spec_file",),
        ),
        endpoint="/tests/history",
    ),
    ToolDescriptor(
        name="get_test_errors",
        description=(
            "Get error messages and stacktraces for a test's failures, grouped by unique error. "
            "Use this to see what errors are occurring and how often."
        ),
        input_schema=_schema(
            {
                "spec_file": _string("The spec file path"),
                "test_title": _TEST_TITLE,
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 30)", 30),
                "limit": _number("Maximum number of unique errors to return (default: 20)", 20),
            },
            required=("spec_file",),
        ),
        endpoint="/tests/errors",
    ),
    ToolDescriptor(
        name="get_failure_patterns",
        description=(
            "Analyze when and how tests fail to identify patterns. Returns failure rates by hour, "
            "day of week, version, browser/site, and duration analysis."
        ),
        input_schema=_schema(
            {
                "spec_file": _string("The spec file path"),
                "test_title": _TEST_TITLE,
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 30)", 30),
            },
            required=("spec_file",),
        ),
        endpoint="/tests/patterns",
    ),
    ToolDescriptor(
        name="get_correlated_failures",
        description=(
            "Find tests that tend to fail together with a given test. High correlation suggests "
            "shared setup issues, test pollution, or dependencies."
        ),
        input_schema=_schema(
            {
                "spec_file": _string("The spec file to find correlations for"),
                "test_title": _TEST_TITLE,
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 30)", 30),
                "min_correlation": _number("Minimum correlation threshold 0-1 (default: 0.5)", 0.5),
            },
            required=("spec_file",),
        ),
        endpoint="/tests/correlations",
    ),
    ToolDescriptor(
        name="get_flaky_tests",
        description=(
            "Get a list of flaky tests (tests that fail then pass on retry) across the project, "
            "sorted by flakiness rate. Note: This scans all tests - use smaller 'days' values "
            "for faster results."
        ),
        input_schema=_schema(
            {
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 3). Use smaller values for faster results.", 3),
                "min_flaky_rate": _number("Minimum flaky rate percentage to include (default: 5)", 5),
                "limit": _number("Maximum results to return (default: 20)", 20),
            }
        ),
        endpoint="/tests/flaky",
    ),
    ToolDescriptor(
        name="get_flaky_specs",
        description=(
            "Get flaky specs from pre-computed materialized view. Faster than get_flaky_tests as it "
            "uses cached data refreshed hourly. Returns spec-level flakiness (not individual test level)."
        ),
        input_schema=_schema(
            {
                "project_id": _PROJECT_ID,
                "min_flaky_count": _number("Minimum number of flaky occurrences (default: 1)", 1),
                "min_flaky_percent": _number("Minimum flaky percentage to include (default: 10)", 10),
                "min_total_runs": _number("Minimum total runs for statistical significance (default: 1)", 1),
                "limit": _number("Maximum results to return (default: 50)", 50),
            }
        ),
        endpoint="/tests/flaky-specs",
    ),
    ToolDescriptor(
        name="get_recent_failures",
        description=(
            "Get the most recent test failures for quick triage. Useful for seeing what's currently "
            "broken. For faster results, provide a spec_file filter."
        ),
        input_schema=_schema(
            {
                "project_id": _PROJECT_ID,
                "spec_file": _string("Filter by spec file (recommended for faster results)"),
                "hours": _number("Hours to look back (default: 24)", 24),
                "limit": _number("Maximum results (default: 20)", 20),
            }
        ),
        endpoint="/tests/recent-failures",
    ),
    ToolDescriptor(
        name="get_test_trend",
        description=(
            "Get trend data for a test over time, useful for seeing if a test is getting more "
            "or less reliable."
        ),
        input_schema=_schema(
            {
                "spec_file": _string("The spec file path"),
                "test_title": _TEST_TITLE,
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 30)", 30),
                "granularity": _string(
                    "Time granularity for trend data (default: 'day')",
                    enum=["day", "week"],
                    default="day",
                ),
            },
            required=("spec_file",),
        ),
        endpoint="/tests/trend",
    ),
    ToolDescriptor(
        name="get_failure_screenshots",
        description=(
            "Get screenshots from recent test failures. Returns presigned S3 URLs that can be viewed "
            "with the Read tool to see exactly what the UI looked like when the test failed."
        ),
        input_schema=_schema(
            {
                "spec_file": _string("The spec file path (e.g., 'login.spec.js')"),
                "test_title": _string("Specific test title to filter by (optional)"),
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 7)", 7),
                "limit": _number("Maximum screenshots to return (default: 10)", 10),
            },
            required=("spec_file",),
        ),
        endpoint="/tests/failure-screenshots",
    ),
    ToolDescriptor(
        name="get_consecutive_failures",
        description=(
            "Get tests that are failing consecutively (broken tests, not flaky). Returns tests where "
            "the last 2+ runs have failed, with timing info (last_passed_date, first_failed_date) "
            "useful for identifying which merge broke them."
        ),
        input_schema=_schema(
            {
                "project_id": _PROJECT_ID,
                "version": _string(
                    "Version to filter by (e.g., '12.1.0'). If not provided, uses latest version."
                ),
                "days": _number("Days to look back (default: 10)", 10),
                "min_consecutive_failures": _number(
                    "Minimum number of consecutive failures to include (default: 2)", 2
                ),
                "limit": _number("Maximum results to return (default: 50)", 50),
            }
        ),
        endpoint="/tests/consecutive-failures",
    ),
    ToolDescriptor(
        name="search_errors",
        description=(
            "Full-text search across error messages and stacktraces. Use this to find all tests "
            "affected by a specific type of error."
        ),
        input_schema=_schema(
            {
                "query": _string("Search term (e.g., 'timeout', 'element not found', 'ECONNREFUSED')"),
                "project_id": _PROJECT_ID,
                "days": _number("Days to look back (default: 30)", 30),
                "limit": _number("Maximum results (default: 50)", 50),
            },
            required=("query",),
        ),
        endpoint="/tests/search-errors",
    ),
)


def endpoint_table(tools: tuple[ToolDescriptor, ...] = TOOLS) -> Mapping[str, str]:
    """Read-only name -> endpoint mapping. Raises on duplicate tool names."""
    table: dict[str, str] = {}
    for t in tools:
        if t.name in table:
            raise ValueError(f"Duplicate tool name in catalog: {t.name}")
        table[t.name] = t.endpoint
    return MappingProxyType(table)


ENDPOINTS: Mapping[str, str] = endpoint_table()


def as_mcp_tools(tools: tuple[ToolDescriptor, ...] = TOOLS) -> list[types.Tool]:
    return [t.to_mcp() for t in tools]
