"""MCP server exposing test-results analytics tools.

Each tool call is forwarded as an authenticated GET to the analytics API;
the JSON response (or the error) is returned to the caller as text content.
"""

__version__ = "1.0.0"
