"""Runtime configuration for the test-results MCP server."""
