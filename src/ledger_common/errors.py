from __future__ import annotations

REDACT_TOKEN = "***redacted***"


class LedgerError(Exception):
    """Base class for failures of a single tool call."""


class ConfigurationError(LedgerError):
    """The process is missing configuration it needs to reach the API."""


class RequestTimeoutError(LedgerError, TimeoutError):
    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(
            f"Request timeout after {timeout_s:g}s. Try reducing 'days' or 'limit' parameters."
        )


class RemoteError(LedgerError):
    """Non-2xx response from the analytics API."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"API error {status}: {body}")


class UnknownToolError(LedgerError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ParseError(LedgerError, ValueError):
    """A 2xx response whose body is not valid JSON."""
