from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from ledger_common.context import request_scope
from ledger_common.errors import REDACT_TOKEN
from ledger_common.telemetry import log_event


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared helpers for MCP tool handlers
# ---------------------------------------------------------------------------


_REDACTION_KEYS = {"auth_bearer", "authorization", "token", "access_token", "api_key", "apikey"}


def sanitize_args_for_log(args: Mapping[str, Any] | None) -> dict:
    """Remove obvious secrets from args (telemetry layer also redacts)."""
    out: dict[str, Any] = {}
    for k, v in (args or {}).items():
        out[str(k)] = REDACT_TOKEN if str(k).lower() in _REDACTION_KEYS else v
    return out


def _error_text(result: Any) -> str | None:
    if not getattr(result, "isError", False):
        return None
    content = getattr(result, "content", None) or []
    return getattr(content[0], "text", None) if content else None


@dataclass(frozen=True)
class InstrumentConfig:
    kind: str = "tool"


def instrument_async_tool(cfg: InstrumentConfig = InstrumentConfig()):
    """Decorator for async `(self, name, arguments) -> CallToolResult` methods.

    Every call gets a fresh correlation id, is timed, logged and recorded in
    telemetry. Failures are read from the result's isError flag; the handler
    is expected to report per-call errors in-band rather than raise.
    """

    def decorator(fn: Callable[..., Awaitable[Any]]):
        @functools.wraps(fn)
        async def wrapper(self: Any, name: str, arguments: Mapping[str, Any] | None = None):
            with request_scope() as corr_id:
                t0 = time.perf_counter()
                logger.info("tool call %s args=%s", name, sanitize_args_for_log(arguments))

                result = await fn(self, name, arguments)

                ms = int((time.perf_counter() - t0) * 1000)
                error = _error_text(result)
                if error:
                    logger.warning("tool %s failed in %sms: %s", name, ms, error)
                else:
                    logger.info("tool %s ok in %sms", name, ms)

                log_event(
                    cfg.kind,
                    str(name),
                    {"args": sanitize_args_for_log(arguments)},
                    ok=error is None,
                    ms=ms,
                    corr_id=corr_id,
                    error=error,
                )
                return result

        return wrapper

    return decorator
