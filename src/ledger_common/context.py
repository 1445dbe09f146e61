from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# One id per tool call; asyncio tasks and to_thread workers inherit it.
_request_id_ctx: ContextVar[str | None] = ContextVar("ledger_request_id", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str | None:
    return _request_id_ctx.get()


@contextmanager
def request_scope(rid: str | None = None) -> Iterator[str]:
    """Bind a correlation id for the duration of one tool call."""
    rid = rid or new_request_id()
    token = _request_id_ctx.set(rid)
    try:
        yield rid
    finally:
        _request_id_ctx.reset(token)


class RequestIdFilter(logging.Filter):
    """Expose the current correlation id as %(request_id)s in log formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True
