"""
Lightweight shared HTTP client.

Goals:
- One `requests.Session` per process (connection pooling across tool calls).
- No retries: a failed upstream call is reported to the caller as-is.
- Non-2xx responses are returned, not raised, so callers can read the body.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import requests
from requests import Response
from requests.adapters import HTTPAdapter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpClientConfig:
    user_agent: str = field(
        default_factory=lambda: os.getenv("TEST_LEDGER_HTTP_USER_AGENT", "test-ledger-mcp/1.0")
    )
    pool_size: int = 10


class HttpClient:
    """A small wrapper around `requests.Session`."""

    def __init__(self, *, config: HttpClientConfig | None = None, session: requests.Session | None = None) -> None:
        self.config = config or HttpClientConfig()
        self.session = session or requests.Session()
        self._configure_session(self.session, self.config)

    @staticmethod
    def _configure_session(session: requests.Session, config: HttpClientConfig) -> None:
        session.headers.setdefault("User-Agent", config.user_agent)

        # max_retries=0: the analytics API is called exactly once per tool call.
        adapter = HTTPAdapter(max_retries=0, pool_connections=config.pool_size, pool_maxsize=config.pool_size)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

    def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Sequence[tuple[str, str]] | Mapping[str, Any] | None = None,
        timeout: float | tuple[float, float] | None = None,
        stream: bool = False,
    ) -> Response:
        """Perform a GET. Transport failures raise; HTTP error statuses do not.

        With stream=True only the headers are read; the caller owns the body and must close the response.
        """
        t0 = time.perf_counter()
        try:
            resp = self.session.get(
                url,
                headers=dict(headers) if headers else None,
                params=params,
                timeout=timeout,
                stream=stream,
            )
        except requests.RequestException as e:
            ms = int((time.perf_counter() - t0) * 1000)
            logger.warning("HTTP GET %s failed (ms=%s): %s", url, ms, e)
            raise

        ms = int((time.perf_counter() - t0) * 1000)
        logger.debug("HTTP GET %s -> %s (ms=%s)", url, resp.status_code, ms)
        return resp
