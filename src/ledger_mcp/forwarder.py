from __future__ import annotations

import json
import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping

import requests
from urllib3.exceptions import ReadTimeoutError

from ledger_common.errors import ParseError, RemoteError, RequestTimeoutError
from ledger_config.settings import ProcessConfig
from ledger_mcp.http_client import HttpClient


logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


def _is_read_timeout(exc: BaseException) -> bool:
    return any(isinstance(x, ReadTimeoutError) for x in (*exc.args, exc.__cause__, exc.__context__))


def _abort_read(resp: requests.Response) -> None:
    """Shut down the socket under `resp` so a read blocked on it returns at once."""
    conn = getattr(resp.raw, "connection", None)
    sock = getattr(conn, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug("socket shutdown after deadline failed: %s", e)


def _query_value(value: Any) -> str:
    # Same text a JS client would send: true/false, 42, 0.5
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class ForwardResult:
    """Outcome of one forwarded call: either a payload or an error message."""

    ok: bool
    payload: Any = None
    error: str | None = None

    @classmethod
    def success(cls, payload: Any) -> "ForwardResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, error: BaseException | str) -> "ForwardResult":
        return cls(ok=False, error=str(error))


class Forwarder:
    """Turns one tool invocation into one authenticated GET against the analytics API."""

    def __init__(self, config: ProcessConfig, http: HttpClient | None = None) -> None:
        self.config = config
        self.http = http or HttpClient()

    def build_url(self, endpoint: str) -> str:
        base = self.config.require_base_url()
        return f"{base}{self.config.api_prefix}/{endpoint.lstrip('/')}"

    def build_params(self, arguments: Mapping[str, Any] | None) -> list[tuple[str, str]]:
        """Query parameters in argument order.

        `project_id` is the only key that gets a default; None values are dropped.
        The caller's mapping is left untouched.
        """
        params = dict(arguments or {})
        default_pid = self.config.default_project_id
        if default_pid and not params.get("project_id"):
            params["project_id"] = default_pid
        return [(k, _query_value(v)) for k, v in params.items() if v is not None]

    def headers(self) -> dict[str, str]:
        # Sent even when the key is empty; the API answers 401 in that case.
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def forward(self, endpoint: str, arguments: Mapping[str, Any] | None = None) -> Any:
        """GET `endpoint` with `arguments` as query string and return the decoded JSON.

        The timeout is a deadline for the whole call, body included.
        Raises ConfigurationError, RequestTimeoutError, RemoteError or ParseError.
        """
        url = self.build_url(endpoint)
        params = self.build_params(arguments)
        timeout_s = self.config.timeout_s
        deadline = time.monotonic() + timeout_s

        try:
            resp = self.http.get(url, headers=self.headers(), params=params, timeout=timeout_s, stream=True)
        except requests.Timeout as e:
            raise RequestTimeoutError(timeout_s) from e

        try:
            body = self._read_body(resp, deadline)
        finally:
            resp.close()

        if not 200 <= resp.status_code < 300:
            raise RemoteError(resp.status_code, body.decode(resp.encoding or "utf-8", errors="replace"))

        try:
            return json.loads(body)
        except ValueError as e:
            raise ParseError(f"Invalid JSON in API response from {endpoint}: {e}") from e

    def _read_body(self, resp: requests.Response, deadline: float) -> bytes:
        expired = threading.Event()

        def on_deadline() -> None:
            expired.set()
            _abort_read(resp)

        watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), on_deadline)
        watchdog.daemon = True
        watchdog.start()
        chunks: list[bytes] = []
        try:
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                chunks.append(chunk)
                if expired.is_set() or time.monotonic() > deadline:
                    raise RequestTimeoutError(self.config.timeout_s)
        except requests.RequestException as e:
            # a stalled read surfaces as ConnectionError(ReadTimeoutError);
            # an aborted one as whatever urllib3 makes of the cut connection
            if expired.is_set() or _is_read_timeout(e):
                raise RequestTimeoutError(self.config.timeout_s) from e
            raise
        finally:
            watchdog.cancel()
        if expired.is_set() or time.monotonic() > deadline:
            raise RequestTimeoutError(self.config.timeout_s)
        return b"".join(chunks)

    def try_forward(self, endpoint: str, arguments: Mapping[str, Any] | None = None) -> ForwardResult:
        """Like forward(), but every per-call failure comes back as a ForwardResult."""
        try:
            return ForwardResult.success(self.forward(endpoint, arguments))
        except Exception as e:
            logger.debug("forward %s failed", endpoint, exc_info=True)
            return ForwardResult.failure(e)
