from __future__ import annotations

import datetime as _dt
import json
import logging
import os
from pathlib import Path
from typing import Any

from ledger_common.errors import REDACT_TOKEN
from ledger_config.settings import telemetry_dir

logger = logging.getLogger(__name__)

TELEMETRY_FILE = "mcp-telemetry.jsonl"

_SECRET_KEYS = {"authorization", "auth_bearer", "access_token", "token", "api_key", "apikey"}


def _disabled() -> bool:
    return os.getenv("TEST_LEDGER_DISABLE_TELEMETRY", "0").strip().lower() in {"1", "true", "yes"}


def _redact_secrets(obj: Any) -> Any:
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.strip().lower() in _SECRET_KEYS:
                if isinstance(v, str) and v.strip().lower().startswith("bearer "):
                    out[k] = "Bearer " + REDACT_TOKEN
                else:
                    out[k] = REDACT_TOKEN
            else:
                out[k] = _redact_secrets(v)
        return out
    if isinstance(obj, list):
        return [_redact_secrets(x) for x in obj]
    return obj


def _telemetry_path() -> Path | None:
    d = telemetry_dir()
    if d is None or _disabled():
        return None
    return d / TELEMETRY_FILE


def log_event(
    kind: str,
    name: str,
    args: dict | None = None,
    ok: bool = True,
    ms: int = 0,
    *,
    corr_id: str | None = None,
    error: str | None = None,
) -> None:
    """
    Append one JSONL telemetry record for a tool call.

    No-op unless TEST_LEDGER_TELEMETRY_DIR is set. Write failures are logged,
    never raised: a full disk must not fail a tool call.
    """
    p = _telemetry_path()
    if p is None:
        return

    rec = {
        "ts": _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "name": name,
        "corr_id": corr_id,
        "args": {} if args is None else dict(args),
        "ok": bool(ok),
        "ms": int(ms),
    }
    if error:
        rec["error"] = error

    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("a", encoding="utf-8") as f:
            f.write(json.dumps(_redact_secrets(rec), ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        logger.warning("Could not write telemetry to %s: %s", p, e)


def telemetry_recent(n: int = 50) -> dict:
    """
    Return last N telemetry records (bounded) with secrets redacted.
    """
    p = _telemetry_path()
    if p is None or not p.exists():
        return {"records": []}

    try:
        n_int = int(n)
    except (TypeError, ValueError):
        n_int = 50
    n_int = max(1, min(n_int, 200))

    lines = p.read_text(encoding="utf-8").splitlines()

    out = []
    for line in lines[-n_int:]:
        try:
            rec = json.loads(line)
        except json.JSONDecodeError:
            continue
        # redact again on read; the file may predate a key being added to _SECRET_KEYS
        out.append(_redact_secrets(rec))

    return {"records": out}
