from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from ledger_common.context import RequestIdFilter
from ledger_common.errors import ConfigurationError


# 25s keeps us under the 30s hard limit of the gateway in front of the API.
DEFAULT_TIMEOUT_S = 25.0


def _find_repo_root(start: Path) -> Optional[Path]:
    """
    Walk upward until we find pyproject.toml or .git.
    """
    start = start.resolve()
    for p in (start, *start.parents):
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return None


@lru_cache(maxsize=1)
def repo_root() -> Path:
    """Best-effort repository root discovery.

    Order of precedence:
      1) TEST_LEDGER_REPO_ROOT (explicit override)
      2) walk upward from current working directory
      3) walk upward from this module file's directory
    """
    explicit = os.getenv("TEST_LEDGER_REPO_ROOT")
    if explicit:
        p = Path(explicit).expanduser().resolve()
        if not p.is_dir():
            raise RuntimeError(f"TEST_LEDGER_REPO_ROOT does not exist or is not a directory: {p}")
        return p

    cwd = Path.cwd().resolve()
    root = _find_repo_root(cwd)
    if root:
        return root

    here_dir = Path(__file__).resolve().parent
    root = _find_repo_root(here_dir)
    if root:
        return root

    return cwd


@lru_cache(maxsize=1)
def load_env_once() -> Optional[Path]:
    """
    Load dotenv exactly once. Precedence:
      1) TEST_LEDGER_ENV_FILE (explicit path)
      2) repo-root/.env
      3) repo-root/config/.env
    """
    explicit = os.getenv("TEST_LEDGER_ENV_FILE")
    candidates = []

    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(repo_root() / ".env")
    candidates.append(repo_root() / "config" / ".env")

    for p in candidates:
        p = p.resolve()
        if p.is_file():
            # Do NOT override already-set environment variables
            load_dotenv(dotenv_path=str(p), override=False)
            return p

    return None


def telemetry_dir() -> Optional[Path]:
    """
    Telemetry dir from TEST_LEDGER_TELEMETRY_DIR. Telemetry is off when unset.
    """
    p = os.getenv("TEST_LEDGER_TELEMETRY_DIR")
    if p:
        return Path(p).expanduser().resolve()
    return None


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        v = (env.get(name) or "").strip()
        if v:
            return v
    return None


def _normalize_prefix(prefix: Optional[str]) -> str:
    p = (prefix or "").strip().strip("/")
    return f"/{p}" if p else ""


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None:
        return DEFAULT_TIMEOUT_S
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_S
    return value if value > 0 else DEFAULT_TIMEOUT_S


@dataclass(frozen=True)
class ProcessConfig:
    """Process-wide settings, read once at startup and passed to the forwarder."""

    base_url: Optional[str] = None
    api_key: str = ""
    default_project_id: Optional[str] = None
    # "" for backends serving /tests/..., "/api" for /api/tests/...
    api_prefix: str = ""
    timeout_s: float = DEFAULT_TIMEOUT_S

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ProcessConfig":
        """Build the config from environment variables.

        The TEST_REPORTER_* names are accepted for deployments that still use them.
        """
        env = os.environ if env is None else env
        return cls(
            base_url=_first(env, "TEST_LEDGER_API_URL", "TEST_REPORTER_API_URL"),
            api_key=_first(env, "TEST_LEDGER_API_KEY", "TEST_REPORTER_API_KEY") or "",
            default_project_id=_first(env, "TEST_LEDGER_PROJECT_ID", "TEST_REPORTER_PROJECT_ID"),
            api_prefix=_normalize_prefix(env.get("TEST_LEDGER_API_PREFIX")),
            timeout_s=_parse_timeout(_first(env, "TEST_LEDGER_TIMEOUT")),
        )

    def with_overrides(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        default_project_id: Optional[str] = None,
        api_prefix: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ) -> "ProcessConfig":
        """Return a copy with every non-None override applied (CLI flags)."""
        changes: dict = {}
        if base_url is not None:
            changes["base_url"] = base_url.strip() or None
        if api_key is not None:
            changes["api_key"] = api_key
        if default_project_id is not None:
            changes["default_project_id"] = str(default_project_id).strip() or None
        if api_prefix is not None:
            changes["api_prefix"] = _normalize_prefix(api_prefix)
        if timeout_s is not None:
            changes["timeout_s"] = timeout_s if timeout_s > 0 else DEFAULT_TIMEOUT_S
        return replace(self, **changes)

    def require_base_url(self) -> str:
        if not self.base_url:
            raise ConfigurationError(
                "TEST_LEDGER_API_URL is not set; configure the analytics API base URL"
            )
        parsed = urlparse(self.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigurationError(f"Invalid API base URL: {self.base_url!r}")
        return self.base_url.rstrip("/")


@lru_cache(maxsize=1)
def load_process_config() -> ProcessConfig:
    return ProcessConfig.from_env()


def configure_logging(level_name: str | None = None) -> None:
    """
    Configure logging explicitly. No import-time side effects.
    Idempotent: if logging is already configured, do nothing.

    Logs go to stderr: stdout is the MCP stdio transport.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level_name or os.getenv("TEST_LEDGER_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = os.getenv(
        "TEST_LEDGER_LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s",
    )

    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)
    for handler in root.handlers:
        handler.addFilter(RequestIdFilter())


def init_runtime(*, configure_logs: bool = True, load_env: bool = True, log_level: str | None = None) -> None:
    """
    Call this from entrypoints only (servers, scripts).
    """
    if load_env:
        load_env_once()
    if configure_logs:
        configure_logging(log_level)
