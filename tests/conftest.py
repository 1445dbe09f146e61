from __future__ import annotations

import pytest

from ledger_config.settings import ProcessConfig
from ledger_mcp.forwarder import Forwarder
from ledger_mcp.http_client import HttpClient
from tests.helpers.fakes import FakeSession
from tests.helpers.mcp_runtime import build_test_env, stub_api


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep a developer's TEST_LEDGER_* environment out of unit tests."""
    for name in (
        "TEST_LEDGER_API_URL",
        "TEST_LEDGER_API_KEY",
        "TEST_LEDGER_PROJECT_ID",
        "TEST_LEDGER_API_PREFIX",
        "TEST_LEDGER_TIMEOUT",
        "TEST_LEDGER_TELEMETRY_DIR",
        "TEST_LEDGER_DISABLE_TELEMETRY",
        "TEST_REPORTER_API_URL",
        "TEST_REPORTER_API_KEY",
        "TEST_REPORTER_PROJECT_ID",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> ProcessConfig:
    return ProcessConfig(base_url="http://ledger.test", api_key="secret")


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def forwarder(config, fake_session) -> Forwarder:
    return Forwarder(config, HttpClient(session=fake_session))


@pytest.fixture
def stub():
    with stub_api() as api:
        yield api


@pytest.fixture
def ledger_env(tmp_path, stub) -> dict[str, str]:
    """Subprocess environment for the server (stdio transport) wired to the stub API.

    Tests open the session themselves so its task group starts and stops in the test's own task.
    """
    return build_test_env(
        tmp_path,
        extra={
            "TEST_LEDGER_API_URL": stub.base_url,
            "TEST_LEDGER_API_KEY": "secret",
            "TEST_LEDGER_PROJECT_ID": "42",
            "TEST_LEDGER_TIMEOUT": "1",
        },
    )