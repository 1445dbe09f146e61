import json

from ledger_common import telemetry as t


def test_log_event_is_noop_without_dir(tmp_path):
    t.log_event("tool", "get_flaky_tests", {"args": {}}, ok=True, ms=1)
    assert t.telemetry_recent() == {"records": []}
    assert list(tmp_path.iterdir()) == []


def test_log_event_writes_redacted_jsonl(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_LEDGER_TELEMETRY_DIR", str(tmp_path / "tel"))

    t.log_event(
        "tool",
        "get_test_history",
        {"args": {"spec_file": "a.spec.js", "api_key": "secret", "Authorization": "Bearer abc"}},
        ok=False,
        ms=12,
        corr_id="cid-1",
        error="Error: API error 401: unauthorized",
    )

    line = (tmp_path / "tel" / t.TELEMETRY_FILE).read_text(encoding="utf-8").strip()
    rec = json.loads(line)
    assert rec["name"] == "get_test_history"
    assert rec["ok"] is False
    assert rec["ms"] == 12
    assert rec["corr_id"] == "cid-1"
    assert rec["error"].startswith("Error: API error 401")
    assert rec["args"]["args"]["spec_file"] == "a.spec.js"
    assert rec["args"]["args"]["api_key"] == "***redacted***"
    assert rec["args"]["args"]["Authorization"] == "Bearer ***redacted***"


def test_disable_flag_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_LEDGER_TELEMETRY_DIR", str(tmp_path))
    monkeypatch.setenv("TEST_LEDGER_DISABLE_TELEMETRY", "1")
    t.log_event("tool", "x")
    assert not (tmp_path / t.TELEMETRY_FILE).exists()


def test_telemetry_recent_bounds_and_redacts(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_LEDGER_TELEMETRY_DIR", str(tmp_path))
    p = tmp_path / t.TELEMETRY_FILE
    lines = [json.dumps({"name": f"t{i}", "args": {"token": "leak"}}) for i in range(5)]
    lines.insert(2, "not json")
    p.write_text("\n".join(lines) + "\n", encoding="utf-8")

    out = t.telemetry_recent(n=3)["records"]
    assert [r["name"] for r in out] == ["t2", "t3", "t4"]
    assert all(r["args"]["token"] == "***redacted***" for r in out)

    assert len(t.telemetry_recent(n=0)["records"]) == 1
    assert len(t.telemetry_recent(n="bogus")["records"]) == 5
