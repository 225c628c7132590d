"""Unit tests for the user-event audit trail."""

import json
import tempfile
from pathlib import Path

import pytest

from zeus.core import audit

USERS_URL = "/v1/api/users"


@pytest.fixture
def temp_audit_dir(monkeypatch):
    """Provide isolated audit directory for each test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        audit_dir = Path(tmpdir) / "audit"
        audit_file = audit_dir / "user-events.jsonl"

        monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
        monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_file)
        monkeypatch.setattr(audit, "_configured_signing_key", None)

        # Set signing key for tests (loaded by _get_signing_key() from environment)
        monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")

        yield audit_dir, audit_file


def _read_events(audit_file):
    with audit_file.open("r") as f:
        return [json.loads(line) for line in f if line.strip()]


def test_log_user_event_creates_file(temp_audit_dir):
    """Test that logging creates the audit file."""
    _, audit_file = temp_audit_dir

    assert not audit_file.exists()

    audit.log_user_event("user_create", "4", operator="admin", details={"username": "dave"})

    assert audit_file.exists()
    assert audit_file.stat().st_mode & 0o777 == 0o600  # Check file permissions


def test_logged_event_fields(temp_audit_dir):
    _, audit_file = temp_audit_dir

    audit.log_user_event(
        "user_move_department",
        "1,2",
        operator="ops-bot",
        details={"department": "eng", "count": 2},
        success=False,
        correlation_id="req-9",
    )

    event = _read_events(audit_file)[0]
    assert event["event_type"] == "user_move_department"
    assert event["target"] == "1,2"
    assert event["operator"] == "ops-bot"
    assert event["success"] is False
    assert event["correlation_id"] == "req-9"
    assert "timestamp" in event
    assert "signature" in event


def test_password_material_is_redacted(temp_audit_dir):
    _, audit_file = temp_audit_dir

    audit.log_user_event("user_password", "1", details={"password": "Passw0rd1", "password_hash": "x", "ok": 1})

    raw = audit_file.read_text()
    assert "Passw0rd1" not in raw
    assert _read_events(audit_file)[0]["details"] == {"ok": 1}


def test_verify_audit_log_detects_tampering(temp_audit_dir):
    _, audit_file = temp_audit_dir

    for target in ("1", "2", "3"):
        audit.log_user_event("user_delete", target)

    assert audit.verify_audit_log() == (3, 3)

    lines = audit_file.read_text().splitlines()
    tampered = json.loads(lines[1])
    tampered["target"] = "99"
    lines[1] = json.dumps(tampered)
    audit_file.write_text("\n".join(lines) + "\n")

    assert audit.verify_audit_log() == (3, 2)


def test_unsigned_events_without_key(temp_audit_dir, monkeypatch):
    _, audit_file = temp_audit_dir
    monkeypatch.delenv("AUDIT_LOG_SIGNING_KEY", raising=False)

    audit.log_user_event("user_edit", "5")

    assert "signature" not in _read_events(audit_file)[0]
    assert audit.verify_audit_log() == (1, 0)


def test_configured_key_wins_over_environment(temp_audit_dir):
    audit_dir, _ = temp_audit_dir
    audit.configure_audit(audit_dir, "configured-key")

    audit.log_user_event("user_edit", "5")

    assert audit.verify_audit_log() == (1, 1)
    audit.configure_audit(audit_dir, "another-key")
    assert audit.verify_audit_log() == (1, 0)


def test_verify_missing_log(temp_audit_dir):
    assert audit.verify_audit_log() == (0, 0)


def test_safe_log_never_raises(temp_audit_dir, monkeypatch):
    def _fail():
        raise OSError("read-only filesystem")

    monkeypatch.setattr(audit, "_ensure_audit_dir", _fail)

    assert audit.safe_log_user_event("user_create", "4") is False


def test_api_mutations_are_audited(client, app_config):
    audit_file = Path(app_config.audit_log_dir) / "user-events.jsonl"

    client.post(
        USERS_URL,
        json={"username": "dave", "password": "Passw0rd1", "department": "eng"},
        headers={"X-Operator": "ops-bot", "X-Correlation-Id": "req-42"},
    )
    client.put(f"{USERS_URL}/1/password", json={"password": "Secr3tPass"})
    client.delete(f"{USERS_URL}/999")

    events = _read_events(audit_file)
    assert [event["event_type"] for event in events] == ["user_create", "user_password", "user_delete"]
    assert events[0]["operator"] == "ops-bot"
    assert events[0]["correlation_id"] == "req-42"
    assert events[0]["target"] == "4"
    assert events[1]["operator"] == "api"
    assert events[2]["success"] is False
    raw = audit_file.read_text()
    assert "Passw0rd1" not in raw
    assert "Secr3tPass" not in raw
    assert audit.verify_audit_log() == (3, 3)


def test_rejected_requests_are_not_audited(client, app_config):
    audit_file = Path(app_config.audit_log_dir) / "user-events.jsonl"

    client.post(USERS_URL, json={"username": "dave"})

    assert not audit_file.exists()


def test_verify_reports_rejected_lines(temp_audit_dir, caplog):
    _, audit_file = temp_audit_dir
    audit.log_user_event("user_edit", "1")
    with audit_file.open("a", encoding="utf-8") as f:
        f.write("{not json\n")
        f.write(json.dumps({"event_type": "user_edit", "target": "2", "signature": 123}) + "\n")
    audit.log_user_event("user_edit", "3")

    with caplog.at_level("WARNING", logger="zeus.core.audit"):
        assert audit.verify_audit_log() == (4, 2)

    assert "lines 2, 3" in caplog.text


def test_verify_explicit_log_file(temp_audit_dir, tmp_path):
    _, audit_file = temp_audit_dir
    audit.log_user_event("user_delete", "8")
    copied = tmp_path / "archived.jsonl"
    copied.write_text(audit_file.read_text())

    assert audit.verify_audit_log(copied) == (1, 1)
    assert audit.verify_audit_log(tmp_path / "missing.jsonl") == (0, 0)
