"""Audit logging for user mutations.

Each event is one JSON line, signed with HMAC-SHA256 when a signing key is
configured. Password material is never written to the trail.
"""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "user-events.jsonl"
_configured_signing_key: Optional[str] = None

EventType = Literal[
    "user_create", "user_edit", "user_status", "user_password",
    "user_delete", "user_move_department",
]

# Keys stripped from details before writing
_REDACTED_KEYS = {"password", "password_hash"}


def configure_audit(log_dir: str | Path, signing_key: Optional[str] = None) -> None:
    """Point the audit trail at ``log_dir`` and set the signing key."""
    global AUDIT_LOG_DIR, AUDIT_LOG_FILE, _configured_signing_key
    AUDIT_LOG_DIR = Path(log_dir)
    AUDIT_LOG_FILE = AUDIT_LOG_DIR / "user-events.jsonl"
    _configured_signing_key = signing_key or None


def _get_signing_key() -> bytes:
    """Configured key first, then AUDIT_LOG_SIGNING_KEY; empty means unsigned."""
    if _configured_signing_key:
        return _configured_signing_key.encode("utf-8")
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"), default=str)
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def _redact(details: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in details.items() if key not in _REDACTED_KEYS}


def log_user_event(
    event_type: EventType,
    target: str,
    *,
    operator: str = "api",
    details: dict[str, Any] | None = None,
    success: bool = True,
    correlation_id: str | None = None,
) -> None:
    """Append a user event to the audit trail with timestamp and signature.

    Args:
        event_type: Operation performed (user_create, user_delete, ...)
        target: Affected user id(s), as text
        operator: Who performed the operation
        details: Additional context (changed fields, department, ...)
        success: Whether the operation succeeded
        correlation_id: Request correlation id, when the caller sent one
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "target": target,
        "operator": operator,
        "success": success,
        "details": _redact(details or {}),
    }
    if correlation_id:
        event["correlation_id"] = correlation_id

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # Append to JSONL file (one JSON object per line)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_user_event(
    event_type: EventType,
    target: str,
    *,
    operator: str = "api",
    details: dict[str, Any] | None = None,
    success: bool = True,
    correlation_id: str | None = None,
) -> bool:
    """Log a user event, never raising.

    Audit failures must not turn a completed mutation into an error response,
    so problems are logged and reported through the return value.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_user_event(
            event_type,
            target,
            operator=operator,
            details=details,
            success=success,
            correlation_id=correlation_id,
        )
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("[audit] Failed to log %s event for %s: %s", event_type, target, e)
        return False


def _signature_matches(line: str) -> bool:
    """True when a JSONL user event carries a signature that recomputes."""
    try:
        event = json.loads(line)
    except json.JSONDecodeError:
        return False
    if not isinstance(event, dict):
        return False
    stored = event.pop("signature", "")
    return isinstance(stored, str) and bool(stored) and hmac.compare_digest(stored, _sign_event(event))


def verify_audit_log(log_file: Optional[Path] = None) -> tuple[int, int]:
    """Recompute the signature of every user event in the trail.

    Unsigned, unparsable or tampered lines count towards the total but not as
    valid; their line numbers are logged at WARNING.

    Args:
        log_file: Trail to check; defaults to the configured user-events file

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    path = Path(log_file) if log_file else AUDIT_LOG_FILE
    if not path.exists():
        return 0, 0

    with path.open("r", encoding="utf-8") as f:
        lines = [(number, line) for number, line in enumerate(f, start=1) if line.strip()]

    rejected = [number for number, line in lines if not _signature_matches(line)]
    if rejected:
        logger.warning("[audit] %d user event(s) in %s failed verification: lines %s",
                       len(rejected), path, ", ".join(str(number) for number in rejected))
    return len(lines), len(lines) - len(rejected)


if __name__ == "__main__":
    import sys
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    total, valid = verify_audit_log(target)
    print(f"User audit trail: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
