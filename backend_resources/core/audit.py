"""Signed audit trail for user administration events.

One JSON object per line in AUDIT_LOG_FILE. When AUDIT_LOG_SIGNING_KEY is
set, each line carries an HMAC-SHA256 "signature" over the other fields so
edits to the file can be detected with verify_audit_log().
"""

from __future__ import annotations
import hashlib
import hmac
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Literal, Optional

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "user-events.jsonl"

logger = logging.getLogger(__name__)

EventType = Literal["create_user", "delete_user"]


def _signing_key() -> bytes:
    # Read on every call: load_settings() may export the key after import
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _signature(event: dict[str, Any]) -> Optional[str]:
    key = _signing_key()
    if not key:
        return None
    payload = json.dumps(event, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hmac.new(key, payload, hashlib.sha256).hexdigest()


def _append_line(record: dict[str, Any]) -> None:
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(record, ensure_ascii=False) + "\n")
    AUDIT_LOG_FILE.chmod(0o600)


def log_user_event(
    event_type: EventType,
    username: str,
    *,
    operator: str = "system",
    realm: str = "ITM",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append one event to the audit trail.

    Args:
        event_type: Operation performed
        username: User the operation targeted (id for deletes)
        operator: Principal username, or "cli" for the command-line tool
        realm: Keycloak realm the operation ran against
        details: Extra context such as the new user id or the error
        success: Whether the operation succeeded

    Raises:
        OSError: The audit file could not be written
    """
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "realm": realm,
        "username": username,
        "operator": operator,
        "success": success,
        "details": details or {},
    }
    signature = _signature(record)
    if signature:
        record["signature"] = signature
    _append_line(record)


def safe_log_user_event(event_type: EventType, username: str, **kwargs: Any) -> bool:
    """log_user_event that reports failure instead of raising.

    Returns:
        True once the event is on disk
    """
    try:
        log_user_event(event_type, username, **kwargs)
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Failed to write %s audit event for %s: %s", event_type, username, e)
        return False
    return True


def _iter_records() -> Iterator[Optional[dict[str, Any]]]:
    """Yield each non-blank line as a dict, or None if it is not valid JSON."""
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as handle:
        for line in handle:
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                yield None


def verify_audit_log() -> tuple[int, int]:
    """Count events and how many of them carry a valid signature.

    Returns:
        (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = valid = 0
    for record in _iter_records():
        total += 1
        if record is None:
            continue
        stored = record.pop("signature", None)
        expected = _signature(record)
        if stored and expected and hmac.compare_digest(stored, expected):
            valid += 1
    return total, valid


if __name__ == "__main__":
    import sys

    events, signed_ok = verify_audit_log()
    print(f"{AUDIT_LOG_FILE}: {signed_ok}/{events} events with valid signatures")
    sys.exit(0 if events == signed_ok else 1)
