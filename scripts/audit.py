"""Signed audit trail for bulk provisioning runs.

Every finished user run appends one ``provision_user`` line to
``$AUDIT_LOG_DIR/provisioning-events.jsonl``, preceded by a
``compensate_user`` line when the account had to be deleted before a retry.
Lines are HMAC-SHA256 signed over their canonical JSON form when a signing
key is configured.

Usage:
    python scripts/audit.py    # verify every signature in the trail
"""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from app.core.provisioning_service import ProvisioningResult

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "provisioning-events.jsonl"
_default_secret_paths: list[Path] = [
    Path(".runtime/secrets/audit_log_signing_key"),
    Path("/run/secrets/audit_log_signing_key"),
]


def _get_signing_key() -> bytes:
    """Get the audit signing key (loaded lazily so tests can override the env)."""
    if "AUDIT_LOG_SIGNING_KEY" in os.environ:
        return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")
    for path in _default_secret_paths:
        if path.exists():
            try:
                return path.read_text(encoding="utf-8").strip().encode("utf-8")
            except OSError:
                continue
    return b""


def _signature(event: dict[str, Any], key: bytes) -> str:
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def result_events(result: ProvisioningResult, *, operator: str, realm: str) -> list[dict[str, Any]]:
    """Build the unsigned audit events describing one user run."""
    timestamp = datetime.datetime.now(datetime.timezone.utc).isoformat()
    base = {"timestamp": timestamp, "realm": realm, "user_code": result.user_code, "operator": operator}

    events = []
    if result.compensated:
        events.append({
            **base,
            "event_type": "compensate_user",
            "success": True,
            "details": {"deleted_before_retry": result.compensated},
        })
    events.append({
        **base,
        "event_type": "provision_user",
        "success": result.success,
        "details": result.to_dict(),
    })
    return events


def append_events(events: Iterable[dict[str, Any]]) -> None:
    """Sign and append events to the trail (dir 0700, file 0600)."""
    key = _get_signing_key()
    lines = []
    for event in events:
        if key:
            event = {**event, "signature": _signature(event, key)}
        lines.append(json.dumps(event, ensure_ascii=False))

    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.writelines(line + "\n" for line in lines)
    AUDIT_LOG_FILE.chmod(0o600)


def record_result(result: ProvisioningResult, *, operator: str, realm: str) -> bool:
    """Audit one user run without ever interrupting the batch.

    Returns:
        True if the events were written, False if writing failed
    """
    try:
        append_events(result_events(result, operator=operator, realm=realm))
        return True
    except (OSError, TypeError, ValueError) as e:
        print(f"[audit] Warning: could not record codUser {result.user_code}: {e}", file=sys.stderr)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Count the events in the trail and how many carry a valid signature."""
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    key = _get_signing_key()
    total = valid = 0
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in filter(str.strip, f):
            total += 1
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(event, dict):
                continue
            stored = event.pop("signature", "")
            if key and stored and hmac.compare_digest(stored, _signature(event, key)):
                valid += 1

    return total, valid


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
