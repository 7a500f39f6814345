"""
audit.py

Append-only JSONL record of every pull decision, and the reader used by the
status command.
"""
import json
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .console import log_warn
from .decision import Decision, InterceptedRequest

ALLOWED = "ALLOWED"
DENIED = "DENIED"


def ensure_dirs(path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def audit(path: str, request: InterceptedRequest, decision: Decision) -> None:
    """Append a decision to the audit log. Write failures only warn."""
    record = {
        "timestamp": timestamp(),
        "event": ALLOWED if decision.allow else DENIED,
        "method": request.method,
        "uri": request.uri,
        "image": decision.image,
        "message": decision.reason or "",
        "digest": decision.digest,
    }
    try:
        ensure_dirs(path)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError as e:
        log_warn(f"Failed to write audit log: {e}")


def load_audit(path: str) -> List[Dict]:
    events: List[Dict] = []
    if not os.path.exists(path):
        return events
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                # skip malformed entries
                continue
    return events


def parse_time(ts: Optional[str]) -> datetime:
    try:
        if ts and ts.endswith("Z"):
            ts = ts[:-1]
        return datetime.fromisoformat(ts or "")
    except ValueError:
        return datetime.min
