"""
signed_store.utils
------------------
Small helpers shared by the keyring, message and store layers: base64,
timestamps, canonical JSON and human-readable durations.
"""

from __future__ import annotations
import base64, binascii, json, re, time
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    # validate=True so stray characters fail instead of being silently dropped
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64: {e}") from e

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def parse_ts(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC3339 UTC timestamp produced by now_ts(); None passes through."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON for signing
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")


# --------- Durations ----------
_DURATION_UNITS = {
    "ns": 1e-9, "nsec": 1e-9,
    "us": 1e-6, "usec": 1e-6,
    "ms": 1e-3, "msec": 1e-3,
    "s": 1.0, "sec": 1.0, "secs": 1.0, "second": 1.0, "seconds": 1.0,
    "m": 60.0, "min": 60.0, "mins": 60.0, "minute": 60.0, "minutes": 60.0,
    "h": 3600.0, "hr": 3600.0, "hrs": 3600.0, "hour": 3600.0, "hours": 3600.0,
    "d": 86400.0, "day": 86400.0, "days": 86400.0,
    "w": 604800.0, "week": 604800.0, "weeks": 604800.0,
    "M": 2630016.0, "month": 2630016.0, "months": 2630016.0,  # 30.44 days
    "y": 31557600.0, "year": 31557600.0, "years": 31557600.0,  # 365.25 days
}
_DURATION_TERM = re.compile(r"\s*(\d+)\s*([A-Za-z]+)")


def parse_duration(text: str) -> float:
    """
    Parse a human-readable duration such as "1d", "2h30m" or "90 sec".

    Returns the duration in seconds. Raises ValueError on anything that is not
    a sequence of <integer><unit> terms.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("empty duration")

    total = 0.0
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        m = _DURATION_TERM.match(stripped, pos)
        if not m:
            raise ValueError(f"invalid duration: {text!r}")
        value, unit = m.groups()
        factor = _DURATION_UNITS.get(unit)
        if factor is None:
            raise ValueError(f"unknown time unit {unit!r} in duration {text!r}")
        total += int(value) * factor
        pos = m.end()
    return total
