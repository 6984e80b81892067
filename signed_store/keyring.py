"""
signed_store.keyring
--------------------
The trusted keyring: the set of signer identities whose signatures unlock
writes. It is loaded once at startup and shared read-only by every request
and by the reaper.

Blob format (UTF-8 JSON), either a bare list of records or {"keys": [...]}:

    {"pubkey_b64": "...", "user_ids": ["ops <ops@example.org>"],
     "status": "trusted", "expires_at": null, "fingerprint": "..."}

Only pubkey_b64 is required. A fingerprint, when present, must match the one
computed from the key.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple
import json

from signed_store.constants import KEY_STATUS_REVOKED, KEY_STATUS_TRUSTED
from signed_store.crypto import (
    PRIVATE_KEY_SIZE,
    compute_pubkey_fingerprint,
    ed25519_public_from_private,
    load_public_key,
)
from signed_store.errors import KeyLoadError
from signed_store.logger import get_logger
from signed_store.utils import b64d, b64e, parse_ts

log = get_logger("signed_store.keyring")

_STATUSES = (KEY_STATUS_TRUSTED, KEY_STATUS_REVOKED)


@dataclass(frozen=True)
class Identity:
    """One trusted signer."""
    fingerprint: str
    public_key: bytes
    user_ids: Tuple[str, ...] = ()
    status: str = KEY_STATUS_TRUSTED   # trusted | revoked
    expires_at: Optional[str] = None

    @property
    def revoked(self) -> bool:
        return self.status == KEY_STATUS_REVOKED

    def is_expired(self, at: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        at = at or datetime.now(timezone.utc)
        return parse_ts(self.expires_at) <= at

    def to_record(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "pubkey_b64": b64e(self.public_key),
            "user_ids": list(self.user_ids),
            "status": self.status,
            "expires_at": self.expires_at,
        }


@dataclass(frozen=True)
class TrustedKeyring:
    """Immutable fingerprint -> Identity lookup."""
    identities: Tuple[Identity, ...]
    _by_fpr: Mapping[str, Identity] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        by_fpr = {}
        for ident in self.identities:
            by_fpr.setdefault(ident.fingerprint, ident)
        object.__setattr__(self, "_by_fpr", MappingProxyType(by_fpr))

    def get(self, fingerprint: str) -> Optional[Identity]:
        return self._by_fpr.get(fingerprint)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._by_fpr

    def __iter__(self) -> Iterator[Identity]:
        return iter(self.identities)

    def __len__(self) -> int:
        return len(self.identities)

    def fingerprints(self) -> Tuple[str, ...]:
        return tuple(i.fingerprint for i in self.identities)

    def to_json(self) -> str:
        return json.dumps({"keys": [i.to_record() for i in self.identities]}, indent=2)


def _parse_record(rec: Any, index: int) -> Identity:
    if not isinstance(rec, dict):
        raise KeyLoadError(f"key record #{index} must be an object")

    pubkey_b64 = rec.get("pubkey_b64")
    if not isinstance(pubkey_b64, str):
        raise KeyLoadError(f"key record #{index} has no pubkey_b64")
    try:
        pub_raw = b64d(pubkey_b64)
        load_public_key(pub_raw)
    except ValueError as e:
        raise KeyLoadError(f"key record #{index}: bad public key: {e}") from e

    fpr = compute_pubkey_fingerprint(pub_raw)
    declared = rec.get("fingerprint")
    if declared is not None and (not isinstance(declared, str) or declared.lower() != fpr):
        raise KeyLoadError(f"key record #{index}: fingerprint {declared} does not match key ({fpr})")

    user_ids = rec.get("user_ids", [])
    if not isinstance(user_ids, list) or not all(isinstance(u, str) for u in user_ids):
        raise KeyLoadError(f"key record #{index}: user_ids must be a list of strings")

    status = rec.get("status", KEY_STATUS_TRUSTED)
    if status not in _STATUSES:
        raise KeyLoadError(f"key record #{index}: unknown status {status!r}")

    expires_at = rec.get("expires_at")
    try:
        parse_ts(expires_at)
    except ValueError as e:
        raise KeyLoadError(f"key record #{index}: bad expires_at: {e}") from e

    return Identity(
        fingerprint=fpr,
        public_key=pub_raw,
        user_ids=tuple(user_ids),
        status=status,
        expires_at=expires_at,
    )


def load_keyring(blob: bytes) -> TrustedKeyring:
    """
    Parse a keyring blob into a TrustedKeyring.

    Raises KeyLoadError when the blob is not valid JSON, a record is invalid,
    or no identity is found.
    """
    try:
        doc = json.loads(blob.decode("utf-8") if isinstance(blob, (bytes, bytearray)) else blob)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise KeyLoadError(f"keyring is not valid JSON: {e}") from e

    records = doc.get("keys") if isinstance(doc, dict) else doc
    if not isinstance(records, list):
        raise KeyLoadError("keyring must be a list of key records or {\"keys\": [...]}")

    identities = []
    seen = set()
    for i, rec in enumerate(records):
        ident = _parse_record(rec, i)
        if ident.fingerprint in seen:
            log.warning(f"[KEYRING] duplicate key {ident.fingerprint} ignored")
            continue
        seen.add(ident.fingerprint)
        identities.append(ident)

    if not identities:
        raise KeyLoadError("keyring contains no keys")

    return TrustedKeyring(identities=tuple(identities))


def load_keyring_file(path) -> TrustedKeyring:
    try:
        with open(path, "rb") as f:
            blob = f.read()
    except OSError as e:
        raise KeyLoadError(f"cannot read keyring {path}: {e}") from e
    return load_keyring(blob)


# ------------------------------------------------------------------
# Signer-side key material
# ------------------------------------------------------------------
def identity_from_public_key(pub_raw: bytes, user_ids=(), status: str = KEY_STATUS_TRUSTED,
                             expires_at: Optional[str] = None) -> Identity:
    load_public_key(pub_raw)
    return Identity(
        fingerprint=compute_pubkey_fingerprint(pub_raw),
        public_key=pub_raw,
        user_ids=tuple(user_ids),
        status=status,
        expires_at=expires_at,
    )


def secret_key_document(priv_raw: bytes, user_ids=()) -> Dict[str, Any]:
    pub_raw = ed25519_public_from_private(priv_raw)
    return {
        "fingerprint": compute_pubkey_fingerprint(pub_raw),
        "private_key_b64": b64e(priv_raw),
        "pubkey_b64": b64e(pub_raw),
        "user_ids": list(user_ids),
    }


def read_secret_key(path) -> bytes:
    """Load the raw Ed25519 private key from a file written by `signed-store keygen`."""
    try:
        with open(path, "rb") as f:
            doc = json.loads(f.read())
        priv_raw = b64d(doc["private_key_b64"])
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise KeyLoadError(f"cannot read secret key {path}: {e}") from e
    if len(priv_raw) != PRIVATE_KEY_SIZE:
        raise KeyLoadError(f"secret key {path} must hold {PRIVATE_KEY_SIZE} bytes, got {len(priv_raw)}")
    return priv_raw
