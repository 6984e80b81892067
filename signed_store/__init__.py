"""
Signed Store Package
====================
A small object store that only accepts writes carrying a valid signature
from a pre-registered keyring, and forgets objects nobody has read for a while.

Provides:
- Trusted keyring loading and Ed25519 signature verification
- Signed message encoding (literal + signature layers)
- Content store with deterministic key addressing and idle-time expiry
- Background reaper, HTTP service, client and CLI
"""

from signed_store.errors import (
    SignedStoreError,
    KeyLoadError,
    VerificationError,
    ObjectNotFoundError,
    StorageError,
)
from signed_store.keyring import Identity, TrustedKeyring
from signed_store.verifier import VerificationGate
from signed_store.storage import ContentStore, key_to_identity
from signed_store.reaper import Reaper

__version__ = "0.1.0"

__all__ = [
    "SignedStoreError",
    "KeyLoadError",
    "VerificationError",
    "ObjectNotFoundError",
    "StorageError",
    "Identity",
    "TrustedKeyring",
    "VerificationGate",
    "ContentStore",
    "key_to_identity",
    "Reaper",
]
