"""
signed_store.crypto
-------------------
Ed25519 primitives used by the keyring and the signed message format:

- key generation, signing and verification over raw 32-byte keys
- stable public key fingerprints (used as signer identities)
"""

from __future__ import annotations
from typing import Tuple
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519
import hashlib

PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = 32


# --------- Ed25519 (sign/verify) ----------
def ed25519_generate() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    pk = sk.public_key()
    return sk.private_bytes_raw(), pk.public_bytes_raw()

def ed25519_public_from_private(priv_raw: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.public_key().public_bytes_raw()

def ed25519_sign(priv_raw: bytes, data: bytes) -> bytes:
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(priv_raw)
    return sk.sign(data)

def ed25519_verify(pub_raw: bytes, sig: bytes, data: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(pub_raw).verify(sig, data)
        return True
    except (InvalidSignature, ValueError):
        return False

def load_public_key(pub_raw: bytes) -> ed25519.Ed25519PublicKey:
    """Raises ValueError when pub_raw is not a valid raw Ed25519 public key."""
    if len(pub_raw) != PUBLIC_KEY_SIZE:
        raise ValueError(f"Ed25519 public key must be {PUBLIC_KEY_SIZE} bytes, got {len(pub_raw)}")
    return ed25519.Ed25519PublicKey.from_public_bytes(pub_raw)


def compute_pubkey_fingerprint(pub_raw: bytes) -> str:
    """
    Compute a stable fingerprint for an Ed25519 public key.

    - Input: raw 32-byte Ed25519 public key
    - Output: hex-encoded SHA256 hash (truncated to 32 chars for readability)

    The fingerprint is the identity a signature names when it claims a signer.
    """

    digest = hashlib.sha256(pub_raw).hexdigest()

    # 16 bytes = 32 hex chars
    return digest[:32]
