"""
signed_store.verifier
---------------------
The verification gate in front of every write.

Policy: decode the layer chain, find the first signature layer and judge its
first signature. A good signature from a keyring identity accepts the message
at once; anything else rejects it. Later signatures and outer/inner layers are
not consulted, so one trusted co-signer is enough.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Callable, Optional

from signed_store.crypto import ed25519_verify
from signed_store.errors import (
    BadSignatureError,
    ExpiredSignatureError,
    MalformedMessageError,
    NoSignatureError,
    RevokedKeyError,
    UnknownSignerError,
)
from signed_store.keyring import Identity, TrustedKeyring
from signed_store.logger import get_logger
from signed_store.message import Signature, SignatureLayer, SignedMessage
from signed_store.utils import b64d, parse_ts

log = get_logger("signed_store.verifier")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationGate:
    """Checks signed messages against a fixed TrustedKeyring. Holds no mutable state."""

    def __init__(self, keyring: TrustedKeyring, now: Callable[[], datetime] = _utcnow):
        self._keyring = keyring
        self._now = now

    @property
    def keyring(self) -> TrustedKeyring:
        return self._keyring

    def check(self, layer: SignatureLayer, signature: Signature) -> Identity:
        """Judge one signature inside `layer`; return the signer or raise VerificationError."""
        identity = self._keyring.get(signature.fingerprint)
        if identity is None:
            raise UnknownSignerError(f"unknown signer {signature.fingerprint}")

        try:
            raw_sig = b64d(signature.sig)
        except ValueError as e:
            raise BadSignatureError(f"signature by {identity.fingerprint} is not base64") from e
        if not ed25519_verify(identity.public_key, raw_sig, layer.signed_bytes_for(signature)):
            raise BadSignatureError(f"bad signature by {identity.fingerprint}")

        if identity.revoked:
            raise RevokedKeyError(f"key {identity.fingerprint} is revoked")

        now = self._now()
        if identity.is_expired(now):
            raise ExpiredSignatureError(f"key {identity.fingerprint} expired at {identity.expires_at}")
        try:
            sig_expiry = parse_ts(signature.expires_at)
        except ValueError as e:
            raise MalformedMessageError(f"bad signature expiry: {e}") from e
        if sig_expiry is not None and sig_expiry <= now:
            raise ExpiredSignatureError(f"signature by {identity.fingerprint} expired at {signature.expires_at}")

        return identity

    def verify(self, payload: bytes) -> Identity:
        """
        Accept `payload` only if it is authentically signed by a trusted identity.

        Returns the signing Identity. Raises a VerificationError subclass:
        MalformedMessageError if the bytes do not decode, NoSignatureError if
        there is no signature layer or it carries no signatures, otherwise the
        error the first signature produced.
        """
        message = SignedMessage.decode(payload)

        for layer in message.signature_layers:
            if not layer.signatures:
                raise NoSignatureError("no signature")
            identity = self.check(layer, layer.signatures[0])
            log.debug(f"[VERIFY] accepted signature by {identity.fingerprint}")
            return identity

        raise NoSignatureError("signature verification failed: message has no signature layer")
