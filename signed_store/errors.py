"""Signed-store error hierarchy."""


class SignedStoreError(Exception):
    """Base exception for all signed-store errors."""


class KeyLoadError(SignedStoreError):
    """Trusted keyring blob is unreadable, malformed or empty."""


class VerificationError(SignedStoreError):
    """Presented bytes are not authentically signed by a trusted identity."""


class MalformedMessageError(VerificationError):
    """Bytes do not decode into a signed message layer chain."""


class NoSignatureError(VerificationError):
    """Message has no signature layer, or a signature layer with no signatures."""


class UnknownSignerError(VerificationError):
    """Signature was made by a key that is not in the trusted keyring."""


class BadSignatureError(VerificationError):
    """Ed25519 signature check failed."""


class ExpiredSignatureError(VerificationError):
    """Signature or signing key has passed its expiry instant."""


class RevokedKeyError(VerificationError):
    """Signing key is present in the keyring but revoked."""


class ObjectNotFoundError(SignedStoreError, LookupError):
    """No live object is stored under the key (never written, deleted or expired)."""

    def __init__(self, key: str):
        super().__init__(f"no such object: {key}")
        self.key = key


class StorageError(SignedStoreError, OSError):
    """Underlying filesystem or ledger operation failed."""
