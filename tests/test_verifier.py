import json
from datetime import datetime, timedelta, timezone

import pytest

from signed_store.crypto import ed25519_generate
from signed_store.errors import (
    BadSignatureError,
    ExpiredSignatureError,
    MalformedMessageError,
    NoSignatureError,
    RevokedKeyError,
    UnknownSignerError,
    VerificationError,
)
from signed_store.keyring import TrustedKeyring, identity_from_public_key
from signed_store.message import literal_layer, sign_message, signed_layer, wrap_message
from signed_store.utils import b64d, b64e, canonical_json
from signed_store.verifier import VerificationGate


def test_accepts_message_signed_by_trusted_key(gate, signer, keyring):
    priv, _ = signer
    ident = gate.verify(sign_message(b"hello", priv))
    assert ident.fingerprint == keyring.fingerprints()[0]


def test_rejects_flipped_byte_in_signed_content(gate, signer):
    priv, _ = signer
    doc = json.loads(sign_message(b"hello world", priv))
    data = bytearray(b64d(doc["body"]["data"]))
    data[0] ^= 0x01
    doc["body"]["data"] = b64e(bytes(data))

    with pytest.raises(BadSignatureError):
        gate.verify(canonical_json(doc))


def test_rejects_message_signed_only_by_unknown_key(gate, stranger):
    priv, _ = stranger
    with pytest.raises(UnknownSignerError):
        gate.verify(sign_message(b"hello", priv))


def test_rejects_message_without_signature_layer(gate):
    with pytest.raises(NoSignatureError):
        gate.verify(canonical_json(literal_layer(b"hello")))


def test_rejects_signature_layer_without_signatures(gate):
    layer = {"type": "signed", "signatures": [], "body": literal_layer(b"hello")}
    with pytest.raises(NoSignatureError, match="no signature"):
        gate.verify(canonical_json(layer))


@pytest.mark.parametrize("blob", [
    b"",
    b"plain bytes, not a message",
    b"[]",
    b'{"type": "compressed"}',
    b'{"type": "signed", "signatures": [], "body": "nope"}',
    b'{"type": "signed", "signatures": [{"sig": "AA=="}], "body": {"type": "literal", "data": ""}}',
    b'{"type": "literal", "data": "***"}',
])
def test_rejects_malformed_messages(gate, blob):
    with pytest.raises(MalformedMessageError):
        gate.verify(blob)


def test_malformed_is_a_verification_error():
    assert issubclass(MalformedMessageError, VerificationError)


def test_first_signature_decides(gate, signer, stranger):
    priv, _ = signer
    other, _ = stranger

    # trusted first, unknown second: accepted without looking further
    gate.verify(sign_message(b"x", priv, co_signers=[other]))

    # unknown first, trusted second: the first result is the answer
    with pytest.raises(UnknownSignerError):
        gate.verify(sign_message(b"x", other, co_signers=[priv]))


def test_first_signature_layer_decides(gate, signer, stranger):
    priv, _ = signer
    other, _ = stranger

    # outer layer trusted; inner layer unknown is never consulted
    gate.verify(wrap_message(sign_message(b"x", other), priv))

    with pytest.raises(UnknownSignerError):
        gate.verify(wrap_message(sign_message(b"x", priv), other))


def test_outer_layer_tampering_is_detected(gate, signer):
    priv, _ = signer
    doc = json.loads(wrap_message(sign_message(b"x", priv), priv))
    doc["body"]["body"]["data"] = b64e(b"y")
    with pytest.raises(BadSignatureError):
        gate.verify(canonical_json(doc))


def test_rejects_swapped_signature_metadata(gate, signer):
    priv, _ = signer
    doc = json.loads(sign_message(b"x", priv))
    doc["signatures"][0]["created_at"] = "2001-01-01T00:00:00Z"
    with pytest.raises(BadSignatureError):
        gate.verify(canonical_json(doc))


def test_rejects_revoked_key(signer):
    priv, pub = signer
    gate = VerificationGate(TrustedKeyring(identities=(identity_from_public_key(pub, status="revoked"),)))
    with pytest.raises(RevokedKeyError):
        gate.verify(sign_message(b"x", priv))


def test_rejects_expired_key(signer):
    priv, pub = signer
    ident = identity_from_public_key(pub, expires_at="2000-01-01T00:00:00Z")
    gate = VerificationGate(TrustedKeyring(identities=(ident,)))
    with pytest.raises(ExpiredSignatureError):
        gate.verify(sign_message(b"x", priv))


def test_rejects_expired_signature(gate, signer):
    priv, _ = signer
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).strftime("%Y-%m-%dT%H:%M:%SZ")
    with pytest.raises(ExpiredSignatureError):
        gate.verify(sign_message(b"x", priv, expires_at=past))


def test_signature_expiry_uses_injected_clock(keyring, signer):
    priv, _ = signer
    msg = sign_message(b"x", priv, expires_at="2030-01-01T00:00:00Z")

    before = VerificationGate(keyring, now=lambda: datetime(2029, 12, 31, tzinfo=timezone.utc))
    after = VerificationGate(keyring, now=lambda: datetime(2030, 1, 2, tzinfo=timezone.utc))

    before.verify(msg)
    with pytest.raises(ExpiredSignatureError):
        after.verify(msg)


def test_verify_does_not_touch_keyring(gate, signer, keyring):
    priv, _ = signer
    before = keyring.fingerprints()
    gate.verify(sign_message(b"x", priv))
    assert gate.keyring is keyring
    assert keyring.fingerprints() == before


def test_signed_layer_with_no_signers_is_rejected(gate):
    with pytest.raises(NoSignatureError):
        gate.verify(canonical_json(signed_layer(literal_layer(b"x"), [])))


def test_multiple_trusted_keys(signer):
    priv, pub = signer
    priv2, pub2 = ed25519_generate()
    keyring = TrustedKeyring(identities=(identity_from_public_key(pub), identity_from_public_key(pub2)))
    gate = VerificationGate(keyring)
    assert gate.verify(sign_message(b"x", priv2)).public_key == pub2
