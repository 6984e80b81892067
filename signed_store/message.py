"""
signed_store.message
--------------------
Defines the signed message container accepted by the store.

A message is a chain of layers serialised as canonical JSON. The innermost
layer is always a literal carrying the payload; every layer around it is a
signature layer listing one or more signatures over its body:

    {"type": "signed",
     "signatures": [{"fingerprint": ..., "sig": ..., "created_at": ..., "expires_at": ...}],
     "body": {"type": "literal", "data": "<base64>"}}

Each signature covers the canonical JSON of its body together with its own
fingerprint, creation and expiry fields, so none of them can be swapped out
without invalidating it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union
import json

from signed_store.constants import LAYER_LITERAL, LAYER_SIGNED, MESSAGE_VERSION
from signed_store.crypto import compute_pubkey_fingerprint, ed25519_public_from_private, ed25519_sign
from signed_store.errors import MalformedMessageError
from signed_store.utils import b64d, b64e, canonical_json, now_ts

# Nesting bound so a hostile body cannot exhaust the decoder
MAX_LAYERS = 16


@dataclass
class Signature:
    fingerprint: str
    sig: str                      # base64 Ed25519 signature
    created_at: str = field(default_factory=now_ts)
    expires_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "sig": self.sig,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Signature":
        if not isinstance(data, dict):
            raise MalformedMessageError("signature entry must be an object")
        fpr, sig = data.get("fingerprint"), data.get("sig")
        created_at, expires_at = data.get("created_at"), data.get("expires_at")
        if not isinstance(fpr, str) or not isinstance(sig, str) or not isinstance(created_at, str):
            raise MalformedMessageError("signature entry needs fingerprint, sig and created_at strings")
        if expires_at is not None and not isinstance(expires_at, str):
            raise MalformedMessageError("signature expires_at must be a string or null")
        return cls(fingerprint=fpr, sig=sig, created_at=created_at, expires_at=expires_at)


def signing_bytes(body: Dict[str, Any], fingerprint: str, created_at: str, expires_at: Optional[str]) -> bytes:
    """Bytes an Ed25519 signature is made over."""
    return canonical_json({
        "body": body,
        "created_at": created_at,
        "expires_at": expires_at,
        "fingerprint": fingerprint,
    })


@dataclass
class LiteralLayer:
    data: bytes


@dataclass
class SignatureLayer:
    """One signature group: the signatures made over `body` (the next layer in)."""
    signatures: List[Signature]
    body: Dict[str, Any]

    def signed_bytes_for(self, signature: Signature) -> bytes:
        return signing_bytes(self.body, signature.fingerprint, signature.created_at, signature.expires_at)


Layer = Union[SignatureLayer, LiteralLayer]


@dataclass
class SignedMessage:
    """Decoded layer chain, outermost layer first."""
    layers: List[Layer]

    @property
    def signature_layers(self) -> List[SignatureLayer]:
        return [l for l in self.layers if isinstance(l, SignatureLayer)]

    @property
    def payload(self) -> bytes:
        return self.layers[-1].data

    @classmethod
    def decode(cls, blob: bytes) -> "SignedMessage":
        try:
            doc = json.loads(blob)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError, RecursionError) as e:
            raise MalformedMessageError(f"message is not valid JSON: {e}") from e
        return cls(layers=_decode_layers(doc))


def _decode_layers(doc: Any) -> List[Layer]:
    layers: List[Layer] = []
    node = doc
    while True:
        if len(layers) >= MAX_LAYERS:
            raise MalformedMessageError(f"message nests more than {MAX_LAYERS} layers")
        if not isinstance(node, dict):
            raise MalformedMessageError("layer must be an object")

        kind = node.get("type")
        if kind == LAYER_LITERAL:
            data = node.get("data")
            if not isinstance(data, str):
                raise MalformedMessageError("literal layer has no data")
            try:
                layers.append(LiteralLayer(data=b64d(data)))
            except ValueError as e:
                raise MalformedMessageError(f"literal data: {e}") from e
            return layers

        if kind == LAYER_SIGNED:
            sigs = node.get("signatures")
            body = node.get("body")
            if not isinstance(sigs, list):
                raise MalformedMessageError("signature layer has no signature list")
            if not isinstance(body, dict):
                raise MalformedMessageError("signature layer has no body")
            layers.append(SignatureLayer(signatures=[Signature.from_dict(s) for s in sigs], body=body))
            node = body
            continue

        raise MalformedMessageError(f"unknown layer type {kind!r}")


# --------- Encoding ----------
def literal_layer(payload: bytes) -> Dict[str, Any]:
    return {"type": LAYER_LITERAL, "v": MESSAGE_VERSION, "data": b64e(payload)}


def make_signature(body: Dict[str, Any], priv_raw: bytes, created_at: Optional[str] = None,
                   expires_at: Optional[str] = None) -> Signature:
    fpr = compute_pubkey_fingerprint(ed25519_public_from_private(priv_raw))
    created_at = created_at or now_ts()
    sig = ed25519_sign(priv_raw, signing_bytes(body, fpr, created_at, expires_at))
    return Signature(fingerprint=fpr, sig=b64e(sig), created_at=created_at, expires_at=expires_at)


def signed_layer(body: Dict[str, Any], signers: Iterable[bytes], expires_at: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": LAYER_SIGNED,
        "v": MESSAGE_VERSION,
        "signatures": [make_signature(body, priv, expires_at=expires_at).to_dict() for priv in signers],
        "body": body,
    }


def sign_message(payload: bytes, priv_raw: bytes, expires_at: Optional[str] = None,
                 co_signers: Iterable[bytes] = ()) -> bytes:
    """
    Wrap `payload` in a literal layer and one signature layer.

    `priv_raw` signs first; any `co_signers` add further signatures to the same
    layer, in order.
    """
    layer = signed_layer(literal_layer(payload), [priv_raw, *co_signers], expires_at=expires_at)
    return canonical_json(layer)


def wrap_message(message: bytes, priv_raw: bytes, expires_at: Optional[str] = None) -> bytes:
    """Add an outer signature layer around an already encoded message."""
    try:
        inner = json.loads(message)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedMessageError(f"message is not valid JSON: {e}") from e
    return canonical_json(signed_layer(inner, [priv_raw], expires_at=expires_at))


def extract_payload(message: bytes) -> bytes:
    """Return the innermost literal payload. Does not verify anything."""
    return SignedMessage.decode(message).payload
