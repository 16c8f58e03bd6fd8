"""
Transaction signing and envelope encoding.

Provides:
- RFC 8785 JSON Canonicalization for deterministic sign bytes
- ECDSA/secp256k1 signatures over SHA-256 (64-byte r || s, low-S)
- Transaction envelope assembly

The signature covers exactly ``{chain_id, msg, sequence}``.  The memo rides
in the envelope but is not part of the signed payload.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

import rfc8785
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from ..utils import b64decode, b64encode
from .keys import SECP256K1_ORDER, load_public_key, parse_private_key, public_key_bytes


SIGNATURE_SIZE = 64
_HALF_ORDER = SECP256K1_ORDER // 2


class CryptoError(ValueError):
    pass


class SignatureError(CryptoError):
    pass


class Msg(Protocol):
    def encode(self) -> dict[str, Any]:
        ...


def encode_sign_msg(msg: Msg, chain_id: str, seq: int) -> bytes:
    """Canonical bytes the signer commits to."""
    return rfc8785.dumps({"chain_id": chain_id, "msg": msg.encode(), "sequence": seq})


def encode_tx(msg: Msg, pub_key: bytes, signature: bytes, seq: int, memo: str = "") -> bytes:
    payload: dict[str, Any] = {
        "msg": msg.encode(),
        "signatures": [
            {
                "pub_key": pub_key.hex(),
                "signature": b64encode(signature),
                "sequence": seq,
            }
        ],
    }
    if memo:
        payload["memo"] = memo
    return rfc8785.dumps(payload)


def decode_tx(tx_bytes: bytes) -> dict[str, Any]:
    return json.loads(tx_bytes)


def sign_bytes(data: bytes, private_key: ec.EllipticCurvePrivateKey) -> bytes:
    der = private_key.sign(data, ec.ECDSA(hashes.SHA256()))
    r, s = decode_dss_signature(der)
    if s > _HALF_ORDER:
        s = SECP256K1_ORDER - s
    return r.to_bytes(32, "big") + s.to_bytes(32, "big")


def verify_signature(data: bytes, signature: bytes, public_key: ec.EllipticCurvePublicKey) -> None:
    """Raise ``SignatureError`` unless ``signature`` is a valid low-S signature of ``data``."""
    if len(signature) != SIGNATURE_SIZE:
        raise SignatureError(f"Signature must be {SIGNATURE_SIZE} bytes.")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    if s > _HALF_ORDER:
        raise SignatureError("Signature is not in low-S form.")
    try:
        public_key.verify(encode_dss_signature(r, s), data, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature as exc:
        raise SignatureError("Invalid transaction signature.") from exc


@dataclass(frozen=True)
class Envelope:
    """A signed transaction bound to one sequence number."""

    msg: Msg
    chain_id: str
    sequence: int
    signature: bytes
    pub_key: bytes
    memo: str = ""

    def sign_bytes(self) -> bytes:
        return encode_sign_msg(self.msg, self.chain_id, self.sequence)

    def encode(self) -> bytes:
        return encode_tx(self.msg, self.pub_key, self.signature, self.sequence, self.memo)


def build_envelope(msg: Msg, chain_id: str, seq: int, private_key_hex: str, memo: str = "") -> Envelope:
    """
    Sign ``msg`` for ``chain_id``/``seq`` and wrap it in an envelope.

    Raises:
        KeyDecodeError: If the private key cannot be parsed
    """
    private_key = parse_private_key(private_key_hex)
    signature = sign_bytes(encode_sign_msg(msg, chain_id, seq), private_key)
    return Envelope(
        msg=msg,
        chain_id=chain_id,
        sequence=seq,
        signature=signature,
        pub_key=public_key_bytes(private_key.public_key()),
        memo=memo,
    )


def verify_envelope(envelope: Envelope) -> None:
    """Check the envelope signature against its own public key."""
    verify_signature(envelope.sign_bytes(), envelope.signature, load_public_key(envelope.pub_key))


def verify_tx_bytes(tx_bytes: bytes, chain_id: str, msg: Msg) -> None:
    """Check the first signature of encoded tx bytes against ``msg`` and ``chain_id``."""
    tx = decode_tx(tx_bytes)
    if tx.get("msg") != msg.encode():
        raise SignatureError("Encoded message does not match.")
    try:
        entry = tx["signatures"][0]
        signature = b64decode(entry["signature"])
        pub_key = bytes.fromhex(entry["pub_key"])
        seq = entry["sequence"]
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise SignatureError("Malformed signature entry.") from exc
    verify_signature(encode_sign_msg(msg, chain_id, seq), signature, load_public_key(pub_key))
