"""Tests for key parsing, sign bytes and transaction envelopes."""

from __future__ import annotations

import dataclasses
import json

import pytest
from cryptography.hazmat.primitives import serialization

from linoclient.errors import KeyDecodeError
from linoclient.sigil.crypto import (
    SignatureError,
    build_envelope,
    decode_tx,
    encode_sign_msg,
    sign_bytes,
    verify_envelope,
    verify_signature,
    verify_tx_bytes,
)
from linoclient.sigil.keys import (
    AMINO_PRIV_KEY_PREFIX,
    AMINO_PUB_KEY_PREFIX,
    SECP256K1_ORDER,
    generate_key,
    get_public_key_hex,
    load_private_key,
    normalize_public_key_hex,
    parse_private_key,
    parse_public_key,
    public_key_bytes,
    save_private_key,
)
from linoclient.spec.messages import CreatePostMsg, TransferMsg
from linoclient.spec.models import IDToURLMapping

CHAIN_ID = "test-chain-NVQwvW"


@pytest.fixture()
def msg() -> TransferMsg:
    return TransferMsg(sender="alice", receiver="bob", amount="1", memo="lunch")


class TestKeys:
    def test_generate_key_roundtrip(self) -> None:
        priv, pub = generate_key()
        assert len(priv) == 64
        assert len(pub) == 66
        assert get_public_key_hex(priv) == pub

    def test_private_key_accepts_0x_and_amino_prefix(self) -> None:
        priv, pub = generate_key()
        amino = AMINO_PRIV_KEY_PREFIX.hex() + priv
        assert get_public_key_hex("0x" + priv) == pub
        assert get_public_key_hex(amino) == pub

    @pytest.mark.parametrize(
        "value",
        [
            "not-hex",
            "abcd",
            "00" * 32,
            SECP256K1_ORDER.to_bytes(32, "big").hex(),
        ],
    )
    def test_invalid_private_key(self, value: str) -> None:
        with pytest.raises(KeyDecodeError):
            parse_private_key(value)

    def test_public_key_forms(self) -> None:
        priv, pub = generate_key()
        key = parse_private_key(priv).public_key()
        uncompressed = key.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint)
        assert normalize_public_key_hex(pub) == pub
        assert normalize_public_key_hex(uncompressed.hex()) == pub
        assert normalize_public_key_hex(AMINO_PUB_KEY_PREFIX.hex() + pub) == pub

    @pytest.mark.parametrize("value", ["zz", "02" + "00" * 31, "05" + "11" * 32])
    def test_invalid_public_key(self, value: str) -> None:
        with pytest.raises(KeyDecodeError):
            parse_public_key(value)

    def test_key_decode_error_keeps_cause(self) -> None:
        with pytest.raises(KeyDecodeError) as excinfo:
            parse_private_key("xyz")
        assert excinfo.value.cause is not None
        assert excinfo.value.__cause__ is excinfo.value.cause

    def test_save_and_load_private_key(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("PRIVATE_KEY", "")
        env_path = tmp_path / ".env"
        env_path.write_text("LINO_CHAIN_ID=other\n", encoding="utf-8")
        priv, _ = generate_key()

        save_private_key(priv, env_path)

        content = env_path.read_text(encoding="utf-8")
        assert "LINO_CHAIN_ID=other" in content
        assert f"PRIVATE_KEY={priv}" in content
        assert load_private_key(env_path) == priv

    def test_load_private_key_missing(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("PRIVATE_KEY", "")
        with pytest.raises(ValueError, match="PRIVATE_KEY not found"):
            load_private_key(tmp_path / "missing.env")


class TestSignBytes:
    def test_encoding_is_deterministic(self, msg: TransferMsg) -> None:
        assert encode_sign_msg(msg, CHAIN_ID, 7) == encode_sign_msg(msg, CHAIN_ID, 7)

    def test_encoding_independent_of_field_order(self) -> None:
        a = TransferMsg(sender="alice", receiver="bob", amount="1", memo="x")
        b = TransferMsg(memo="x", amount="1", receiver="bob", sender="alice")
        assert encode_sign_msg(a, CHAIN_ID, 1) == encode_sign_msg(b, CHAIN_ID, 1)

    def test_encoding_layout(self, msg: TransferMsg) -> None:
        payload = json.loads(encode_sign_msg(msg, CHAIN_ID, 3))
        assert payload == {
            "chain_id": CHAIN_ID,
            "msg": {
                "type": "lino/transfer",
                "value": {"sender": "alice", "receiver": "bob", "amount": "1", "memo": "lunch"},
            },
            "sequence": 3,
        }

    def test_encoding_is_canonical(self, msg: TransferMsg) -> None:
        raw = encode_sign_msg(msg, CHAIN_ID, 3)
        assert b" " not in raw
        assert raw.index(b'"chain_id"') < raw.index(b'"msg"') < raw.index(b'"sequence"')

    def test_nested_links_encode(self) -> None:
        post = CreatePostMsg(
            author="alice",
            post_id="1article",
            title="t",
            content="c",
            links=[IDToURLMapping(identifier="img", url="https://x")],
        )
        value = json.loads(encode_sign_msg(post, CHAIN_ID, 0))["msg"]["value"]
        assert value["links"] == [{"identifier": "img", "url": "https://x"}]


class TestSignatures:
    def test_signature_is_64_bytes_low_s(self, msg: TransferMsg) -> None:
        priv, _ = generate_key()
        key = parse_private_key(priv)
        for _ in range(8):
            sig = sign_bytes(b"payload", key)
            assert len(sig) == 64
            assert int.from_bytes(sig[32:], "big") <= SECP256K1_ORDER // 2

    def test_envelope_verifies(self, msg: TransferMsg) -> None:
        priv, pub = generate_key()
        envelope = build_envelope(msg, CHAIN_ID, 5, priv)
        assert envelope.pub_key.hex() == pub
        verify_envelope(envelope)

    @pytest.mark.parametrize(
        "change",
        [
            {"sequence": 6},
            {"chain_id": "other-chain"},
            {"msg": TransferMsg(sender="alice", receiver="bob", amount="1000", memo="lunch")},
        ],
    )
    def test_mutation_breaks_signature(self, msg: TransferMsg, change: dict) -> None:
        priv, _ = generate_key()
        envelope = build_envelope(msg, CHAIN_ID, 5, priv)
        with pytest.raises(SignatureError):
            verify_envelope(dataclasses.replace(envelope, **change))

    def test_wrong_key_fails(self, msg: TransferMsg) -> None:
        priv, _ = generate_key()
        _, other_pub = generate_key()
        envelope = build_envelope(msg, CHAIN_ID, 5, priv)
        with pytest.raises(SignatureError):
            verify_signature(envelope.sign_bytes(), envelope.signature, parse_public_key(other_pub))

    def test_memo_is_not_signed(self, msg: TransferMsg) -> None:
        priv, _ = generate_key()
        envelope = build_envelope(msg, CHAIN_ID, 5, priv, memo="first")
        verify_envelope(dataclasses.replace(envelope, memo="second"))

    def test_invalid_private_key_fails_before_signing(self, msg: TransferMsg) -> None:
        with pytest.raises(KeyDecodeError):
            build_envelope(msg, CHAIN_ID, 5, "00")


class TestTxBytes:
    def test_tx_layout(self, msg: TransferMsg) -> None:
        priv, pub = generate_key()
        envelope = build_envelope(msg, CHAIN_ID, 9, priv, memo="hello")
        tx = decode_tx(envelope.encode())
        assert tx["msg"] == msg.encode()
        assert tx["memo"] == "hello"
        assert tx["signatures"][0]["pub_key"] == pub
        assert tx["signatures"][0]["sequence"] == 9

    def test_empty_memo_is_omitted(self, msg: TransferMsg) -> None:
        priv, _ = generate_key()
        tx = decode_tx(build_envelope(msg, CHAIN_ID, 9, priv).encode())
        assert "memo" not in tx

    def test_verify_tx_bytes(self, msg: TransferMsg) -> None:
        priv, _ = generate_key()
        tx_bytes = build_envelope(msg, CHAIN_ID, 9, priv).encode()
        verify_tx_bytes(tx_bytes, CHAIN_ID, msg)

    def test_tampered_tx_bytes_fail(self, msg: TransferMsg) -> None:
        priv, _ = generate_key()
        tx_bytes = build_envelope(msg, CHAIN_ID, 9, priv).encode()
        tampered = tx_bytes.replace(b'"sequence":9', b'"sequence":10')
        assert tampered != tx_bytes
        with pytest.raises(SignatureError):
            verify_tx_bytes(tampered, CHAIN_ID, msg)

    def test_public_key_bytes_compressed(self) -> None:
        priv, pub = generate_key()
        assert public_key_bytes(parse_private_key(priv).public_key()).hex() == pub
