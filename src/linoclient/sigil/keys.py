"""
secp256k1 Key Management for the Lino client.

This module handles the keys used for:
- Transaction signing (every broadcast)
- Public keys carried inside messages (register, recover, validator deposit)

Keys travel as hex strings.  Both raw encodings and the amino-prefixed
encodings produced by the node's own tooling are accepted.

Keys are stored in ~/.linoclient/.env as PRIVATE_KEY (hex format).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from dotenv import load_dotenv

from ..config import LINO_ENV
from ..errors import KeyDecodeError
from ..utils import hex_to_bytes


SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Amino type prefix + length byte
AMINO_PRIV_KEY_PREFIX = bytes.fromhex("e1b0f79b20")
AMINO_PUB_KEY_PREFIX = bytes.fromhex("eb5ae98721")

PRIVATE_KEY_SIZE = 32
COMPRESSED_PUB_KEY_SIZE = 33
UNCOMPRESSED_PUB_KEY_SIZE = 65


def _decode_hex(value: str, what: str) -> bytes:
    try:
        return hex_to_bytes(value)
    except (AttributeError, TypeError, ValueError) as exc:
        raise KeyDecodeError(f"{what} is not valid hex.", exc) from exc


def parse_private_key(private_key_hex: str) -> ec.EllipticCurvePrivateKey:
    """
    Parse a hex private key.

    Args:
        private_key_hex: 32-byte scalar, optionally amino-prefixed or 0x-prefixed

    Returns:
        cryptography private key on secp256k1

    Raises:
        KeyDecodeError: If the hex or the scalar is invalid
    """
    raw = _decode_hex(private_key_hex, "Private key")
    if len(raw) == len(AMINO_PRIV_KEY_PREFIX) + PRIVATE_KEY_SIZE and raw.startswith(AMINO_PRIV_KEY_PREFIX):
        raw = raw[len(AMINO_PRIV_KEY_PREFIX):]
    if len(raw) != PRIVATE_KEY_SIZE:
        raise KeyDecodeError(f"Private key must be {PRIVATE_KEY_SIZE} bytes, got {len(raw)}.")

    value = int.from_bytes(raw, "big")
    if not 0 < value < SECP256K1_ORDER:
        raise KeyDecodeError("Private key is out of range for secp256k1.")
    return ec.derive_private_key(value, ec.SECP256K1())


def load_public_key(raw: bytes) -> ec.EllipticCurvePublicKey:
    if len(raw) == len(AMINO_PUB_KEY_PREFIX) + COMPRESSED_PUB_KEY_SIZE and raw.startswith(AMINO_PUB_KEY_PREFIX):
        raw = raw[len(AMINO_PUB_KEY_PREFIX):]
    if len(raw) not in (COMPRESSED_PUB_KEY_SIZE, UNCOMPRESSED_PUB_KEY_SIZE):
        raise KeyDecodeError(f"Public key must be 33 or 65 bytes, got {len(raw)}.")
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), raw)
    except ValueError as exc:
        raise KeyDecodeError("Public key is not a point on secp256k1.", exc) from exc


def parse_public_key(public_key_hex: str) -> ec.EllipticCurvePublicKey:
    """Parse a hex public key (compressed, uncompressed or amino-prefixed)."""
    return load_public_key(_decode_hex(public_key_hex, "Public key"))


def public_key_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """33-byte compressed SEC1 encoding."""
    return public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.CompressedPoint,
    )


def normalize_public_key_hex(public_key_hex: str) -> str:
    """Re-encode any accepted public key form as compressed hex."""
    return public_key_bytes(parse_public_key(public_key_hex)).hex()


def get_public_key_hex(private_key_hex: str) -> str:
    """Compressed hex public key for a hex private key."""
    return public_key_bytes(parse_private_key(private_key_hex).public_key()).hex()


def generate_key() -> tuple[str, str]:
    """
    Generate a new secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, public_key_hex)
        - private_key_hex: 64 hex chars, no prefix
        - public_key_hex: 66 hex chars, compressed
    """
    private_key = ec.generate_private_key(ec.SECP256K1())
    raw = private_key.private_numbers().private_value.to_bytes(PRIVATE_KEY_SIZE, "big")
    return raw.hex(), public_key_bytes(private_key.public_key()).hex()


def save_private_key(private_key: str, env_path: Optional[Path] = None) -> Path:
    """
    Save private key to .env file.

    Args:
        private_key: hex private key
        env_path: Path to .env file (default: ~/.linoclient/.env)

    Returns:
        Path to the saved .env file
    """
    env_path = env_path or LINO_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)

    # Read existing .env content or start fresh
    existing = {}
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                existing[k.strip()] = v.strip()

    existing["PRIVATE_KEY"] = private_key

    lines = [f"{k}={v}" for k, v in existing.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load private key from .env file or environment.

    Args:
        env_path: Path to .env file (default: ~/.linoclient/.env)

    Returns:
        hex private key

    Raises:
        ValueError: If PRIVATE_KEY is not set
    """
    env_path = env_path or LINO_ENV

    if env_path.exists():
        load_dotenv(env_path, override=True)

    private_key = os.environ.get("PRIVATE_KEY")
    if not private_key:
        raise ValueError(
            f"PRIVATE_KEY not found. Run 'linoclient keygen --save' or set "
            f"PRIVATE_KEY in {env_path}"
        )
    return private_key
