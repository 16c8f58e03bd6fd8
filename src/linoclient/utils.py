from __future__ import annotations

import base64


def strip_hex_prefix(value: str) -> str:
    value = value.strip()
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def hex_to_bytes(value: str) -> bytes:
    """Decode a hex string, tolerating a ``0x`` prefix and surrounding whitespace."""
    return bytes.fromhex(strip_hex_prefix(value))


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str | None) -> bytes:
    if not value:
        return b""
    return base64.b64decode(value, validate=True)


def upper_hex(data: bytes) -> str:
    return data.hex().upper()
