"""Shared fixtures: keys, transport config and a respx-backed fake node."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest
import respx

from linoclient.config import TransportConfig
from linoclient.pneuma.transport import Transport
from linoclient.sigil.keys import generate_key

NODE_URL = "http://lino.test:46657"
CHAIN_ID = "test-chain-NVQwvW"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeNode:
    """In-memory Tendermint RPC endpoint keyed by (path, hex data)."""

    def __init__(self) -> None:
        self.responses: dict[tuple[str, str], dict[str, Any]] = {}
        self.broadcast_result: Any = None
        self.calls: list[dict[str, Any]] = []

    def put(self, store: str, key: bytes, record: Any, code: int = 0, log: str = "") -> None:
        value = record if isinstance(record, bytes) else json.dumps(record).encode()
        self.responses[(f"/{store}/key", key.hex())] = {"code": code, "log": log, "value": _b64(value)}

    def fail(self, store: str, key: bytes, code: int, log: str) -> None:
        self.responses[(f"/{store}/key", key.hex())] = {"code": code, "log": log, "value": None}

    def put_subspace(self, store: str, prefix: bytes, pairs: list[tuple[bytes, Any]]) -> None:
        entries = [
            {
                "key": _b64(k),
                "value": _b64(v if isinstance(v, bytes) else json.dumps(v).encode()),
            }
            for k, v in pairs
        ]
        raw = json.dumps(entries).encode()
        self.responses[(f"/{store}/subspace", prefix.hex())] = {"code": 0, "log": "", "value": _b64(raw)}

    def methods(self) -> list[str]:
        return [c["method"] for c in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.calls.append(payload)
        params = payload["params"]
        if payload["method"] == "abci_query":
            response = self.responses.get(
                (params["path"], params["data"]),
                {"code": 0, "log": "", "value": None},
            )
            result: Any = {"response": response}
        else:
            result = self.broadcast_result
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def config() -> TransportConfig:
    return TransportConfig(node_url=NODE_URL, chain_id=CHAIN_ID, timeout=5.0)


@pytest.fixture()
def keypair() -> tuple[str, str]:
    """(private_key_hex, public_key_hex)"""
    return generate_key()


@pytest.fixture()
def node() -> FakeNode:
    fake = FakeNode()
    with respx.mock(assert_all_called=False) as mock:
        mock.post(f"{NODE_URL}/").mock(side_effect=fake.handler)
        yield fake


@pytest.fixture()
async def transport(config: TransportConfig, node: FakeNode) -> Transport:
    async with Transport(config) as t:
        yield t


@pytest.fixture()
def lino_home(tmp_path: Path) -> Path:
    """Point the client .env at a temp directory."""
    home = tmp_path / ".linoclient"
    home.mkdir()
    env_path = home / ".env"
    with patch("linoclient.config.LINO_ENV", env_path), patch("linoclient.sigil.keys.LINO_ENV", env_path):
        yield home


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset client variables; anything load_dotenv adds is undone afterwards."""
    for name in ("PRIVATE_KEY", "LINO_NODE_URL", "LINO_CHAIN_ID", "LINO_RPC_TIMEOUT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

