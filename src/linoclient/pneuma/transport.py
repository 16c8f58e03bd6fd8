"""
Tendermint JSON-RPC transport.

Owns the connection to one node and exposes the three primitives the rest of
the client is built on: point queries, prefix (subspace) queries and
sign-build-broadcast.  The underlying ``httpx.AsyncClient`` is safe for
concurrent use; calls share nothing else.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import TransportConfig
from ..errors import DecodeError, NotConnectedError, RemoteError, TransportError
from ..sigil.crypto import Msg, build_envelope
from ..utils import b64decode, b64encode

logger = logging.getLogger(__name__)

BROADCAST_TX_SYNC = "broadcast_tx_sync"
BROADCAST_TX_COMMIT = "broadcast_tx_commit"


@dataclass(frozen=True)
class KVPair:
    key: bytes
    value: bytes


class Transport:
    def __init__(self, config: TransportConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.chain_id = config.chain_id
        self.node_url = config.node_url
        # injected clients belong to the caller and are left open
        self._owns_client = client is None and bool(config.node_url)
        if self._owns_client:
            client = httpx.AsyncClient(base_url=config.node_url, timeout=config.timeout)
        self._client = client
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    def get_node(self) -> httpx.AsyncClient:
        if self._client is None:
            raise NotConnectedError()
        return self._client

    async def _rpc_call(self, method: str, params: dict[str, Any]) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "abci_query")
            params: RPC parameters

        Returns:
            Result field from the RPC response

        Raises:
            NotConnectedError: If no node is configured
            TransportError: On network, HTTP or JSON-RPC level failure
        """
        node = self.get_node()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("rpc %s %s", method, params.get("path", ""))

        try:
            response = await node.post("/", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"RPC {method} failed: {exc}", exc) from exc
        except json.JSONDecodeError as exc:
            raise TransportError(f"RPC {method} returned invalid JSON", exc) from exc

        if not isinstance(data, dict):
            raise TransportError(f"RPC {method} returned a non-object response")
        if data.get("error"):
            raise TransportError(f"RPC error: {data['error']}")

        return data.get("result")

    async def _abci_query(self, path: str, key: bytes) -> bytes:
        result = await self._rpc_call(
            "abci_query",
            {"path": path, "data": key.hex(), "height": "0", "prove": False},
        )
        try:
            resp = result["response"]
        except (KeyError, TypeError) as exc:
            raise TransportError("abci_query returned no response", exc) from exc

        code = int(resp.get("code") or 0)
        if code != 0:
            raise RemoteError(code, resp.get("log") or "")

        try:
            return b64decode(resp.get("value"))
        except ValueError as exc:
            raise DecodeError("abci_query value is not valid base64", exc) from exc

    async def query(self, key: bytes, store_name: str) -> bytes:
        """
        Point lookup of ``key`` in ``store_name``.

        Returns the raw value, which is empty when the node stores nothing
        under ``key``.

        Raises:
            RemoteError: If the node answers with a non-zero code
        """
        logger.debug("query /%s key=%s", store_name, key.hex())
        return await self._abci_query(f"/{store_name}/key", key)

    async def query_subspace(self, prefix: bytes, store_name: str) -> list[KVPair]:
        """Every entry of ``store_name`` whose key starts with ``prefix``, in node order."""
        logger.debug("query_subspace /%s prefix=%s", store_name, prefix.hex())
        raw = await self._abci_query(f"/{store_name}/subspace", prefix)
        if not raw:
            return []

        try:
            entries = json.loads(raw)
            return [KVPair(key=b64decode(e["key"]), value=b64decode(e["value"])) for e in entries or []]
        except (ValueError, KeyError, TypeError) as exc:
            raise DecodeError("Subspace response is not a list of KV pairs", exc) from exc

    async def broadcast_tx(self, tx: bytes, confirm_only: bool = False) -> dict[str, Any]:
        """
        Submit raw tx bytes.

        ``confirm_only`` returns once the node admits the tx into its pending
        pool; otherwise the call waits for the execution result as well.
        The result is returned as-is for ``interpret_broadcast_result``.
        """
        method = BROADCAST_TX_SYNC if confirm_only else BROADCAST_TX_COMMIT
        return await self._rpc_call(method, {"tx": b64encode(tx)})

    async def sign_build_broadcast(
        self,
        msg: Msg,
        private_key_hex: str,
        seq: int,
        memo: str = "",
        confirm_only: bool = False,
    ) -> dict[str, Any]:
        self.get_node()
        envelope = build_envelope(msg, self.chain_id, seq, private_key_hex, memo=memo)
        return await self.broadcast_tx(envelope.encode(), confirm_only=confirm_only)
