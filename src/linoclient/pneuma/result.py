"""
Broadcast result interpretation.

Classification order:

1. pending-pool code, masked to its low byte, equals ``INVALID_SEQ_ERR_CODE``
   -> ``SequenceConflictError``
2. pending-pool code non-zero -> ``MempoolRejectedError``
3. (full-commit only) execution code non-zero -> ``ExecutionRejectedError``
4. otherwise committed; the hash is returned as upper-case hex
"""

from __future__ import annotations

from typing import Any

from ..errors import (
    ExecutionRejectedError,
    MempoolRejectedError,
    ProtocolError,
    SequenceConflictError,
)
from ..spec.models import BroadcastResponse
from ..utils import hex_to_bytes, upper_hex

INVALID_SEQ_ERR_CODE = 154


def retrieve_code_from_blockchain_code(bc_code: int) -> int:
    """Strip the codespace bits from a node response code."""
    return bc_code & 0xFF


def _code_and_log(section: Any, what: str) -> tuple[int, str]:
    if not isinstance(section, dict):
        raise ProtocolError(f"error to parse the broadcast response: missing {what}")
    try:
        code = int(section.get("code") or 0)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"error to parse the broadcast response: bad {what} code") from exc
    return code, section.get("log") or ""


def _commit_hash(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ProtocolError("error to parse the broadcast response: missing hash")
    try:
        return upper_hex(hex_to_bytes(value))
    except ValueError as exc:
        raise ProtocolError("error to parse the broadcast response: hash is not hex") from exc


def _check_pending_pool(code: int, log: str) -> None:
    if retrieve_code_from_blockchain_code(code) == INVALID_SEQ_ERR_CODE:
        raise SequenceConflictError(code, log)
    if code != 0:
        raise MempoolRejectedError(code, log)


def interpret_broadcast_result(result: Any, confirm_only: bool) -> BroadcastResponse:
    """
    Turn a raw broadcast result into a ``BroadcastResponse`` or raise.

    Args:
        result: ``result`` member of the broadcast RPC response
        confirm_only: Whether the tx was submitted in pending-pool-only mode

    Raises:
        SequenceConflictError, MempoolRejectedError, ExecutionRejectedError:
            Classified rejections carrying the node's code and log
        ProtocolError: If ``result`` does not have the shape of the mode
    """
    if not isinstance(result, dict):
        raise ProtocolError("error to parse the broadcast response")

    if confirm_only:
        if "code" not in result:
            raise ProtocolError("error to parse the broadcast response: missing code")
        code, log = _code_and_log(result, "pending pool result")
        _check_pending_pool(code, log)
        return BroadcastResponse(commit_hash=_commit_hash(result.get("hash")))

    code, log = _code_and_log(result.get("check_tx"), "check_tx")
    # a tx refused by the pending pool never reaches execution
    _check_pending_pool(code, log)
    deliver_code, deliver_log = _code_and_log(result.get("deliver_tx"), "deliver_tx")
    if deliver_code != 0:
        raise ExecutionRejectedError(deliver_code, deliver_log)

    try:
        height = int(result.get("height") or 0)
    except (TypeError, ValueError) as exc:
        raise ProtocolError("error to parse the broadcast response: bad height") from exc
    return BroadcastResponse(commit_hash=_commit_hash(result.get("hash")), height=height)
