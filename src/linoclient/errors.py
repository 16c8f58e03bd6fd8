"""
Error taxonomy for the Lino client.

Every failure surfaced by a query or a broadcast is a ``LinoError``.  Errors
that originate on the node keep the raw response ``code`` and ``log`` so
callers can branch on them (e.g. refresh the sequence number after a
``SequenceConflictError`` and try again).  Nothing is retried internally.
"""

from __future__ import annotations

from typing import Optional


class LinoError(RuntimeError):
    exit_code: int = 1


class NotConnectedError(LinoError):
    exit_code = 2

    def __init__(self, message: str = "Must define node URI") -> None:
        super().__init__(message)


class TransportError(LinoError):
    """Low-level I/O or JSON-RPC failure talking to the node."""

    exit_code = 3

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class RemoteError(LinoError):
    """A query answered with a non-zero response code."""

    exit_code = 4

    def __init__(self, code: int, log: str) -> None:
        super().__init__(f"Query failed: ({code}) {log}")
        self.code = code
        self.log = log


class DecodeError(LinoError):
    exit_code = 5

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class KeyDecodeError(LinoError):
    exit_code = 6

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class BroadcastError(LinoError):
    """Base for transactions the node refused."""

    exit_code = 7
    stage = "broadcast"

    def __init__(self, code: int, log: str) -> None:
        super().__init__(f"{self.stage} failed: ({code}) {log}")
        self.code = code
        self.log = log


class SequenceConflictError(BroadcastError):
    exit_code = 8
    stage = "sequence check"


class MempoolRejectedError(BroadcastError):
    exit_code = 9
    stage = "CheckTx"


class ExecutionRejectedError(BroadcastError):
    exit_code = 10
    stage = "DeliverTx"


class BroadcastTimeoutError(LinoError):
    exit_code = 11

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ProtocolError(LinoError):
    """The node answered with a shape the client does not understand."""

    exit_code = 12


__all__ = [
    "BroadcastError",
    "BroadcastTimeoutError",
    "DecodeError",
    "ExecutionRejectedError",
    "KeyDecodeError",
    "LinoError",
    "MempoolRejectedError",
    "NotConnectedError",
    "ProtocolError",
    "RemoteError",
    "SequenceConflictError",
    "TransportError",
]
