__all__ = [
    # Config
    "TransportConfig",
    # Transport
    "KVPair",
    "Transport",
    # Queries and broadcasts
    "Query",
    "Broadcast",
    "interpret_broadcast_result",
    # Errors
    "LinoError",
    "NotConnectedError",
    "TransportError",
    "RemoteError",
    "DecodeError",
    "KeyDecodeError",
    "BroadcastError",
    "SequenceConflictError",
    "MempoolRejectedError",
    "ExecutionRejectedError",
    "BroadcastTimeoutError",
    "ProtocolError",
    # Keys and signing
    "CryptoError",
    "SignatureError",
    "Envelope",
    "build_envelope",
    "verify_envelope",
    "generate_key",
    "get_public_key_hex",
    "load_private_key",
    "save_private_key",
    # Records and messages
    "BroadcastResponse",
    "MESSAGE_TYPES",
    "build_message",
    "Permission",
    # Schema
    "SchemaValidationError",
    "SchemaRegistry",
]

from .config import TransportConfig
from .errors import (
    BroadcastError,
    BroadcastTimeoutError,
    DecodeError,
    ExecutionRejectedError,
    KeyDecodeError,
    LinoError,
    MempoolRejectedError,
    NotConnectedError,
    ProtocolError,
    RemoteError,
    SequenceConflictError,
    TransportError,
)
from .sigil.crypto import CryptoError, Envelope, SignatureError, build_envelope, verify_envelope
from .sigil.keys import generate_key, get_public_key_hex, load_private_key, save_private_key
from .pneuma.transport import KVPair, Transport
from .pneuma.query import Query
from .pneuma.broadcast import Broadcast
from .pneuma.result import interpret_broadcast_result
from .spec.messages import MESSAGE_TYPES, build_message
from .spec.models import BroadcastResponse
from .spec.params import Permission
from .spec.schemas import SchemaRegistry, SchemaValidationError
