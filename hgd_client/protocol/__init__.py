"""
HGD line protocol: constants, codec, errors and socket transport.
"""

from .codec import Response, ResponseStatus, format_command, parse_response
from .constants import BINARY_CHUNK, DEFAULT_PORT, PROTOCOL_VERSION, Verb
from .errors import (
    AlreadyConnected,
    ConnectError,
    DisconnectError,
    EncryptionRejected,
    HandshakeRejected,
    HGDError,
    MalformedResponse,
    NotAuthenticated,
    NotConnected,
    PreconditionViolation,
    ProtocolError,
    ProtocolMismatch,
    ServerRejectedQuit,
    TransportError,
)
from .transport import Transport, build_tls_context

__all__ = [
    # Constants
    "BINARY_CHUNK",
    "DEFAULT_PORT",
    "PROTOCOL_VERSION",
    "Verb",
    # Codec
    "Response",
    "ResponseStatus",
    "format_command",
    "parse_response",
    # Errors
    "AlreadyConnected",
    "ConnectError",
    "DisconnectError",
    "EncryptionRejected",
    "HandshakeRejected",
    "HGDError",
    "MalformedResponse",
    "NotAuthenticated",
    "NotConnected",
    "PreconditionViolation",
    "ProtocolError",
    "ProtocolMismatch",
    "ServerRejectedQuit",
    "TransportError",
    # Transport
    "Transport",
    "build_tls_context",
]
