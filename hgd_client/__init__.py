"""
hgd-client - Client library for the HGD shared playlist daemon.

Connects to a daemon, logs in, lists and votes on the playlist, uploads
tracks and can switch the connection to TLS mid-session.
"""

__version__ = "0.1.0"

from .client import HGDClient, SessionState, TransportState
from .config import Config, ConfigError, load_config
from .protocol import (
    DEFAULT_PORT,
    PROTOCOL_VERSION,
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

__all__ = [
    "__version__",
    "HGDClient",
    "SessionState",
    "TransportState",
    "Config",
    "ConfigError",
    "load_config",
    "DEFAULT_PORT",
    "PROTOCOL_VERSION",
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
]
