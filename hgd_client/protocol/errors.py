"""
Exception types raised by the HGD client.
"""


class HGDError(Exception):
    """Base class for all client errors."""

    pass


class PreconditionViolation(HGDError):
    """Operation called in a state that does not allow it."""

    pass


class NotConnected(PreconditionViolation):
    """Client not connected."""

    def __init__(self, message: str = "Client not connected"):
        super().__init__(message)


class AlreadyConnected(PreconditionViolation):
    """Client already connected to a daemon."""

    def __init__(self, host: str, port: int):
        super().__init__(f"Client already connected to {host} on port {port}")
        self.host = host
        self.port = port


class NotAuthenticated(PreconditionViolation):
    """Client not authenticated."""

    def __init__(self, message: str = "Client not authenticated"):
        super().__init__(message)


class ProtocolError(HGDError):
    """Daemon answered with an error status line."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EncryptionRejected(ProtocolError):
    """Daemon refused to complete the encryption upgrade."""

    pass


class ConnectError(HGDError):
    """Connection could not be established."""

    pass


class HandshakeRejected(ConnectError, ProtocolError):
    """Daemon greeting was not ok."""

    def __init__(self, message: str):
        ProtocolError.__init__(self, message)


class ProtocolMismatch(ConnectError):
    """Daemon speaks a different protocol version."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Incompatible protocols. Client: {expected}, Daemon: {actual}")
        self.expected = expected
        self.actual = actual


class DisconnectError(HGDError):
    """Quit handshake failed. The connection is closed regardless."""

    pass


class ServerRejectedQuit(DisconnectError, ProtocolError):
    """Daemon answered the quit command with an error."""

    def __init__(self, message: str):
        ProtocolError.__init__(self, message)


class TransportError(HGDError):
    """I/O failure on the socket or TLS layer."""

    pass


class MalformedResponse(HGDError):
    """Daemon sent a line that cannot be parsed."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line
