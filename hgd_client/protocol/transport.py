"""
Socket transport for the HGD client.

One TCP socket is shared by three views: a line reader, a line writer and
a raw byte writer used for uploads. While the connection is plaintext the
views do not own the socket, so any of them can be closed without taking
the connection down. This is what lets the transport switch to TLS in
place: the plaintext views are closed, the still-open socket is handed to
the TLS layer, and new views are built on top of the TLS socket. Those new
views own the socket, since nothing else holds it any more.
"""

import logging
import socket
import ssl
from typing import Optional

from .constants import ENCODING, LINE_TERMINATOR, MAX_LINE_LENGTH, RECV_SIZE, TRIM_CHARS
from .errors import TransportError

logger = logging.getLogger(__name__)

_TRIM_BYTES = TRIM_CHARS.encode("ascii")


class SocketStream:
    """
    View over a socket, tagged with whether it owns the socket.

    Closing a non-owning view only marks the view closed. Closing an owning
    view also closes the socket.
    """

    def __init__(self, sock: socket.socket, owns_socket: bool = False):
        self._sock = sock
        self.owns_socket = owns_socket
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise TransportError(f"{type(self).__name__} is closed")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.owns_socket:
            self._sock.close()


class LineReader(SocketStream):
    """Reads terminator-delimited text lines from a socket."""

    def __init__(self, sock: socket.socket, owns_socket: bool = False):
        super().__init__(sock, owns_socket)
        self._buffer = bytearray()

    def has_pending_data(self) -> bool:
        """True if bytes beyond the last line were received and not consumed."""
        return bool(bytes(self._buffer).strip(_TRIM_BYTES))

    def read_line(self) -> str:
        """
        Read one line, trimmed of whitespace and control characters.

        Raises:
            TransportError: On socket error, timeout, oversized line or EOF
        """
        self._check_open()
        while True:
            index = self._buffer.find(b"\n")
            if index >= 0:
                raw = bytes(self._buffer[:index])
                del self._buffer[: index + 1]
                return raw.decode(ENCODING, errors="replace").strip(TRIM_CHARS)

            if len(self._buffer) > MAX_LINE_LENGTH:
                raise TransportError(f"Line exceeds {MAX_LINE_LENGTH} bytes")

            try:
                chunk = self._sock.recv(RECV_SIZE)
            except OSError as e:
                raise TransportError(f"Read failed: {e}") from e
            if not chunk:
                raise TransportError("Connection closed by daemon")
            self._buffer += chunk


class LineWriter(SocketStream):
    """Writes text lines, appending the protocol terminator."""

    def write_line(self, text: str) -> None:
        self._check_open()
        data = (text + LINE_TERMINATOR).encode(ENCODING)
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e


class ByteWriter(SocketStream):
    """Buffered writer for raw upload bytes."""

    def __init__(self, sock: socket.socket, owns_socket: bool = False):
        super().__init__(sock, owns_socket)
        self._pending = bytearray()

    def write(self, data: bytes) -> None:
        self._check_open()
        self._pending += data

    def flush(self) -> None:
        self._check_open()
        if not self._pending:
            return
        try:
            self._sock.sendall(bytes(self._pending))
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e
        self._pending.clear()

    def close(self) -> None:
        if not self.closed and self._pending:
            self.flush()
        super().close()


class Transport:
    """
    The socket plus its three views.

    Created plaintext by open(); switched to TLS by start_tls().
    """

    def __init__(self, sock: socket.socket, encrypted: bool = False):
        self.sock = sock
        self.encrypted = encrypted
        self._build_streams(owns_socket=encrypted)

    def _build_streams(self, owns_socket: bool) -> None:
        self.reader = LineReader(self.sock, owns_socket)
        self.line_writer = LineWriter(self.sock, owns_socket)
        self.byte_writer = ByteWriter(self.sock, owns_socket)

    @classmethod
    def open(cls, host: str, port: int, timeout: Optional[float] = None) -> "Transport":
        """
        Open a plaintext TCP connection.

        Args:
            host: Daemon host name or address
            port: Daemon port
            timeout: Socket timeout in seconds (None blocks forever)

        Raises:
            TransportError: If the connection cannot be established
        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise TransportError(f"Cannot connect to {host}:{port}: {e}") from e
        logger.debug(f"Socket connected to {host}:{port}")
        return cls(sock)

    def send_line(self, text: str) -> None:
        self.line_writer.write_line(text)

    def receive_line(self) -> str:
        return self.reader.read_line()

    def send_chunk(self, data: bytes) -> None:
        """Write a block of raw bytes and flush it immediately."""
        self.byte_writer.write(data)
        self.byte_writer.flush()

    def start_tls(
        self,
        context: ssl.SSLContext,
        server_hostname: str,
        request_line: str,
    ) -> None:
        """
        Send the upgrade request and switch the live socket to TLS.

        The reader is closed before the request goes out so that no TLS
        bytes are consumed as text. The writers are closed after it. None
        of these closes touch the socket. The handshake then runs on the
        same socket, and the views are rebuilt on the TLS socket only once
        it has succeeded.

        Raises:
            TransportError: On I/O failure, unread plaintext data or a
                failed handshake
        """
        if self.encrypted:
            raise TransportError("Transport is already encrypted")
        if self.reader.has_pending_data():
            raise TransportError("Unread plaintext data would be lost by the upgrade")

        self.reader.close()
        self.line_writer.write_line(request_line)
        self.byte_writer.close()
        self.line_writer.close()

        try:
            tls_sock = context.wrap_socket(self.sock, server_hostname=server_hostname)
        except (OSError, ValueError) as e:
            raise TransportError(f"TLS handshake failed: {e}") from e

        self.sock = tls_sock
        self.encrypted = True
        self._build_streams(owns_socket=True)
        logger.debug(f"TLS established with {server_hostname}")

    def close(self) -> None:
        """Close all views and the socket. Errors are logged, never raised."""
        for stream in (self.reader, self.line_writer, self.byte_writer):
            try:
                stream.close()
            except (OSError, TransportError) as e:
                logger.warning(f"Error closing {type(stream).__name__}: {e}")
        try:
            self.sock.close()
        except OSError as e:
            logger.warning(f"Error closing socket: {e}")


def build_tls_context(
    verify_server_cert: bool = True,
    ca_file: Optional[str] = None,
    allow_legacy_tls: bool = False,
) -> ssl.SSLContext:
    """
    Create the client-side TLS context used for the encryption upgrade.

    Args:
        verify_server_cert: Check the daemon certificate and host name
        ca_file: Extra CA bundle, e.g. the daemon's self-signed certificate
        allow_legacy_tls: Accept TLS 1.0/1.1 for old daemons

    Returns:
        Configured SSLContext
    """
    context = ssl.create_default_context(cafile=ca_file or None)
    if not verify_server_cert:
        logger.warning("TLS certificate verification disabled; daemon identity is not checked")
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    if allow_legacy_tls:
        context.minimum_version = ssl.TLSVersion.TLSv1
        context.set_ciphers("DEFAULT:@SECLEVEL=0")
    return context
