"""
HGD daemon client.

Typical flow: create the client, connect() to a daemon, optionally
upgrade_encryption(), login(), run commands, disconnect(). A client
handles one connection at a time and can be reused after disconnecting.

The client is synchronous and not thread-safe: every command is a
blocking request/response round-trip on a single socket.
"""

import logging
import os
import ssl
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from .protocol.codec import Response, format_command, parse_response
from .protocol.constants import (
    BINARY_CHUNK,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    FIELD_SEPARATOR,
    PROTOCOL_VERSION,
    Verb,
)
from .protocol.errors import (
    AlreadyConnected,
    DisconnectError,
    EncryptionRejected,
    HandshakeRejected,
    MalformedResponse,
    NotAuthenticated,
    NotConnected,
    PreconditionViolation,
    ProtocolError,
    ProtocolMismatch,
    ServerRejectedQuit,
    TransportError,
)
from .protocol.transport import Transport, build_tls_context

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Connection and authentication state."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


class TransportState(Enum):
    """Encryption state of the live transport."""

    PLAIN = "plain"
    NEGOTIATING = "negotiating"
    ENCRYPTED = "encrypted"
    BROKEN = "broken"  # Stream out of step, only disconnect() is allowed


def _mask_credentials(line: str) -> str:
    """Hide the password in a user command for logging."""
    parts = line.split(FIELD_SEPARATOR)
    if parts[0] == Verb.USER.value and len(parts) > 2:
        return FIELD_SEPARATOR.join(parts[:2] + ["****"])
    return line


class HGDClient:
    """Client session for a single HGD daemon connection."""

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        tls_context: Optional[ssl.SSLContext] = None,
        chunk_size: int = BINARY_CHUNK,
    ):
        """
        Initialize client.

        Args:
            timeout: Socket timeout in seconds for connect and reads
                (None blocks forever)
            tls_context: Context used by upgrade_encryption(); a verifying
                default context is built when omitted
            chunk_size: Upload block size in bytes
        """
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._tls_context = tls_context
        self._reset()

    @classmethod
    def from_config(cls, config: "Config") -> "HGDClient":
        """Build a client from loaded configuration."""
        tls_context = build_tls_context(
            verify_server_cert=config.tls.verify_server_cert,
            ca_file=config.tls.ca_file or None,
            allow_legacy_tls=config.tls.allow_legacy_tls,
        )
        return cls(timeout=config.daemon.timeout or None, tls_context=tls_context)

    def _reset(self) -> None:
        self._host: Optional[str] = None
        self._port: Optional[int] = None
        self._username: Optional[str] = None
        self._password: Optional[str] = None
        self._state = SessionState.DISCONNECTED
        self._transport_state = TransportState.PLAIN
        self._transport: Optional[Transport] = None

    def __enter__(self) -> "HGDClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.is_connected:
            try:
                self.disconnect(send_quit=True)
            except DisconnectError as e:
                logger.warning(f"Quit handshake failed: {e}")

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def username(self) -> Optional[str]:
        return self._username

    @property
    def password(self) -> Optional[str]:
        return self._password

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transport_state(self) -> TransportState:
        return self._transport_state

    @property
    def is_connected(self) -> bool:
        return self._state is not SessionState.DISCONNECTED

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def is_encrypted(self) -> bool:
        return self._transport_state is TransportState.ENCRYPTED

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def _active_transport(self) -> Transport:
        if self._transport is None:
            raise NotConnected()
        if self._transport_state is TransportState.BROKEN:
            raise TransportError("Connection unusable; disconnect and reconnect")
        return self._transport

    def _require_connected(self) -> Transport:
        if self._state is SessionState.DISCONNECTED:
            raise NotConnected()
        return self._active_transport()

    def _require_authenticated(self) -> Transport:
        transport = self._require_connected()
        if self._state is not SessionState.AUTHENTICATED:
            raise NotAuthenticated()
        return transport

    # -------------------------------------------------------------------------
    # Line primitives
    # -------------------------------------------------------------------------

    def _mark_broken(self, reason: object) -> None:
        """Refuse further traffic; the line stream can no longer be trusted."""
        if self._transport_state is not TransportState.BROKEN:
            logger.warning(f"Transport unusable: {reason}")
        self._transport_state = TransportState.BROKEN

    def send_line(self, text: str) -> None:
        """Send one line; the protocol terminator is appended."""
        transport = self._active_transport()
        logger.debug(f"TX: {_mask_credentials(text)}")
        try:
            transport.send_line(text)
        except TransportError as e:
            self._mark_broken(e)
            raise

    def receive_line(self) -> str:
        """Block until one line arrives and return it trimmed."""
        transport = self._active_transport()
        try:
            line = transport.receive_line()
        except TransportError as e:
            self._mark_broken(e)
            raise
        logger.debug(f"RX: {line}")
        return line

    def _receive_response(self) -> Response:
        line = self.receive_line()
        try:
            return parse_response(line)
        except MalformedResponse as e:
            self._mark_broken(e)
            raise

    def _request(self, verb: Verb, *args: object) -> Response:
        """Send a command and return its ok response; raise on err."""
        self.send_line(format_command(verb, args))
        response = self._receive_response()
        if not response.ok:
            raise ProtocolError(response.message)
        return response

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def connect(self, host: str, port: int = DEFAULT_PORT) -> None:
        """
        Connect to a daemon and check its protocol version.

        Args:
            host: Daemon host name or address
            port: Daemon port

        Raises:
            AlreadyConnected: If this client is already connected
            TransportError: If the socket cannot be opened or fails
            HandshakeRejected: If the daemon greeting is not ok
            ProtocolMismatch: If the daemon protocol version differs
        """
        if self._state is not SessionState.DISCONNECTED:
            raise AlreadyConnected(self._host or "", self._port or 0)

        transport = Transport.open(host, port, self.timeout)
        self._transport = transport
        self._transport_state = TransportState.PLAIN

        try:
            greeting = self._receive_response()
            if not greeting.ok:
                raise HandshakeRejected(greeting.message)

            version = self._proto()
            if version.lower() != PROTOCOL_VERSION.lower():
                raise ProtocolMismatch(PROTOCOL_VERSION, version)
        except Exception:
            transport.close()
            self._reset()
            raise

        self._host = host
        self._port = port
        self._state = SessionState.CONNECTED
        logger.info(f"Connected to {host}:{port} (protocol {version})")

    def disconnect(self, send_quit: bool = True) -> None:
        """
        Close the connection and reset the session.

        The socket is always closed. If the quit handshake fails, the
        error is raised after teardown.

        Args:
            send_quit: Say goodbye to the daemon before closing

        Raises:
            NotConnected: If not connected
            ServerRejectedQuit: If the daemon answered the quit with an error
            DisconnectError: If the quit exchange failed on the transport
        """
        if self._state is SessionState.DISCONNECTED or self._transport is None:
            raise NotConnected()

        failure: Optional[DisconnectError] = None
        cause: Optional[Exception] = None

        if send_quit:
            if self._transport_state is TransportState.BROKEN:
                logger.warning("Transport unusable, closing without quit command")
            else:
                try:
                    self.send_line(format_command(Verb.QUIT))
                    response = self._receive_response()
                    if not response.ok:
                        failure = ServerRejectedQuit(response.message)
                except (TransportError, MalformedResponse) as e:
                    failure = DisconnectError(f"Quit handshake failed: {e}")
                    cause = e

        host = self._host
        self._transport.close()
        self._reset()
        logger.info(f"Disconnected from {host}")

        if failure is not None:
            raise failure from cause

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _proto(self) -> str:
        response = self._request(Verb.PROTO)
        if not response.fields or not response.fields[0]:
            raise MalformedResponse("Missing protocol version", response.line)
        return response.fields[0]

    def proto(self) -> str:
        """Return the daemon's protocol version string."""
        self._require_connected()
        return self._proto()

    def login(self, username: str, password: str) -> None:
        """
        Authenticate against the daemon.

        Any previous authentication is dropped first, so a failed login
        leaves the session unauthenticated.

        Raises:
            PreconditionViolation: If username is empty or password is None
            ProtocolError: If the daemon rejects the credentials
        """
        self._require_connected()

        self._state = SessionState.CONNECTED
        self._username = None
        self._password = None

        if not username:
            raise PreconditionViolation("Null or empty username")
        if password is None:
            raise PreconditionViolation("Null password")

        self._request(Verb.USER, username, password)

        self._state = SessionState.AUTHENTICATED
        self._username = username
        self._password = password
        logger.info(f"Logged in as {username}")

    def list_playlist(self) -> list[str]:
        """
        Fetch the playlist.

        Returns:
            One raw line per entry, in playlist order:
            <track-id>|<filename>|<artist>|<title>|<user>|<album>|<genre>|
            <duration>|<bitrate>|<samplerate>|<channels>|<year>|
            <votes-needed>|<voted?>
        """
        self._require_connected()
        response = self._request(Verb.LIST)

        try:
            count = int(response.fields[0])
        except (IndexError, ValueError):
            count = -1
        if count < 0:
            # Entry lines may follow, so the stream is out of step
            self._mark_broken("invalid playlist length")
            raise MalformedResponse("Invalid playlist length", response.line)

        return [self.receive_line() for _ in range(count)]

    def now_playing(self) -> str:
        """
        Return the now-playing line.

        Format: ok|<playing?>[|<playlist entry fields>]. When <playing?>
        is 0 no further fields follow.
        """
        self._require_connected()
        return self._request(Verb.NOW_PLAYING).line

    def vote_off(self, track_id: Optional[Union[int, str]] = None) -> None:
        """
        Vote to skip the current track.

        Passing the track id makes the vote apply only if that track is
        still playing, which avoids voting off the next song by accident.
        """
        self._require_authenticated()
        args = () if track_id is None else (track_id,)
        self._request(Verb.VOTE_OFF, *args)

    def queue(self, path: Union[str, "os.PathLike[str]"]) -> None:
        """
        Upload a file to the playlist.

        After the daemon accepts the q|<name>|<size> request, the file
        content is streamed in fixed-size blocks, each flushed before the
        next is read. The daemon confirms with a final status line.

        Raises:
            NotAuthenticated: If not logged in
            PreconditionViolation: If the path is missing or a directory
            ProtocolError: If the daemon refuses the upload or the file
            TransportError: On I/O failure, or if the file ends before its
                announced size
        """
        transport = self._require_authenticated()

        path = Path(path)
        if not path.exists():
            raise PreconditionViolation(f"No such file: {path}")
        if path.is_dir():
            raise PreconditionViolation(f"Cannot send a directory: {path}")

        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            self._request(Verb.QUEUE, path.name, size)

            # The daemon reads exactly the announced size, however the file changes
            remaining = size
            try:
                while remaining > 0:
                    chunk = f.read(min(self.chunk_size, remaining))
                    if not chunk:
                        raise TransportError(
                            f"{path.name} ended {remaining} bytes short of its announced size"
                        )
                    transport.send_chunk(chunk)
                    remaining -= len(chunk)
            except OSError as e:
                self._mark_broken(e)
                raise TransportError(f"Cannot read {path.name}: {e}") from e
            except TransportError as e:
                self._mark_broken(e)
                raise

            response = self._receive_response()
            if not response.ok:
                raise ProtocolError(response.message)

        logger.info(f"Queued {path.name} ({size} bytes)")

    def whoami(self) -> str:
        """Return ok|<username>|<permission mask>|<voted?> for this session."""
        self._require_authenticated()
        return self._request(Verb.WHOAMI).line

    def check_encryption(self) -> str:
        """Return ok|<method> describing the daemon's encryption support."""
        self._require_connected()
        return self._request(Verb.CHECK_ENCRYPTION).line

    def upgrade_encryption(self, context: Optional[ssl.SSLContext] = None) -> str:
        """
        Switch the live connection to TLS.

        Either the whole upgrade succeeds, or the transport is marked
        broken and the session must be disconnected. There is no fallback
        to plaintext.

        Args:
            context: TLS context to use instead of the configured one

        Returns:
            The daemon's status line, read over the encrypted channel

        Raises:
            TransportError: On I/O failure or a failed TLS handshake
            EncryptionRejected: If the daemon's final status is an error
        """
        transport = self._require_connected()
        if self._transport_state is TransportState.ENCRYPTED:
            raise PreconditionViolation("Connection already encrypted")

        if context is None:
            if self._tls_context is None:
                self._tls_context = build_tls_context()
            context = self._tls_context

        self._transport_state = TransportState.NEGOTIATING
        logger.debug("Starting TLS upgrade")
        try:
            transport.start_tls(context, self._host or "", format_command(Verb.ENCRYPT))
            response = self._receive_response()
        except Exception:
            self._transport_state = TransportState.BROKEN
            raise

        if not response.ok:
            self._transport_state = TransportState.BROKEN
            raise EncryptionRejected(response.message)

        self._transport_state = TransportState.ENCRYPTED
        logger.info(f"Connection to {self._host} encrypted")
        return response.line
