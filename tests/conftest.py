"""Shared fixtures: a scripted socket standing in for the daemon."""

from typing import Iterator, Union
from unittest.mock import MagicMock, patch

import pytest

from hgd_client.client import HGDClient

_CREATE_CONNECTION = "hgd_client.protocol.transport.socket.create_connection"


class FakeSocket:
    """
    Socket double with scripted incoming data.

    Everything the client sends is recorded in `sent`. Reads return the
    scripted bytes in order, then EOF.
    """

    def __init__(self, incoming: bytes = b""):
        self.incoming = bytearray(incoming)
        self.sent = bytearray()
        self.closed = False

    def feed(self, data: Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.incoming += data

    def feed_lines(self, *lines: str) -> None:
        for line in lines:
            self.feed(line + "\r\n")

    def recv(self, n: int) -> bytes:
        if self.closed:
            raise OSError("socket closed")
        chunk = bytes(self.incoming[:n])
        del self.incoming[:n]
        return chunk

    def sendall(self, data: bytes) -> None:
        if self.closed:
            raise OSError("socket closed")
        self.sent += data

    def close(self) -> None:
        self.closed = True

    @property
    def sent_lines(self) -> list[str]:
        return self.sent.decode("utf-8", errors="replace").split("\r\n")[:-1]

    def clear_sent(self) -> None:
        self.sent.clear()


@pytest.fixture
def make_socket():
    """Factory for additional fake sockets (e.g. the TLS side)."""
    return FakeSocket


@pytest.fixture
def daemon_socket() -> FakeSocket:
    """The plaintext socket the client will connect over."""
    return FakeSocket()


@pytest.fixture
def create_connection(daemon_socket: FakeSocket) -> Iterator[MagicMock]:
    """Route socket.create_connection to the fake daemon socket."""
    with patch(_CREATE_CONNECTION, return_value=daemon_socket) as mock_create:
        yield mock_create


@pytest.fixture
def client() -> HGDClient:
    return HGDClient(timeout=5.0)


@pytest.fixture
def connected_client(
    client: HGDClient, daemon_socket: FakeSocket, create_connection: MagicMock
) -> HGDClient:
    """Client past the greeting and version check, with the send log cleared."""
    daemon_socket.feed_lines("ok|HGD ready", "ok|11")
    client.connect("hgd.example.org", 6633)
    daemon_socket.clear_sent()
    return client


@pytest.fixture
def authenticated_client(connected_client: HGDClient, daemon_socket: FakeSocket) -> HGDClient:
    """Connected client logged in as alice."""
    daemon_socket.feed_lines("ok")
    connected_client.login("alice", "secret")
    daemon_socket.clear_sent()
    return connected_client
