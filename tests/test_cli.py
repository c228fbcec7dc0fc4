"""Tests for the command-line front-end."""

import json
import os
from pathlib import Path
from typing import Iterator
from unittest.mock import MagicMock, call, patch

import pytest

from hgd_client.cli import (
    EXIT_AUTH_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_NETWORK_ERROR,
    EXIT_SUCCESS,
    args_to_dict,
    parse_args,
    run,
)
from hgd_client.protocol.errors import ProtocolError, TransportError

ENTRY = "7|c.ogg|Artist|Title|carol|Album|Pop|200|320|48000|2|2020|3|0"


@pytest.fixture(autouse=True)
def clean_env() -> Iterator[None]:
    """Isolate from HGD_* variables and any config.yaml in the cwd."""
    with patch.dict(os.environ, {}, clear=True), patch("hgd_client.cli.setup_logging"):
        yield


@pytest.fixture
def mock_client() -> Iterator[MagicMock]:
    """Patch HGDClient so run() talks to a mock session."""
    with patch("hgd_client.cli.HGDClient") as mock_cls:
        client = MagicMock()
        client.__enter__.return_value = client
        client.__exit__.return_value = False
        mock_cls.from_config.return_value = client
        yield client


def _args(tmp_path: Path, *argv: str):
    return parse_args(["--config", str(tmp_path / "none.yaml"), *argv])


class TestParseArgs:
    """Tests for argument parsing."""

    def test_command_and_options(self) -> None:
        args = parse_args(["--host", "hgd.local", "--port", "7000", "ls"])
        assert args.command == "ls"
        assert args.host == "hgd.local"
        assert args.port == 7000

    def test_vote_with_track_id(self) -> None:
        args = parse_args(["vo", "42"])
        assert args.command == "vo"
        assert args.track_id == "42"

    def test_vote_without_track_id(self) -> None:
        assert parse_args(["vo"]).track_id is None

    def test_queue_files(self) -> None:
        args = parse_args(["queue", "a.ogg", "b.mp3"])
        assert args.files == [Path("a.ogg"), Path("b.mp3")]

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


class TestArgsToDict:
    """Tests for args_to_dict."""

    def test_maps_options(self) -> None:
        args = parse_args(
            [
                "--host", "h", "--user", "bob", "--password", "pw",
                "--encrypt", "--no-verify", "--legacy-tls", "ls",
            ]
        )
        assert args_to_dict(args) == {
            "daemon": {"host": "h"},
            "auth": {"username": "bob", "password": "pw"},
            "tls": {"enabled": True, "allow_legacy_tls": True, "verify_server_cert": False},
        }

    def test_unset_options_skipped(self) -> None:
        assert args_to_dict(parse_args(["ls"])) == {}

    def test_zero_timeout_kept(self) -> None:
        args = parse_args(["--timeout", "0", "ls"])
        assert args_to_dict(args) == {"daemon": {"timeout": 0.0}}


class TestRun:
    """Tests for run()."""

    def test_list(self, tmp_path: Path, mock_client: MagicMock, capsys) -> None:
        mock_client.list_playlist.return_value = [ENTRY]

        code = run(_args(tmp_path, "--host", "hgd.local", "ls"))

        assert code == EXIT_SUCCESS
        mock_client.connect.assert_called_once_with("hgd.local", 6633)
        mock_client.login.assert_not_called()
        assert "Artist - Title" in capsys.readouterr().out

    def test_list_json(self, tmp_path: Path, mock_client: MagicMock, capsys) -> None:
        mock_client.list_playlist.return_value = [ENTRY]

        code = run(_args(tmp_path, "--host", "hgd.local", "--json", "ls"))

        assert code == EXIT_SUCCESS
        output = json.loads(capsys.readouterr().out)
        assert output["count"] == 1
        assert output["playlist"][0]["track_id"] == 7

    def test_now_playing(self, tmp_path: Path, mock_client: MagicMock, capsys) -> None:
        mock_client.now_playing.return_value = "ok|0"
        assert run(_args(tmp_path, "--host", "hgd.local", "np")) == EXIT_SUCCESS
        assert "Nothing playing" in capsys.readouterr().out

    def test_encrypt_before_login(self, tmp_path: Path, mock_client: MagicMock) -> None:
        code = run(
            _args(
                tmp_path, "--host", "hgd.local", "--user", "bob", "--password", "pw",
                "--encrypt", "vo", "42",
            )
        )

        assert code == EXIT_SUCCESS
        calls = [c for c in mock_client.mock_calls if not c[0].startswith("__")]
        assert calls == [
            call.connect("hgd.local", 6633),
            call.upgrade_encryption(),
            call.login("bob", "pw"),
            call.vote_off("42"),
        ]

    def test_queue(self, tmp_path: Path, mock_client: MagicMock, capsys) -> None:
        code = run(
            _args(tmp_path, "--host", "hgd.local", "--user", "bob", "--password", "pw",
                  "queue", "a.ogg", "b.ogg")
        )
        assert code == EXIT_SUCCESS
        assert mock_client.queue.call_args_list == [call(Path("a.ogg")), call(Path("b.ogg"))]
        assert "Queued b.ogg" in capsys.readouterr().out

    def test_config_error(self, tmp_path: Path, mock_client: MagicMock) -> None:
        assert run(_args(tmp_path, "ls")) == EXIT_CONFIG_ERROR
        mock_client.connect.assert_not_called()

    def test_auth_command_needs_user(self, tmp_path: Path, mock_client: MagicMock) -> None:
        assert run(_args(tmp_path, "--host", "hgd.local", "id")) == EXIT_CONFIG_ERROR
        mock_client.connect.assert_not_called()

    def test_login_rejected(self, tmp_path: Path, mock_client: MagicMock) -> None:
        mock_client.login.side_effect = ProtocolError("bad user")
        code = run(_args(tmp_path, "--host", "hgd.local", "--user", "bob", "--password", "x", "id"))
        assert code == EXIT_AUTH_ERROR
        mock_client.whoami.assert_not_called()

    def test_network_error(self, tmp_path: Path, mock_client: MagicMock) -> None:
        mock_client.connect.side_effect = TransportError("Cannot connect")
        assert run(_args(tmp_path, "--host", "hgd.local", "ls")) == EXIT_NETWORK_ERROR

    def test_legacy_tls_reaches_client_config(self, tmp_path: Path) -> None:
        with patch("hgd_client.cli.HGDClient") as mock_cls:
            client = mock_cls.from_config.return_value
            client.__enter__.return_value = client
            client.__exit__.return_value = False
            client.list_playlist.return_value = []

            code = run(_args(tmp_path, "--host", "hgd.local", "--legacy-tls", "ls"))

        assert code == EXIT_SUCCESS
        config = mock_cls.from_config.call_args.args[0]
        assert config.tls.allow_legacy_tls is True
