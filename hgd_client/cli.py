"""
HGD client CLI entry point.

Connects to a daemon, runs one command and disconnects.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from hgd_client import __version__
from hgd_client.client import HGDClient
from hgd_client.config import Config, ConfigError, load_config
from hgd_client.models import NowPlaying, PlaylistEntry, UserInfo
from hgd_client.protocol import HGDError, PreconditionViolation, ProtocolError

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_AUTH_ERROR = 2
EXIT_NETWORK_ERROR = 3

# Commands that need a logged-in session
AUTH_COMMANDS = {"vo", "queue", "id"}


def setup_logging(level: str = "info") -> None:
    """Configure logging to stderr, keeping stdout for command output."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )


def parse_args(argv: Any = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="hgd-client",
        description="Control an HGD shared playlist daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hgd-client --host hgd.example.org ls
  hgd-client --host hgd.example.org --user bob --password secret queue song.ogg
  hgd-client --config config.yaml --encrypt --json np

Environment Variables:
  HGD_HOST, HGD_PORT, HGD_TIMEOUT, HGD_USERNAME, HGD_PASSWORD
  HGD_TLS, HGD_TLS_VERIFY, HGD_TLS_CA_FILE, HGD_TLS_LEGACY, HGD_LOG_LEVEL
""",
    )

    # General
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("./config.yaml"),
        metavar="PATH",
        help="Path to config file (default: ./config.yaml)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )

    # Daemon
    daemon_group = parser.add_argument_group("Daemon")
    daemon_group.add_argument("--host", metavar="TEXT", help="Daemon host name or address")
    daemon_group.add_argument("--port", type=int, metavar="INT", help="Daemon port (default: 6633)")
    daemon_group.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Socket timeout, 0 to wait forever (default: 30)",
    )

    # Authentication
    auth_group = parser.add_argument_group("Authentication")
    auth_group.add_argument("--user", metavar="TEXT", help="Daemon username")
    auth_group.add_argument("--password", metavar="TEXT", help="Daemon password")

    # Encryption
    tls_group = parser.add_argument_group("Encryption")
    tls_group.add_argument(
        "--encrypt",
        action="store_true",
        help="Upgrade the connection to TLS before logging in",
    )
    tls_group.add_argument(
        "--no-verify",
        action="store_true",
        help="Accept any daemon certificate (insecure)",
    )
    tls_group.add_argument("--ca-file", metavar="PATH", help="CA bundle for the daemon certificate")
    tls_group.add_argument(
        "--legacy-tls",
        action="store_true",
        help="Allow TLS 1.0/1.1 for old daemons",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        metavar="LEVEL",
        help="Log level: debug, info, warning, error",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)
    commands.add_parser("proto", help="Show the daemon protocol version")
    commands.add_parser("ls", help="List the playlist")
    commands.add_parser("np", help="Show the track now playing")
    commands.add_parser("id", help="Show information about the logged in user")
    commands.add_parser("check-encryption", help="Show the daemon's encryption support")
    vo = commands.add_parser("vo", help="Vote off the track now playing")
    vo.add_argument("track_id", nargs="?", help="Only vote if this track is still playing")
    queue = commands.add_parser("queue", help="Upload files to the playlist")
    queue.add_argument("files", nargs="+", type=Path, metavar="FILE")

    return parser.parse_args(argv)


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def args_to_dict(args: argparse.Namespace) -> dict:
    """Convert argparse namespace to nested config dict."""
    result: dict = {}

    mappings = {
        "host": ("daemon", "host"),
        "port": ("daemon", "port"),
        "timeout": ("daemon", "timeout"),
        "user": ("auth", "username"),
        "password": ("auth", "password"),
        "encrypt": ("tls", "enabled"),
        "ca_file": ("tls", "ca_file"),
        "legacy_tls": ("tls", "allow_legacy_tls"),
        "log_level": ("logging", "level"),
    }

    for arg_name, path in mappings.items():
        value = getattr(args, arg_name, None)
        # Flags only override config when given
        if value is None or value is False:
            continue
        _set_nested(result, path, value)

    if getattr(args, "no_verify", False):
        _set_nested(result, ("tls", "verify_server_cert"), False)

    return result


def log_config(config: Config) -> None:
    """Log configuration summary (without sensitive data)."""
    logger.info(f"Daemon: {config.daemon.host}:{config.daemon.port}")
    if config.auth.username:
        logger.info(f"User: {config.auth.username}")
    if config.tls.enabled:
        verify = "on" if config.tls.verify_server_cert else "off"
        logger.info(f"Encryption: enabled (certificate verification {verify})")


def _print(data: Any, text: str, json_output: bool) -> None:
    if json_output:
        print(json.dumps(data, indent=2))
    elif text:
        print(text)


def run_command(client: HGDClient, args: argparse.Namespace) -> None:
    """
    Run the selected command on a connected client and print its result.

    Raises:
        HGDError: On any client or daemon failure
    """
    command = args.command
    json_output = args.json_output

    if command == "proto":
        version = client.proto()
        _print({"protocol": version}, version, json_output)

    elif command == "ls":
        entries = [PlaylistEntry.from_line(line) for line in client.list_playlist()]
        lines = [
            f"{e.track_id:>5}  {e.display_name}  [{e.user}]" + ("  (voted)" if e.voted else "")
            for e in entries
        ]
        _print(
            {"playlist": [e.to_dict() for e in entries], "count": len(entries)},
            "\n".join(lines) if lines else "Playlist is empty.",
            json_output,
        )

    elif command == "np":
        np = NowPlaying.from_line(client.now_playing())
        if np.track:
            text = f"Now playing: {np.track.display_name} [{np.track.user}] (id {np.track.track_id})"
        else:
            text = "Nothing playing."
        _print(np.to_dict(), text, json_output)

    elif command == "id":
        info = UserInfo.from_line(client.whoami())
        text = f"{info.username}" + (" (admin)" if info.is_admin else "")
        _print(info.to_dict(), text, json_output)

    elif command == "check-encryption":
        line = client.check_encryption()
        method = line.split("|", 1)[1] if "|" in line else ""
        _print({"method": method}, method or "none", json_output)

    elif command == "vo":
        client.vote_off(args.track_id)
        _print({"voted": True}, "Vote registered.", json_output)

    elif command == "queue":
        for path in args.files:
            client.queue(path)
            if not json_output:
                print(f"Queued {path.name}")
        if json_output:
            _print({"queued": [p.name for p in args.files]}, "", json_output)


def run(args: argparse.Namespace) -> int:
    """
    Connect, run the command and disconnect.

    Returns:
        Exit code
    """
    setup_logging("warning")

    try:
        config = load_config(args.config, args_to_dict(args))
        setup_logging(config.logging.level)
        log_config(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    if args.command in AUTH_COMMANDS and not config.auth.username:
        logger.error(f"Command '{args.command}' requires a username (--user)")
        return EXIT_CONFIG_ERROR

    try:
        with HGDClient.from_config(config) as client:
            client.connect(config.daemon.host, config.daemon.port)

            if config.tls.enabled:
                client.upgrade_encryption()

            if config.auth.username:
                try:
                    client.login(config.auth.username, config.auth.password)
                except (ProtocolError, PreconditionViolation) as e:
                    logger.error(f"Authentication failed: {e}")
                    return EXIT_AUTH_ERROR

            run_command(client, args)
        return EXIT_SUCCESS

    except ValueError as e:
        logger.error(f"Invalid argument: {e}")
        return EXIT_CONFIG_ERROR

    except HGDError as e:
        logger.error(f"Daemon error: {e}")
        return EXIT_NETWORK_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0=success, 1=config error, 2=auth error, 3=network error
    """
    return run(parse_args())


if __name__ == "__main__":
    sys.exit(main())
