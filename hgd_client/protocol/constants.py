"""
Constants for the HGD daemon line protocol.
"""

from enum import Enum

# Connection defaults
DEFAULT_PORT = 6633
PROTOCOL_VERSION = "11"
DEFAULT_TIMEOUT = 30.0  # seconds, applied to connect and every read

# Wire format
LINE_TERMINATOR = "\r\n"
FIELD_SEPARATOR = "|"
ENCODING = "utf-8"

# Upload block size in bytes
BINARY_CHUNK = 4096

# Socket read size for the line reader
RECV_SIZE = 4096
MAX_LINE_LENGTH = 64 * 1024

# Characters stripped from both ends of every received line (whitespace,
# control characters and the NUL padding of encrypted blocks)
TRIM_CHARS = "".join(chr(c) for c in range(0x21))

# Status prefixes
STATUS_OK = "ok"
STATUS_ERR = "err"

# Number of fields in a playlist entry line
PLAYLIST_ENTRY_FIELDS = 14

# Permission bits reported by the "id" command
PERMISSION_ADMIN = 0x01


class Verb(str, Enum):
    """Commands understood by the daemon."""

    PROTO = "proto"
    USER = "user"
    LIST = "ls"
    NOW_PLAYING = "np"
    VOTE_OFF = "vo"
    QUEUE = "q"
    WHOAMI = "id"
    CHECK_ENCRYPTION = "encrypt?"
    ENCRYPT = "encrypt"
    QUIT = "bye"
