"""
Structured views of daemon reply lines.

The client returns playlist, now-playing and identity replies as raw
lines. These helpers parse them for callers that want fields.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .protocol.constants import FIELD_SEPARATOR, PERMISSION_ADMIN, PLAYLIST_ENTRY_FIELDS
from .protocol.errors import MalformedResponse


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


@dataclass
class PlaylistEntry:
    """One track in the daemon's playlist."""

    track_id: int
    filename: str
    artist: str = ""
    title: str = ""
    user: str = ""
    album: str = ""
    genre: str = ""
    duration: int = 0  # seconds
    bitrate: int = 0  # kbps
    samplerate: int = 0  # Hz
    channels: int = 0
    year: int = 0
    votes_needed: int = 0
    voted: bool = False

    @classmethod
    def from_fields(cls, fields: list[str], line: str = "") -> "PlaylistEntry":
        if len(fields) < PLAYLIST_ENTRY_FIELDS:
            raise MalformedResponse(
                f"Playlist entry has {len(fields)} fields, expected {PLAYLIST_ENTRY_FIELDS}",
                line,
            )
        return cls(
            track_id=_to_int(fields[0]),
            filename=fields[1],
            artist=fields[2],
            title=fields[3],
            user=fields[4],
            album=fields[5],
            genre=fields[6],
            duration=_to_int(fields[7]),
            bitrate=_to_int(fields[8]),
            samplerate=_to_int(fields[9]),
            channels=_to_int(fields[10]),
            year=_to_int(fields[11]),
            votes_needed=_to_int(fields[12]),
            voted=fields[13] == "1",
        )

    @classmethod
    def from_line(cls, line: str) -> "PlaylistEntry":
        """Parse a line returned by HGDClient.list_playlist()."""
        return cls.from_fields(line.split(FIELD_SEPARATOR), line)

    @property
    def display_name(self) -> str:
        """Artist - title when tagged, otherwise the filename."""
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.title or self.filename

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "track_id": self.track_id,
            "filename": self.filename,
            "artist": self.artist,
            "title": self.title,
            "user": self.user,
            "album": self.album,
            "genre": self.genre,
            "duration": self.duration,
            "bitrate": self.bitrate,
            "samplerate": self.samplerate,
            "channels": self.channels,
            "year": self.year,
            "votes_needed": self.votes_needed,
            "voted": self.voted,
        }


@dataclass
class NowPlaying:
    """Reply to the now-playing command."""

    playing: bool
    track: Optional[PlaylistEntry] = None

    @classmethod
    def from_line(cls, line: str) -> "NowPlaying":
        """Parse ok|<playing?>[|<playlist entry fields>]."""
        fields = line.split(FIELD_SEPARATOR)[1:]
        if not fields:
            raise MalformedResponse("Missing playing flag", line)
        if fields[0] != "1":
            return cls(playing=False)
        return cls(playing=True, track=PlaylistEntry.from_fields(fields[1:], line))

    def to_dict(self) -> dict[str, Any]:
        return {
            "playing": self.playing,
            "track": self.track.to_dict() if self.track else None,
        }


@dataclass
class UserInfo:
    """Reply to the identity command."""

    username: str
    permissions: int = 0
    voted: bool = False

    @classmethod
    def from_line(cls, line: str) -> "UserInfo":
        """Parse ok|<username>|<permission mask>|<voted?>."""
        fields = line.split(FIELD_SEPARATOR)[1:]
        if len(fields) < 3:
            raise MalformedResponse("Incomplete user information", line)
        return cls(
            username=fields[0],
            permissions=_to_int(fields[1]),
            voted=fields[2] == "1",
        )

    @property
    def is_admin(self) -> bool:
        return bool(self.permissions & PERMISSION_ADMIN)

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "permissions": self.permissions,
            "is_admin": self.is_admin,
            "voted": self.voted,
        }
