"""Tests for reply line parsers."""

import pytest

from hgd_client.models import NowPlaying, PlaylistEntry, UserInfo
from hgd_client.protocol.errors import MalformedResponse

ENTRY = "7|c.ogg|Artist|Title|carol|Album|Pop|200|320|48000|2|2020|3|1"


class TestPlaylistEntry:
    """Tests for PlaylistEntry."""

    def test_from_line(self) -> None:
        entry = PlaylistEntry.from_line(ENTRY)
        assert entry.track_id == 7
        assert entry.filename == "c.ogg"
        assert entry.artist == "Artist"
        assert entry.title == "Title"
        assert entry.user == "carol"
        assert entry.album == "Album"
        assert entry.genre == "Pop"
        assert entry.duration == 200
        assert entry.bitrate == 320
        assert entry.samplerate == 48000
        assert entry.channels == 2
        assert entry.year == 2020
        assert entry.votes_needed == 3
        assert entry.voted is True

    def test_untagged_entry(self) -> None:
        entry = PlaylistEntry.from_line("3|b.mp3|||bob||||128|44100|2|0|3|0")
        assert entry.artist == ""
        assert entry.duration == 0
        assert entry.voted is False
        assert entry.display_name == "b.mp3"

    def test_display_name_tagged(self) -> None:
        assert PlaylistEntry.from_line(ENTRY).display_name == "Artist - Title"

    def test_too_few_fields(self) -> None:
        with pytest.raises(MalformedResponse):
            PlaylistEntry.from_line("1|a.ogg|Artist")

    def test_to_dict(self) -> None:
        d = PlaylistEntry.from_line(ENTRY).to_dict()
        assert d["track_id"] == 7
        assert d["voted"] is True
        assert len(d) == 14


class TestNowPlaying:
    """Tests for NowPlaying."""

    def test_nothing_playing(self) -> None:
        np = NowPlaying.from_line("ok|0")
        assert np.playing is False
        assert np.track is None
        assert np.to_dict() == {"playing": False, "track": None}

    def test_playing(self) -> None:
        np = NowPlaying.from_line("ok|1|" + ENTRY)
        assert np.playing is True
        assert np.track is not None
        assert np.track.track_id == 7
        assert np.to_dict()["track"]["title"] == "Title"

    def test_missing_flag(self) -> None:
        with pytest.raises(MalformedResponse):
            NowPlaying.from_line("ok")


class TestUserInfo:
    """Tests for UserInfo."""

    def test_admin(self) -> None:
        info = UserInfo.from_line("ok|alice|1|0")
        assert info.username == "alice"
        assert info.permissions == 1
        assert info.is_admin is True
        assert info.voted is False

    def test_regular_user_voted(self) -> None:
        info = UserInfo.from_line("ok|bob|0|1")
        assert info.is_admin is False
        assert info.voted is True
        assert info.to_dict() == {
            "username": "bob",
            "permissions": 0,
            "is_admin": False,
            "voted": True,
        }

    def test_incomplete(self) -> None:
        with pytest.raises(MalformedResponse):
            UserInfo.from_line("ok|alice")
