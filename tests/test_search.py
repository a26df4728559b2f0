import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))
from tunes import search
from tunes.search import Track, search_tracks


def _fake_youtube_dl(response=None, error=None, calls=None):
    """Build a stand-in for yt_dlp.YoutubeDL."""

    class FakeYoutubeDL:
        def __init__(self, opts):
            self.opts = opts

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def extract_info(self, url, download=True):
            if calls is not None:
                calls.append((url, download, self.opts))
            if error is not None:
                raise error
            return response

    return FakeYoutubeDL


def _entry(n, **overrides):
    entry = {
        "id": f"vid{n}",
        "url": f"https://www.youtube.com/watch?v=vid{n}",
        "title": f"Track {n}",
        "duration": 180 + n,
        "uploader": f"Artist {n}",
    }
    entry.update(overrides)
    return entry


class TestSearchTracks:
    """Tests for the search adapter."""

    def test_maps_entries_in_order(self, monkeypatch):
        response = {"entries": [_entry(1), _entry(2), _entry(3)]}
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl(response))

        tracks = search_tracks("lofi beats")

        assert [t.id for t in tracks] == ["vid1", "vid2", "vid3"]
        assert tracks[0] == Track(
            title="Track 1",
            id="vid1",
            url="https://www.youtube.com/watch?v=vid1",
            duration_text="3:01",
            author="Artist 1",
        )

    def test_query_uses_limit(self, monkeypatch):
        calls = []
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl({"entries": []}, calls=calls))

        search_tracks("lofi beats", limit=5)

        url, download, opts = calls[0]
        assert url == "ytsearch5:lofi beats"
        assert download is False
        assert opts["extract_flat"] is True

    def test_at_most_limit_results(self, monkeypatch):
        response = {"entries": [_entry(n) for n in range(15)]}
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl(response))

        assert len(search_tracks("lofi")) == 10

    def test_provider_error_is_empty_result(self, monkeypatch):
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl(error=RuntimeError("network down")))

        assert search_tracks("lofi") == []

    def test_malformed_response_is_empty_result(self, monkeypatch):
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl(response=None))

        assert search_tracks("lofi") == []

    def test_no_entries(self, monkeypatch):
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl({"entries": None}))

        assert search_tracks("zzzzxyq123") == []

    def test_missing_fields_get_defaults(self, monkeypatch):
        entry = {"id": "abc", "title": None, "channel": "Some Channel"}
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl({"entries": [entry, None, {"title": "no id"}]}))

        tracks = search_tracks("lofi")

        assert len(tracks) == 1
        assert tracks[0].title == "Unknown"
        assert tracks[0].author == "Some Channel"
        assert tracks[0].url == "https://www.youtube.com/watch?v=abc"
        assert tracks[0].duration_text == "0:00"

    def test_duration_string_fallback(self, monkeypatch):
        entry = _entry(1, duration=None, duration_string="12:34")
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl({"entries": [entry]}))

        assert search_tracks("lofi")[0].duration_text == "12:34"

    def test_long_duration(self, monkeypatch):
        entry = _entry(1, duration=3723.0)
        monkeypatch.setattr(search.yt_dlp, "YoutubeDL", _fake_youtube_dl({"entries": [entry]}))

        assert search_tracks("lofi")[0].duration_text == "1:02:03"


class TestTrack:
    """Tests for the track record."""

    def test_label(self):
        track = Track("Song", "id1", "https://www.youtube.com/watch?v=id1", "3:45", "Band")
        assert track.label == "Song - Band [3:45]"

    def test_immutable(self):
        track = Track("Song", "id1", "https://www.youtube.com/watch?v=id1", "3:45", "Band")
        with pytest.raises(AttributeError):
            track.title = "Other"
