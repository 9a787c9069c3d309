import math
from typing import Optional

import pytest

from albumplayer.catalog import Catalog
from albumplayer.lyrics import LyricTrack
from albumplayer.models import AudioSource, TrackOptions

LRC = """[ti:Sample]
[00:01.00]first line
[00:05.50]second line
this line has no timestamp
[00:12.00]
[01:02.03]last line
"""


class FakeTransport:
    """In-memory stand-in for an audio element."""

    def __init__(self, duration: float = 180.0):
        self.current_time = 0.0
        self._duration = duration
        self.paused = True
        self.ended = False
        self.loaded: list = []

    @property
    def duration(self) -> float:
        return self._duration

    def load(self, sources):
        self.loaded.append(list(sources))
        self.current_time = 0.0
        self.paused = True
        self.ended = False

    def play(self):
        self.paused = False

    def pause(self):
        self.paused = True


def lyric_fetcher(text: str = LRC, calls: Optional[list] = None):
    async def fetch(uri: str) -> str:
        if calls is not None:
            calls.append(uri)
        return text
    return fetch


@pytest.fixture
def make_catalog():
    """make_catalog([("A", ["a1", "a2"]), ("B", ["b1"])]) -> (catalog, {name: album}, {name: track})"""

    def _make(layout, with_lyrics: bool = False):
        catalog = Catalog()
        albums = {}
        tracks = {}
        for album_name, track_names in layout:
            album_tracks = []
            for i, name in enumerate(track_names, 1):
                track = catalog.new_track(name, TrackOptions(
                    duration=180000,
                    track_num=i,
                    sources=[AudioSource(f"{name}.mp3", mimetype="audio/mpeg", size=4_000_000)],
                    lyrics=LyricTrack(f"{name}.lrc", fetch=lyric_fetcher()) if with_lyrics else None,
                ))
                tracks[name] = track
                album_tracks.append(track)
            albums[album_name] = catalog.new_album(album_name, album_tracks)
        return catalog, albums, tracks

    return _make


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def nan_transport():
    return FakeTransport(duration=math.nan)
