import json

import pytest

from albumplayer.catalog import Catalog, IdAllocator, load_catalog, normalize_name
from albumplayer.errors import CatalogError
from albumplayer.models import AudioSource, Marker, TrackOptions

CATALOG = {
    "albums": [
        {
            "name": "First Light",
            "artist": "The Examples",
            "date": "2019-03-01",
            "download_link": {"uri": "downloads/first-light.zip", "size": 120000000},
            "tracks": [
                {
                    "name": "Second Song",
                    "track_num": 2,
                    "duration": "3:05",
                    "sources": ["audio/second.mp3"],
                },
                {
                    "name": "Opener",
                    "track_num": 1,
                    "duration": 61000,
                    "sources": [
                        {"uri": "audio/opener.ogg", "mimetype": "audio/ogg"},
                        {"uri": "https://cdn.example/opener.mp3", "mimetype": "audio/mpeg", "size": 2400000},
                    ],
                    "lyrics": "lyrics/opener.lrc",
                    "writers": ["Ann", "Bo"],
                    "contributors": [{"name": "Cy", "credits": ["drums", "mixing"]}],
                    "markers": [{"time": "0:30", "label": "Chorus"}],
                    "recommended": True,
                },
            ],
        },
        {"name": "Undated Demos", "tracks": []},
        {"name": "Late Bloom", "date": "2023-11-20", "tracks": [{"name": "Only", "sources": ["/abs/only.mp3"]}]},
    ]
}


def test_id_allocator_is_monotonic():
    ids = IdAllocator()
    assert [ids.next(), ids.next(), ids.next()] == [1, 2, 3]
    assert ids.last == 3
    assert IdAllocator(start=10).next() == 11


def test_catalogs_do_not_share_ids():
    one, two = Catalog(), Catalog()
    assert one.new_track("a").id == 1
    assert two.new_track("b").id == 1


def test_normalize_name():
    assert normalize_name("Don’t STOP") == "don't stop"


class TestFromDict:
    def setup_method(self):
        self.catalog = Catalog.from_dict(CATALOG, base_dir=None)

    def test_albums_are_newest_first_with_undated_last(self):
        assert [a.name for a in self.catalog.albums] == ["Late Bloom", "First Light", "Undated Demos"]

    def test_tracks_are_sorted_by_number(self):
        album = self.catalog.find_album("first light")
        assert [t.name for t in album.tracks] == ["Opener", "Second Song"]
        assert album.duration == 61000 + 185000

    def test_track_details(self):
        track = self.catalog.find_track(self.catalog.find_album("First Light"), "OPENER")
        assert track.recommended
        assert track.writers == ["Ann", "Bo"]
        assert track.contributors[0].credits == ("drums", "mixing")
        assert track.markers == [Marker("0:30", "Chorus")]
        assert track.lyrics.source == "lyrics/opener.lrc"
        assert track.download_source().uri == "https://cdn.example/opener.mp3"

    def test_ids_follow_creation_order(self):
        assert self.catalog.album_ids.last == 3
        assert self.catalog.track_ids.last == 3
        assert self.catalog.get_album(1).name == "First Light"
        assert self.catalog.get_album(99) is None

    def test_album_of(self):
        album = self.catalog.find_album("Late Bloom")
        assert self.catalog.album_of(album.tracks[0]) is album
        assert self.catalog.album_of(None) is None

    def test_albums_property_is_a_copy(self):
        self.catalog.albums.clear()
        assert len(self.catalog) == 3

    @pytest.mark.parametrize("data", [
        [],
        {"albums": "nope"},
        {"albums": [{"tracks": []}]},
        {"albums": [{"name": "x", "tracks": [{"sources": []}]}]},
        {"albums": [{"name": "x", "tracks": [{"name": "t", "duration": -5}]}]},
        {"albums": [{"name": "x", "tracks": [{"name": "t", "duration": "abc"}]}]},
        {"albums": [{"name": "x", "tracks": [{"name": "t", "track_num": "2"}]}]},
        {"albums": [{"name": "x", "tracks": [{"name": "t", "markers": [{"time": "soon", "label": "Chorus"}]}]}]},
        {"albums": [{"name": "x", "tracks": [{"name": "t", "markers": [{"time": -1000, "label": "Intro"}]}]}]},
    ])
    def test_malformed(self, data):
        with pytest.raises(CatalogError):
            Catalog.from_dict(data)


def test_load_catalog_resolves_relative_paths(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")

    catalog = load_catalog(path)
    album = catalog.find_album("First Light")
    opener, second = album.tracks

    assert second.sources[0].uri == str(tmp_path / "audio/second.mp3")
    assert opener.sources[1].uri == "https://cdn.example/opener.mp3"
    assert opener.lyrics.source == str(tmp_path / "lyrics/opener.lrc")
    assert album.download_link.uri == str(tmp_path / "downloads/first-light.zip")
    assert catalog.find_album("Late Bloom").tracks[0].sources[0].uri == "/abs/only.mp3"


@pytest.mark.parametrize("content", [None, "{not json", '{"albums": 3}'])
def test_load_catalog_errors(tmp_path, content):
    path = tmp_path / "catalog.json"
    if content is not None:
        path.write_text(content, encoding="utf-8")

    with pytest.raises(CatalogError):
        load_catalog(path)


def test_equal_track_numbers_keep_their_order():
    catalog = Catalog()
    tracks = [
        catalog.new_track(name, TrackOptions(track_num=n, sources=[AudioSource(f"{name}.mp3")]))
        for name, n in [("c", 2), ("a", 1), ("b", 2), ("d", None)]
    ]
    album = catalog.new_album("Mixed", tracks)
    assert [t.name for t in album.tracks] == ["d", "a", "c", "b"]


def test_marker_times_are_validated():
    assert Marker("1:30", "Solo").time_ms == 90000
    with pytest.raises(CatalogError, match="invalid marker time"):
        Marker("soon", "Chorus")
    with pytest.raises(CatalogError):
        Marker(None, "Nothing")


def test_album_duration_counts_missing_durations_as_zero():
    catalog = Catalog()
    unknown = catalog.new_track("unknown", TrackOptions(track_num=1))
    known = catalog.new_track("known", TrackOptions(track_num=2, duration=1000))
    album = catalog.new_album("Partial", [unknown, known])

    assert unknown.duration is None
    assert album.duration == 1000

    unknown.duration = 2500
    assert album.duration == 3500
