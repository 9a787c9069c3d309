import pytest

from albumplayer.links import Selection, build_track_url, parse_track_url, resolve_selection


def test_build_and_parse():
    url = build_track_url("http://music.example/player", "Night Drive", "Neon Rain", "1:35")
    selection = parse_track_url(url)

    assert selection == Selection("Night Drive", "Neon Rain", 95000)


def test_build_keeps_unrelated_params_and_drops_stale_time():
    url = build_track_url("http://music.example/?theme=dark&time=10", "A", "B")
    params = parse_track_url(url)

    assert "theme=dark" in url
    assert "time=" not in url
    assert params.time_ms is None


def test_build_replaces_existing_selection():
    url = build_track_url("http://music.example/?album=Old&track=Old", "New", "Song")
    assert parse_track_url(url) == Selection("New", "Song", None)


@pytest.mark.parametrize("value, expected", [
    ("95", 95000),
    ("0", 0),
    ("1:35", 95000),
    ("12:05", 725000),
    ("1:5", None),
    ("abc", None),
    ("-3", None),
    ("", None),
])
def test_time_parameter(value, expected):
    url = f"http://music.example/?album=A&track=B&time={value}"
    assert parse_track_url(url).time_ms == expected


def test_missing_params():
    assert parse_track_url("http://music.example/") == Selection()


class TestResolve:
    def test_case_insensitive_with_apostrophes(self, make_catalog):
        catalog, albums, tracks = make_catalog([("Don’t Look Back", ["It’s Late"]), ("Other", ["x"])])

        album, track = resolve_selection(catalog, Selection("don't look back", "IT'S LATE"))
        assert album is albums["Don’t Look Back"]
        assert track is tracks["It’s Late"]

    def test_track_is_looked_up_inside_the_album(self, make_catalog):
        catalog, albums, _ = make_catalog([("A", ["a1"]), ("B", ["b1"])])

        assert resolve_selection(catalog, Selection("A", "b1")) == (albums["A"], None)

    def test_unknown_album(self, make_catalog):
        catalog, _, _ = make_catalog([("A", ["a1"])])
        assert resolve_selection(catalog, Selection("Nope", "a1")) == (None, None)

    def test_round_trip_through_a_url(self, make_catalog):
        catalog, albums, tracks = make_catalog([("Songs & Stories", ["One? Two!"])])
        url = build_track_url("http://localhost/", "Songs & Stories", "One? Two!")

        assert resolve_selection(catalog, parse_track_url(url)) == (
            albums["Songs & Stories"], tracks["One? Two!"],
        )
