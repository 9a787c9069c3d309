"""HTTP and WebSocket surface, through Starlette's TestClient."""
import pytest
from starlette.testclient import TestClient

from albumplayer import errors
from albumplayer.catalog import Catalog
from albumplayer.engine import PlayerEngine
from albumplayer.models import AudioSource, Marker, TrackOptions
from albumplayer.web.server import create_app

from .conftest import FakeTransport


@pytest.fixture(autouse=True)
def _errors_to_tmp(tmp_path, monkeypatch):
    monkeypatch.setattr(errors, "ERRORS_LOG", tmp_path / "errors.log")


@pytest.fixture
def setup(make_catalog):
    catalog, albums, tracks = make_catalog([("Night Drive", ["Neon Rain", "Overpass"]), ("B", ["b1"])], with_lyrics=True)
    tracks["Neon Rain"].markers = [Marker(30000, "Chorus")]
    transport = FakeTransport()
    engine = PlayerEngine(catalog, transport, base_url="http://testserver/")
    return engine, transport, albums, tracks


def _receive_until(ws, event_type, limit=20):
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == event_type:
            return message
    raise AssertionError(f"no {event_type} message")


def test_health(setup):
    engine, *_ = setup
    with TestClient(create_app(engine)) as client:
        body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["albums"] == 2


def test_startup_selects_the_first_track(setup):
    engine, transport, _, tracks = setup
    with TestClient(create_app(engine)) as client:
        body = client.get("/api/now-playing").json()
    assert body["now_playing"]["name"] == "Neon Rain"
    assert body["viewing"]["name"] == "Night Drive"
    assert transport.paused


def test_startup_honours_a_shared_link(setup):
    engine, transport, _, _ = setup
    app = create_app(engine, initial_url="http://testserver/?album=b&track=B1&time=20")
    with TestClient(app) as client:
        body = client.get("/api/now-playing").json()
    assert body["now_playing"]["name"] == "b1"
    assert transport.current_time == 20.0


def test_albums(setup):
    engine, _, albums, _ = setup
    with TestClient(create_app(engine)) as client:
        listing = client.get("/api/albums").json()
        detail = client.get(f"/api/albums/{albums['Night Drive'].id}").json()
        missing = client.get("/api/albums/999")

    assert [a["name"] for a in listing["albums"]] == ["Night Drive", "B"]
    assert listing["viewing"] == albums["Night Drive"].id
    assert [t["name"] for t in detail["tracks"]] == ["Neon Rain", "Overpass"]
    assert detail["duration"] == "06:00"
    assert missing.status_code == 404


def test_lyrics(setup):
    engine, *_ = setup
    with TestClient(create_app(engine)) as client:
        body = client.get("/api/lyrics", params={"album": "night drive", "track": "overpass", "time": "00:06"}).json()
        missing = client.get("/api/lyrics", params={"album": "night drive", "track": "nope"})

    assert body["times"] == ["00:01", "00:05", "00:12", "01:02"]
    assert body["active"] == {"index": 1, "line": "second line"}
    assert missing.status_code == 404


@pytest.mark.parametrize("time, index", [("0:05", 1), ("6", 1), ("1:02", 3), ("00:00", None)])
def test_lyrics_time_is_normalized(setup, time, index):
    engine, *_ = setup
    with TestClient(create_app(engine)) as client:
        body = client.get("/api/lyrics", params={"album": "Night Drive", "track": "Overpass", "time": time}).json()
    active = body["active"]
    assert (active["index"] if active else None) == index


def test_lyrics_rejects_a_malformed_time(setup):
    engine, *_ = setup
    with TestClient(create_app(engine)) as client:
        response = client.get("/api/lyrics", params={"album": "Night Drive", "track": "Overpass", "time": "soon"})
    assert response.status_code == 400


def test_markers(setup):
    engine, *_ = setup
    params = {"album": "Night Drive", "track": "Neon Rain"}
    with TestClient(create_app(engine)) as client:
        body = client.get("/api/markers", params={**params, "bar_width": "400"}).json()
        bad = client.get("/api/markers", params={**params, "bar_width": "wide"})

    assert body["markers"][0]["label"] == "Chorus"
    assert body["markers"][0]["offset"] == pytest.approx(30000 / 180000)
    assert bad.status_code == 400


def test_share_link(setup):
    engine, *_ = setup
    with TestClient(create_app(engine)) as client:
        body = client.get("/api/link", params={"time": "0:42"}).json()
    assert body["url"].startswith("http://testserver/?album=Night")
    assert "track=Neon" in body["url"]


def test_websocket_sync_and_commands(setup):
    engine, transport, _, tracks = setup
    with TestClient(create_app(engine)) as client:
        with client.websocket_connect("/ws") as ws:
            sync = ws.receive_json()
            assert sync["type"] == "sync"
            assert sync["data"]["now_playing"]["name"] == "Neon Rain"

            ws.send_json({"type": "next"})
            message = _receive_until(ws, "now_playing")
            assert message["data"]["name"] == "Overpass"

            ws.send_json({"type": "pause"})
            state = _receive_until(ws, "playback_state")
            while state["data"]["playing"]:
                state = _receive_until(ws, "playback_state")
            assert state["data"]["paused"]

    assert engine.cursor.current_track is tracks["Overpass"]


def test_websocket_select_track(setup):
    engine, _, albums, tracks = setup
    with TestClient(create_app(engine)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "select_track", "album_id": albums["B"].id, "track_id": tracks["b1"].id})
            message = _receive_until(ws, "now_playing")
    assert message["data"]["name"] == "b1"


def test_websocket_reports_navigation_errors(tmp_path):
    catalog = Catalog()
    catalog.new_album("Fine", [catalog.new_track("ok", TrackOptions(sources=[AudioSource("ok.mp3")]))])
    catalog.new_album("Broken", [catalog.new_track("silent", TrackOptions())])
    engine = PlayerEngine(catalog, FakeTransport())

    with TestClient(create_app(engine)) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "next"})
            message = _receive_until(ws, "error")

    assert message["data"]["message"]
    assert (tmp_path / "errors.log").exists()
