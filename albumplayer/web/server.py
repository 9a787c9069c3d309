"""Starlette app — HTTP routes + WebSocket for the player engine."""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..config import APP_VERSION, DEFAULT_BAR_WIDTH
from ..engine import PlayerEngine, _album_summary
from ..errors import NavigationError, format_error
from ..links import Selection, build_track_url, resolve_selection
from ..utils import parse_seek_time, pretty_duration_ms
from .state import PlayerEvent

logger = logging.getLogger(__name__)

_engine: Optional[PlayerEngine] = None


# ── Health ───────────────────────────────────────────────────────────────────

async def health(request):
    return JSONResponse({
        "status": "ok",
        "version": APP_VERSION,
        "albums": len(_engine.catalog),
        "clients": _engine.state.client_count,
    })


# ── Catalog ──────────────────────────────────────────────────────────────────

async def list_albums(request):
    return JSONResponse({
        "albums": [_album_summary(a) for a in _engine.catalog.albums],
        "viewing": _engine.cursor.current_album.id if _engine.cursor.current_album else None,
    })


async def album_detail(request):
    album = _engine.catalog.get_album(request.path_params["album_id"])
    if album is None:
        return JSONResponse({"error": "album not found"}, status_code=404)
    return JSONResponse({
        **_album_summary(album),
        "description": album.description,
        "tracks": [
            {
                "id": t.id,
                "name": t.name,
                "track_num": t.track_num,
                "duration": pretty_duration_ms(t.duration),
                "recommended": t.recommended,
                "url": build_track_url(_engine.base_url, album.name, t.name),
            }
            for t in album.tracks
        ],
    })


async def now_playing(request):
    return JSONResponse(_engine.get_snapshot())


def _find_track(request: Request):
    selection = Selection(
        album=request.query_params.get("album"),
        track=request.query_params.get("track"),
    )
    return resolve_selection(_engine.catalog, selection)


async def lyrics_at(request):
    """?album=&track=[&time=SS|M:SS] — lines, plus the active line at time."""
    album, track = _find_track(request)
    if track is None:
        return JSONResponse({"error": "track not found"}, status_code=404)

    time = request.query_params.get("time")
    time_ms = parse_seek_time(time) if time else None
    if time and time_ms is None:
        return JSONResponse({"error": "time must be SS or M:SS"}, status_code=400)

    if track.lyrics is None:
        return JSONResponse({"lines": [], "times": [], "active": None})

    await track.lyrics.load()
    payload = {"lines": track.lyrics.lines, "times": track.lyrics.times, "active": None}
    if time_ms is not None:
        # labels compare as zero-padded MM:SS strings
        found = await track.lyrics.get_lyrics_at_deferred(pretty_duration_ms(time_ms))
        if found:
            payload["active"] = {"index": found.index, "line": found.line}
    return JSONResponse(payload)


async def markers(request):
    album, track = _find_track(request)
    if track is None:
        return JSONResponse({"error": "track not found"}, status_code=404)
    try:
        bar_width = float(request.query_params.get("bar_width", DEFAULT_BAR_WIDTH))
    except ValueError:
        return JSONResponse({"error": "bar_width must be a number"}, status_code=400)
    return JSONResponse({"markers": _engine.marker_layout(track, bar_width)})


async def share_link(request):
    url = _engine.share_url(request.query_params.get("time"))
    if url is None:
        return JSONResponse({"error": "nothing selected"}, status_code=404)
    return JSONResponse({"url": url})


# ── WebSocket ────────────────────────────────────────────────────────────────

async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    client_id = str(uuid.uuid4())
    queue = _engine.state.subscribe(client_id)
    logger.info("WS connected: %s", client_id)

    await websocket.send_json({"type": "sync", "data": _engine.get_snapshot()})

    # Two tasks: one reads from client, one writes from queue
    async def _reader():
        try:
            while True:
                data = await websocket.receive_json()
                await _handle_ws_message(data)
        except WebSocketDisconnect:
            pass

    async def _writer():
        while True:
            event, data = await queue.get()
            await websocket.send_json({"type": str(event), "data": data})

    reader_task = asyncio.create_task(_reader())
    writer_task = asyncio.create_task(_writer())

    try:
        done, pending = await asyncio.wait(
            [reader_task, writer_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception():
                logger.error("WS error: %s", task.exception())
    finally:
        _engine.state.unsubscribe(client_id)
        logger.info("WS disconnected: %s", client_id)


async def _handle_ws_message(data: dict):
    """Route incoming WebSocket messages to engine methods."""
    msg_type = data.get("type", "")
    try:
        if msg_type == "play":
            await _engine.play()
        elif msg_type == "pause":
            await _engine.pause()
        elif msg_type == "toggle_pause":
            await _engine.play_or_pause()
        elif msg_type == "next":
            await _engine.next_track()
        elif msg_type == "prev":
            await _engine.prev_track()
        elif msg_type == "next_album":
            await _engine.next_album()
        elif msg_type == "prev_album":
            await _engine.prev_album()
        elif msg_type == "seek":
            if "percent" in data:
                await _engine.seek_percent(float(data["percent"]))
            elif "delta" in data:
                await _engine.seek_relative(float(data["delta"]))
            else:
                await _engine.seek_ms(float(data.get("ms", 0)))
        elif msg_type == "select_album":
            album = _engine.catalog.get_album(int(data.get("album_id", 0)))
            if album:
                await _engine.select_album(album)
        elif msg_type == "select_track":
            album = _engine.catalog.get_album(int(data.get("album_id", 0)))
            track = next((t for t in album.tracks if t.id == data.get("track_id")), None) if album else None
            if track:
                await _engine.select_track(track)
        elif msg_type == "track_ended":
            await _engine.track_ended()
        else:
            logger.warning("Unknown WS message type: %s", msg_type)
    except NavigationError as e:
        await _engine.state.broadcast(PlayerEvent.ERROR, {"message": format_error("navigation", msg_type, raw=str(e))})


# ── App factory ──────────────────────────────────────────────────────────────

def create_app(engine: PlayerEngine, initial_url: Optional[str] = None, autostart: bool = True) -> Starlette:
    global _engine

    _engine = engine

    routes = [
        Route("/api/health", health),
        Route("/api/albums", list_albums),
        Route("/api/albums/{album_id:int}", album_detail),
        Route("/api/now-playing", now_playing),
        Route("/api/lyrics", lyrics_at),
        Route("/api/markers", markers),
        Route("/api/link", share_link),
        WebSocketRoute("/ws", websocket_endpoint),
    ]

    @asynccontextmanager
    async def lifespan(app):
        if autostart:
            if _engine.cursor.current_track is None:
                await _engine.initialize(initial_url)
            _engine.start()
            logger.info("Player engine started")
        yield
        await _engine.stop()
        logger.info("Player engine stopped")

    return Starlette(routes=routes, lifespan=lifespan)
