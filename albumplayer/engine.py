"""Core player engine — cursor, transport, lyrics and markers in one place.

Receives commands via methods, broadcasts state via PlayerState.
Rendering (terminal or browser) only reacts to the broadcasts.
"""
import asyncio
import logging
import math
from typing import Callable, Optional

from .catalog import Catalog
from .config import DEFAULT_BAR_WIDTH
from .cursor import PlaybackCursor
from .links import build_track_url, parse_track_url, resolve_selection
from .lyrics import LyricLine
from .markers import layout_markers
from .models import Album, Track
from .transport import MediaTransport
from .utils import join_writers, pretty_duration_ms, pretty_duration_s, pretty_filesize
from .web.state import PlayerEvent, PlayerState

logger = logging.getLogger(__name__)

MediaHook = Callable[[dict], None]


class PlayerEngine:
    def __init__(
        self,
        catalog: Catalog,
        transport: MediaTransport,
        state: Optional[PlayerState] = None,
        base_url: str = "http://localhost/",
        media_hook: Optional[MediaHook] = None,
        bar_width: float = DEFAULT_BAR_WIDTH,
    ):
        self.catalog = catalog
        self.transport = transport
        self.state = state or PlayerState()
        self.base_url = base_url
        self.media_hook = media_hook
        self.bar_width = bar_width

        self.cursor = PlaybackCursor(catalog)
        self.cursor.subscribe(self._on_cursor_change)
        self._pending: list[tuple[str, object]] = []
        self._lyrics_tasks: set[asyncio.Task] = set()
        self._last_lyric_index: Optional[int] = None

        self._running = False
        self._tick_task: Optional[asyncio.Task] = None

    # ── Cursor wiring ────────────────────────────────────────────────────────

    def _on_cursor_change(self, kind: str, value):
        # Runs synchronously inside the navigation call; the transport must
        # hold the new sources before anyone issues play().
        if kind == "track":
            self.transport.load(value.sources)
            self._last_lyric_index = None
        self._pending.append((kind, value))

    async def _flush(self):
        """Broadcast everything the last navigation call changed."""
        pending, self._pending = self._pending, []
        for kind, value in pending:
            if kind == "album":
                await self.state.broadcast(PlayerEvent.ALBUM_SELECTED, _album_summary(value))
            elif kind == "track":
                if value.lyrics is not None:
                    # requested now so progress lookups wait for it
                    value.lyrics.request()
                    task = asyncio.create_task(self._load_lyrics(value))
                    self._lyrics_tasks.add(task)
                    task.add_done_callback(self._lyrics_tasks.discard)
                info = self.track_info()
                await self.state.broadcast(PlayerEvent.NOW_PLAYING, info)
                self._update_media_session(info)

    async def _load_lyrics(self, track: Track):
        text = await track.lyrics.load()
        if track is self.cursor.current_track:
            await self.state.broadcast(PlayerEvent.LYRICS, {
                "track_id": track.id,
                "lines": self._lyric_lines(track),
            })
        return text

    def _update_media_session(self, info: dict):
        """Optional platform media controls; failures never reach playback."""
        if self.media_hook is None:
            return
        try:
            self.media_hook(info)
        except Exception:
            logger.exception("Could not set media session metadata")

    # ── Public API ───────────────────────────────────────────────────────────

    async def initialize(self, url: Optional[str] = None):
        """Select the album/track from a shared link, else the first track."""
        selection = parse_track_url(url) if url else None
        album, track = resolve_selection(self.catalog, selection) if selection else (None, None)
        self.cursor.initialize(album, track)
        await self._flush()
        if selection and selection.time_ms is not None:
            await self.seek_ms(selection.time_ms)

    async def select_album(self, album: Album):
        self.cursor.select_album(album)
        await self._flush()

    async def select_track(self, track: Track):
        album = self.catalog.album_of(track)
        if album is not None:
            self.cursor.select_album(album)
        self.cursor.select_track(track)
        await self._flush()
        await self.play()

    async def play(self):
        if not self.transport.paused:
            return
        # no track loaded or current track finished
        if self.cursor.current_track is None or self.transport.ended:
            self.cursor.advance(1)
            await self._flush()
        self.transport.play()
        await self._broadcast_playback_state()

    async def pause(self):
        self.transport.pause()
        await self._broadcast_playback_state()

    async def play_or_pause(self):
        if self.transport.paused:
            await self.play()
        else:
            await self.pause()

    async def next_track(self):
        await self._step(1)

    async def prev_track(self):
        await self._step(-1)

    async def _step(self, direction: int):
        self.transport.pause()
        self.cursor.advance(direction)
        await self._flush()
        await self.play()

    async def next_album(self):
        await self._jump(1)

    async def prev_album(self):
        await self._jump(-1)

    async def _jump(self, direction: int):
        if len(self.catalog) <= 1:
            return
        self.transport.pause()
        self.cursor.jump_album(direction)
        await self._flush()
        await self.play()

    async def track_ended(self):
        self.cursor.advance(1)
        await self._flush()
        await self.play()

    async def seek_ms(self, ms: float):
        self.transport.current_time = ms / 1000
        await self.update_progress()

    async def seek_relative(self, seconds: float):
        await self.seek_ms(max(0.0, self.transport.current_time + seconds) * 1000)

    async def seek_percent(self, pct: float):
        ms = self.ms_from_percent(pct)
        if ms is None:
            return
        await self.seek_ms(ms)

    def ms_from_percent(self, pct: float) -> Optional[float]:
        pct = min(max(0.0, pct), 100.0)
        duration = self.transport.duration
        if duration is None or math.isnan(duration):
            return None
        return duration * (pct / 100) * 1000

    # ── Progress & lyrics ────────────────────────────────────────────────────

    async def current_lyric(self) -> Optional[LyricLine]:
        track = self.cursor.current_track
        if track is None or track.lyrics is None:
            return None
        timestamp = pretty_duration_s(self.transport.current_time)
        found = await track.lyrics.get_lyrics_at_deferred(timestamp)
        return found or None

    async def update_progress(self) -> dict:
        current = self.transport.current_time
        duration = self.transport.duration
        known = duration is not None and not math.isnan(duration) and duration > 0
        lyric = await self.current_lyric()
        progress = {
            "time": pretty_duration_s(current),
            "duration": pretty_duration_s(duration) if known else None,
            "elapsed": round(current, 1),
            "percent": min(100.0, max(0.0, current / duration * 100)) if known else 0.0,
            "lyric_index": lyric.index if lyric else None,
            "lyric": lyric.line if lyric else None,
        }
        await self.state.broadcast(PlayerEvent.PROGRESS, progress)
        if lyric and lyric.index != self._last_lyric_index:
            self._last_lyric_index = lyric.index
            await self.state.broadcast(PlayerEvent.LYRIC_LINE, {"index": lyric.index, "line": lyric.line})
        return progress

    # ── Payloads ─────────────────────────────────────────────────────────────

    def share_url(self, time: Optional[str] = None) -> Optional[str]:
        track = self.cursor.current_track
        album = self.cursor.playing_album() or self.cursor.current_album
        if track is None or album is None:
            return None
        return build_track_url(self.base_url, album.name, track.name, time)

    def _lyric_lines(self, track: Track) -> list[dict]:
        text = track.lyrics.text if track.lyrics else None
        if text is None:
            return []
        album = self.cursor.playing_album() or self.cursor.current_album
        return [
            {
                "index": i,
                "line": line,
                "time": time,
                "url": build_track_url(self.base_url, album.name, track.name, time) if album else None,
            }
            for i, (line, time) in enumerate(zip(text.lines, text.times))
        ]

    def marker_layout(self, track: Optional[Track] = None, bar_width: Optional[float] = None) -> list[dict]:
        track = track or self.cursor.current_track
        if track is None:
            return []
        placements = layout_markers(track.markers, track.duration, bar_width or self.bar_width)
        album = self.catalog.album_of(track)
        payload = []
        for p in placements:
            entry = p.to_dict()
            if album is not None:
                entry["url"] = build_track_url(self.base_url, album.name, track.name, p.time_label)
            payload.append(entry)
        return payload

    def track_info(self) -> Optional[dict]:
        track = self.cursor.current_track
        if track is None:
            return None
        album = self.cursor.playing_album()
        download = track.download_source()
        return {
            "id": track.id,
            "name": track.name,
            "track_num": track.track_num,
            "duration": pretty_duration_ms(track.duration),
            "album": _album_summary(album) if album else None,
            "date": str(track.date) if track.date else None,
            "recommended": track.recommended,
            "writers": join_writers(track.writers),
            "contributors": [{"name": c.name, "credits": list(c.credits)} for c in track.contributors],
            "score": {"uri": track.score.uri, "size": pretty_filesize(track.score.size)} if track.score else None,
            "download": {"uri": download.uri, "size": pretty_filesize(download.size)} if download else None,
            "has_lyrics": track.lyrics is not None,
            "lyrics": self._lyric_lines(track),
            "markers": self.marker_layout(track),
            "url": self.share_url(),
        }

    def get_snapshot(self) -> dict:
        """Full state snapshot for initial WebSocket sync."""
        return {
            "viewing": _album_summary(self.cursor.current_album) if self.cursor.current_album else None,
            "now_playing": self.track_info(),
            "playback": self._playback_state(),
        }

    def _playback_state(self) -> dict:
        duration = self.transport.duration
        return {
            "playing": not self.transport.paused,
            "paused": self.transport.paused,
            "ended": self.transport.ended,
            "elapsed": round(self.transport.current_time, 1),
            "duration": None if duration is None or math.isnan(duration) else round(duration, 1),
            "has_track": self.cursor.current_track is not None,
        }

    async def _broadcast_playback_state(self):
        await self.state.broadcast(PlayerEvent.PLAYBACK_STATE, self._playback_state())

    # ── Loop ─────────────────────────────────────────────────────────────────

    async def run(self, interval: float = 0.25):
        """Tick progress while playing and auto-advance at the end of a track."""
        self._running = True
        while self._running:
            await asyncio.sleep(interval)
            try:
                if self.transport.ended:
                    await self.track_ended()
                elif not self.transport.paused:
                    await self.update_progress()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception("Engine tick error")
                await self.state.broadcast(PlayerEvent.ERROR, {"message": str(e)})
                self._running = False

    def start(self):
        if self._tick_task is None or self._tick_task.done():
            self._tick_task = asyncio.create_task(self.run())

    async def stop(self):
        """Graceful shutdown."""
        self._running = False
        self.transport.pause()
        if self._tick_task and not self._tick_task.done():
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass


def _album_summary(album: Album) -> dict:
    return {
        "id": album.id,
        "name": album.name,
        "artist": album.artist,
        "date": str(album.date) if album.date else None,
        "cover_art": album.cover_art,
        "track_count": len(album.tracks),
        "duration": pretty_duration_ms(album.duration),
    }
