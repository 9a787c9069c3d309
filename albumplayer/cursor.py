"""Playback cursor — which album is viewed, which track is loaded.

Two pieces of state: the album the listener is looking at
(``current_album``) and the track that is loaded (``current_track``).
They can point at different albums. The playing album is always derived
from the catalog by membership, never stored.
"""
import logging
from typing import Callable, Optional

from .catalog import Catalog
from .errors import NavigationError
from .models import Album, Track

logger = logging.getLogger(__name__)

Listener = Callable[[str, object], None]


class PlaybackCursor:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self.current_album: Optional[Album] = None
        self.current_track: Optional[Track] = None
        self._listeners: list[Listener] = []

    # ── Subscribers ────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener):
        """listener(kind, value) fires after a change is committed; kind is "album" or "track"."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, kind: str, value):
        for listener in list(self._listeners):
            listener(kind, value)

    # ── Selection ──────────────────────────────────────────────────────────────

    def select_album(self, album: Album):
        if album is self.current_album:
            return
        self.current_album = album
        logger.debug("Viewing album %s", album.name)
        self._notify("album", album)

    def select_track(self, track: Track):
        """Always notifies, even for the current track, so media reloads."""
        self.current_track = track
        logger.debug("Selected track %s", track.name)
        self._notify("track", track)

    def playing_album(self) -> Optional[Album]:
        return self.catalog.album_of(self.current_track)

    # ── Traversal ──────────────────────────────────────────────────────────────

    def advance(self, direction: int = 1) -> Track:
        """Step to the next (1) or previous (-1) track.

        Walking off either end of the playing album moves to the adjacent
        album with wraparound, unless the listener is viewing a different
        album; then that viewed album starts playing instead.
        """
        albums = self.catalog.albums
        if not albums:
            raise NavigationError("no albums")

        if self.current_album is None:
            self.select_album(albums[0])
        if not self.current_album.tracks:
            raise NavigationError(f'album "{self.current_album.name}" contains no tracks')

        playing = self.playing_album() or self.current_album
        index = playing.index_of(self.current_track) if self.current_track else -1
        target = index + direction

        if 0 <= target < len(playing.tracks):
            self.select_track(playing.tracks[target])
        else:
            if playing is self.current_album:
                album_index = self.catalog.index_of(playing)
                next_index = album_index + direction
                if 0 <= next_index < len(albums):
                    self.select_album(albums[next_index])
                else:
                    self.select_album(albums[0 if direction > 0 else -1])

            if not self.current_album.tracks:
                raise NavigationError(f'album "{self.current_album.name}" contains no tracks')
            self.select_track(self.current_album.tracks[0 if direction > 0 else -1])

        if not self.current_track.sources:
            raise NavigationError(f'track "{self.current_track.name}" contains no sources')
        return self.current_track

    def jump_album(self, direction: int = 1) -> Optional[Track]:
        """Start the first track of the album next to the playing one.

        Returns None when there is nowhere else to go (one album or none).
        """
        albums = self.catalog.albums
        if len(albums) <= 1:
            return None

        playing = self.playing_album() or self.current_album
        index = self.catalog.index_of(playing)
        if index == -1:
            album = albums[0 if direction > 0 else -1]
        else:
            album = albums[(index + direction) % len(albums)]
        if not album.tracks:
            raise NavigationError(f'album "{album.name}" contains no tracks')

        self.select_album(album)
        self.select_track(album.tracks[0])
        return self.current_track

    def next_album(self) -> Optional[Track]:
        return self.jump_album(1)

    def prev_album(self) -> Optional[Track]:
        return self.jump_album(-1)

    def initialize(self, album: Optional[Album] = None, track: Optional[Track] = None) -> Track:
        """Select a shared-link album/track, or fall back to the first track."""
        if album is not None:
            self.select_album(album)
            if track is not None:
                self.select_track(track)
                return track
        return self.advance(1)
