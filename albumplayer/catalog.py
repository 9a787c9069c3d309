"""Module 2 — Catalog: albums, tracks and id allocation"""
import json
import logging
from pathlib import Path
from typing import Optional

from .errors import CatalogError
from .lyrics import LyricTrack
from .models import (
    Album,
    AlbumOptions,
    AudioSource,
    Contributor,
    DownloadLink,
    Marker,
    Score,
    Track,
    TrackOptions,
)

logger = logging.getLogger(__name__)


class IdAllocator:
    """Monotonic id counter. Ids start at 1 and are never reused."""

    def __init__(self, start: int = 0):
        self._last = start

    def next(self) -> int:
        self._last += 1
        return self._last

    @property
    def last(self) -> int:
        return self._last


def normalize_name(name: str) -> str:
    """Case-insensitive key with the typographic apostrophe folded to ASCII."""
    return name.lower().replace("’", "'")


class Catalog:
    def __init__(self):
        self.album_ids = IdAllocator()
        self.track_ids = IdAllocator()
        self._albums: list[Album] = []

    # ── Construction ───────────────────────────────────────────────────────────

    def new_track(self, name: str, options: Optional[TrackOptions] = None) -> Track:
        return Track(self.track_ids.next(), name, options)

    def new_album(
        self,
        name: str,
        tracks: list[Track],
        options: Optional[AlbumOptions] = None,
    ) -> Album:
        album = Album(self.album_ids.next(), name, tracks, options)
        self.add_album(album)
        return album

    def add_album(self, album: Album):
        self._albums.append(album)
        # Newest first; undated albums compare as "" and land last.
        self._albums.sort(key=lambda a: str(a.date or ""), reverse=True)

    # ── Lookup ─────────────────────────────────────────────────────────────────

    @property
    def albums(self) -> list[Album]:
        return list(self._albums)

    def __len__(self) -> int:
        return len(self._albums)

    def index_of(self, album: Optional[Album]) -> int:
        for i, a in enumerate(self._albums):
            if a is album:
                return i
        return -1

    def album_of(self, track: Optional[Track]) -> Optional[Album]:
        """The album that structurally contains track, if any."""
        if track is None:
            return None
        for album in self._albums:
            if album.index_of(track) != -1:
                return album
        return None

    def get_album(self, album_id: int) -> Optional[Album]:
        for album in self._albums:
            if album.id == album_id:
                return album
        return None

    def find_album(self, name: str) -> Optional[Album]:
        key = normalize_name(name)
        for album in self._albums:
            if normalize_name(album.name) == key:
                return album
        return None

    def find_track(self, album: Album, name: str) -> Optional[Track]:
        key = normalize_name(name)
        for track in album.tracks:
            if normalize_name(track.name) == key:
                return track
        return None

    # ── Loading ────────────────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "Catalog":
        """Build a catalog from a JSON-style definition.

        Relative source, lyric and score paths resolve against base_dir.
        """
        if not isinstance(data, dict) or not isinstance(data.get("albums"), list):
            raise CatalogError("catalog must be an object with an 'albums' list")

        catalog = cls()
        for album_def in data["albums"]:
            try:
                tracks = [
                    catalog.new_track(t["name"], _track_options(t, base_dir))
                    for t in album_def.get("tracks", [])
                ]
                catalog.new_album(album_def["name"], tracks, _album_options(album_def, base_dir))
            except (KeyError, TypeError) as e:
                raise CatalogError(f"malformed album definition: {e}") from e
        logger.info(
            "Catalog loaded: %d albums, %d tracks", len(catalog), catalog.track_ids.last,
        )
        return catalog


def load_catalog(path: Path) -> Catalog:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"cannot read catalog {path}: {e}") from e
    return Catalog.from_dict(data, base_dir=Path(path).parent)


def _resolve(uri: Optional[str], base_dir: Optional[Path]) -> Optional[str]:
    if not uri or base_dir is None or "://" in uri:
        return uri
    path = Path(uri)
    if path.is_absolute():
        return uri
    return str(base_dir / path)


def _track_options(data: dict, base_dir: Optional[Path]) -> TrackOptions:
    sources = []
    for s in data.get("sources", []):
        if isinstance(s, str):
            s = {"uri": s}
        sources.append(AudioSource(**{**s, "uri": _resolve(s["uri"], base_dir)}))

    score = data.get("score")
    if score:
        score = Score(**{**score, "uri": _resolve(score["uri"], base_dir)})

    lyrics = data.get("lyrics")
    return TrackOptions(
        duration=data.get("duration"),
        sources=sources,
        lyrics=LyricTrack(_resolve(lyrics, base_dir)) if lyrics else None,
        track_num=data.get("track_num"),
        date=data.get("date"),
        score=score,
        writers=list(data.get("writers", [])),
        contributors=[
            Contributor(c["name"], tuple(c.get("credits", [])))
            for c in data.get("contributors", [])
        ],
        recommended=bool(data.get("recommended", False)),
        markers=[Marker(m["time"], m["label"]) for m in data.get("markers", [])],
        icon_url=data.get("icon_url"),
    )


def _album_options(data: dict, base_dir: Optional[Path]) -> AlbumOptions:
    link = data.get("download_link")
    if link:
        link = DownloadLink(_resolve(link["uri"], base_dir), link.get("size"))
    return AlbumOptions(
        artist=data.get("artist"),
        date=data.get("date"),
        description=data.get("description"),
        cover_art=data.get("cover_art"),
        download_link=link,
    )
