"""Albums, tracks and the small value types hanging off them."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import CatalogError
from .lyrics import LyricTrack
from .utils import parse_duration_ms


@dataclass(frozen=True)
class AudioSource:
    uri: str
    mimetype: Optional[str] = None
    size: Optional[int] = None
    priority: Optional[int] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Score:
    uri: str
    size: Optional[int] = None
    thumbnail: Optional[str] = None


@dataclass(frozen=True)
class DownloadLink:
    uri: str
    size: Optional[int] = None


@dataclass(frozen=True)
class Contributor:
    name: str
    credits: tuple[str, ...] = ()


@dataclass(frozen=True)
class Marker:
    time: Union[int, float, str]   # ms, or "MM:SS"
    label: str

    def __post_init__(self):
        try:
            ms = parse_duration_ms(self.time)
        except (ValueError, AttributeError) as e:
            raise CatalogError(f"invalid marker time {self.time!r}") from e
        if ms is None or ms < 0:
            raise CatalogError(f"invalid marker time {self.time!r}")

    @property
    def time_ms(self) -> float:
        return parse_duration_ms(self.time) or 0


@dataclass
class TrackOptions:
    duration: Union[int, float, str, None] = None
    sources: list[AudioSource] = field(default_factory=list)
    lyrics: Optional[LyricTrack] = None
    track_num: Optional[int] = None
    date: Optional[str] = None
    score: Optional[Score] = None
    writers: list[str] = field(default_factory=list)
    contributors: list[Contributor] = field(default_factory=list)
    recommended: bool = False
    markers: list[Marker] = field(default_factory=list)
    icon_url: Optional[str] = None

    def __post_init__(self):
        if self.track_num is not None and not isinstance(self.track_num, int):
            raise CatalogError(f"track_num must be an integer, got {self.track_num!r}")
        try:
            ms = parse_duration_ms(self.duration)
        except (ValueError, AttributeError) as e:
            raise CatalogError(f"invalid duration {self.duration!r}") from e
        if ms is not None and ms < 0:
            raise CatalogError(f"duration must not be negative, got {self.duration!r}")


@dataclass
class AlbumOptions:
    artist: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    cover_art: Optional[str] = None
    download_link: Optional[DownloadLink] = None


class Track:
    def __init__(self, track_id: int, name: str, options: Optional[TrackOptions] = None):
        options = options or TrackOptions()
        self.id = track_id
        self.name = name
        self.duration: Optional[float] = parse_duration_ms(options.duration)
        self.sources = list(options.sources)
        self.lyrics = options.lyrics
        self.track_num = options.track_num
        self.date = options.date
        self.score = options.score
        self.writers = list(options.writers)
        self.contributors = list(options.contributors)
        self.recommended = options.recommended
        self.markers = list(options.markers)
        self.icon_url = options.icon_url

    def download_source(self) -> Optional[AudioSource]:
        """Prefer an mp3 source for downloading."""
        for source in self.sources:
            if source.mimetype and "mpeg" in source.mimetype:
                return source
        return self.sources[0] if self.sources else None

    def __repr__(self):
        return f"Track({self.id}, {self.name!r})"


class Album:
    def __init__(
        self,
        album_id: int,
        name: str,
        tracks: list[Track],
        options: Optional[AlbumOptions] = None,
    ):
        options = options or AlbumOptions()
        self.id = album_id
        self.name = name
        # sorted() is stable, so equal track numbers keep their given order
        self.tracks = sorted(tracks, key=lambda t: t.track_num or 0)
        self.artist = options.artist
        self.date = options.date
        self.description = options.description
        self.cover_art = options.cover_art
        self.download_link = options.download_link

    @property
    def duration(self) -> float:
        return sum(track.duration or 0 for track in self.tracks)

    def index_of(self, track: Optional[Track]) -> int:
        for i, t in enumerate(self.tracks):
            if t is track:
                return i
        return -1

    def __repr__(self):
        return f"Album({self.id}, {self.name!r})"
