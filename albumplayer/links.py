"""Shareable track links: ?album=...&track=...[&time=...]"""
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from .catalog import Catalog
from .models import Album, Track
from .utils import parse_seek_time


@dataclass(frozen=True)
class Selection:
    album: Optional[str] = None
    track: Optional[str] = None
    time_ms: Optional[int] = None


def build_track_url(
    base_url: Union[str, httpx.URL],
    album_name: str,
    track_name: str,
    time: Optional[str] = None,
) -> str:
    """Set album/track on base_url; time is "SS" or "MM:SS" and is removed when empty."""
    url = httpx.URL(str(base_url))
    url = url.copy_set_param("album", album_name).copy_set_param("track", track_name)
    if time:
        url = url.copy_set_param("time", time)
    else:
        url = url.copy_remove_param("time")
    return str(url)


def parse_track_url(url: Union[str, httpx.URL]) -> Selection:
    params = httpx.URL(str(url)).params
    return Selection(
        album=params.get("album"),
        track=params.get("track"),
        time_ms=parse_seek_time(params.get("time")),
    )


def resolve_selection(catalog: Catalog, selection: Selection) -> tuple[Optional[Album], Optional[Track]]:
    """Match names case-insensitively. The track is only looked up inside the matched album."""
    if not selection.album:
        return None, None
    album = catalog.find_album(selection.album)
    if album is None or not selection.track:
        return album, None
    return album, catalog.find_track(album, selection.track)
