"""Interactive j/k navigators for the album and track lists."""
import asyncio
import shutil
import sys
from io import StringIO
from typing import Optional

from rich.console import Console
from rich.table import Table

from .catalog import Catalog
from .input import _read_nav_key
from .models import Album, Track
from .utils import pretty_duration_ms


def _render_albums_table(albums: list[Album], playing: Optional[Album], selected: int) -> tuple[str, int]:
    """Render album table with selected row highlighted; return (ansi_str, line_count)."""
    width = shutil.get_terminal_size((80, 24)).columns
    buf = StringIO()
    c = Console(file=buf, width=width, highlight=False)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Album", style="white")
    table.add_column("Artist")
    table.add_column("Tracks", width=7)
    table.add_column("Length", width=7)
    table.add_column("", width=12)
    for i, album in enumerate(albums):
        status = "[bold green]● playing[/bold green]" if album is playing else ""
        row_style = "reverse" if i == selected else ""
        table.add_row(
            album.name,
            album.artist or "",
            str(len(album.tracks)),
            pretty_duration_ms(album.duration),
            status,
            style=row_style,
        )
    c.print(table)
    c.print("  [dim]j/k  ↑/↓  ·  Enter view album  ·  q/Esc cancel[/dim]")
    rendered = buf.getvalue()
    return rendered, rendered.count("\n")


def _render_tracks_table(album: Album, current: Optional[Track], selected: int) -> tuple[str, int]:
    """Render an album's tracks with selected row highlighted; return (ansi_str, line_count)."""
    width = shutil.get_terminal_size((80, 24)).columns
    buf = StringIO()
    c = Console(file=buf, width=width, highlight=False)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2), title=album.name)
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Length", width=7)
    table.add_column("", width=3)
    for i, track in enumerate(album.tracks):
        title = f"[yellow]★[/yellow] {track.name}" if track.recommended else track.name
        icon = "[green]♫[/green]" if track is current else ""
        row_style = "reverse" if i == selected else ""
        table.add_row(
            str(track.track_num or ""),
            title,
            pretty_duration_ms(track.duration),
            icon,
            style=row_style,
        )
    c.print(table)
    c.print("  [dim]j/k  ↑/↓  ·  Enter play  ·  q/Esc cancel[/dim]")
    rendered = buf.getvalue()
    return rendered, rendered.count("\n")


async def _navigate(count: int, start: int, render) -> Optional[int]:
    """Shared j/k loop. render(idx) -> (ansi_str, line_count). Returns chosen index or None."""
    idx = start
    loop = asyncio.get_event_loop()
    rendered, lines = render(idx)
    sys.stdout.write(rendered)
    sys.stdout.flush()

    while True:
        key = await loop.run_in_executor(None, _read_nav_key)
        if key in ("down", "j"):
            idx = min(idx + 1, count - 1)
        elif key in ("up", "k"):
            idx = max(idx - 1, 0)
        elif key in ("\r", "\n"):
            sys.stdout.write(f"\033[{lines}A\033[J")
            sys.stdout.flush()
            return idx
        elif key in ("esc", "q"):
            sys.stdout.write(f"\033[{lines}A\033[J")
            sys.stdout.flush()
            return None
        elif key == "\x03":
            sys.stdout.write(f"\033[{lines}A\033[J")
            sys.stdout.flush()
            raise KeyboardInterrupt
        else:
            continue
        new_rendered, new_lines = render(idx)
        sys.stdout.write(f"\033[{lines}A\033[J")
        sys.stdout.write(new_rendered)
        sys.stdout.flush()
        lines = new_lines


async def navigate_albums(catalog: Catalog, viewing: Optional[Album], playing: Optional[Album]) -> Optional[Album]:
    """Interactive j/k navigator for the album list. Returns the album to view or None."""
    albums = catalog.albums
    if not albums:
        from .ui import console
        console.print("  [dim]No albums in the catalog.[/dim]")
        return None

    start = catalog.index_of(viewing) if viewing is not None else 0
    idx = await _navigate(len(albums), max(start, 0), lambda i: _render_albums_table(albums, playing, i))
    return albums[idx] if idx is not None else None


async def navigate_tracks(album: Album, current: Optional[Track]) -> Optional[Track]:
    """Interactive j/k navigator for one album's tracks. Returns the track to play or None."""
    if not album.tracks:
        from .ui import console
        console.print("  [dim]This album has no tracks.[/dim]")
        return None

    start = max(album.index_of(current), 0)
    idx = await _navigate(len(album.tracks), start, lambda i: _render_tracks_table(album, current, i))
    return album.tracks[idx] if idx is not None else None
