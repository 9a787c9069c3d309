"""UI display helpers — catalog tables, now-playing panel, lyric and marker lines."""
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .catalog import Catalog
from .config import APP_VERSION
from .models import Album
from .utils import pretty_duration_ms

console = Console()


def print_header():
    console.print(
        f"\n  [bold cyan]♪  Album Player[/bold cyan]"
        f"  [dim]v{APP_VERSION}[/dim]"
    )


def print_catalog(catalog: Catalog, viewing: Optional[Album] = None, playing: Optional[Album] = None):
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Album", style="white")
    table.add_column("Date", width=12)
    table.add_column("Tracks", width=7)
    table.add_column("Length", width=7)
    table.add_column("", width=12)
    for album in catalog.albums:
        if album is playing:
            status = "[bold green]● playing[/bold green]"
        elif album is viewing:
            status = "[cyan]◦ viewing[/cyan]"
        else:
            status = ""
        table.add_row(
            album.name,
            str(album.date or ""),
            str(len(album.tracks)),
            pretty_duration_ms(album.duration),
            status,
        )
    console.print(table)


def print_now_playing(info: Optional[dict]):
    """Panel with track, album, credits and download sizes."""
    if not info:
        return
    album = info.get("album") or {}
    lines = [f"  [bold]{info['name']}[/bold]  [dim]{info.get('duration', '')}[/dim]"]
    byline = " · ".join(x for x in (album.get("name"), album.get("artist"), info.get("date")) if x)
    if byline:
        lines.append(f"  {byline}")
    if info.get("writers"):
        lines.append(f"  [italic]{info['writers']}[/italic]")
    for c in info.get("contributors", []):
        lines.append(f"  [bold]{c['name']}[/bold]: {', '.join(c['credits'])}")
    downloads = []
    if info.get("download"):
        downloads.append(f"audio {info['download']['size']}")
    if info.get("score"):
        downloads.append(f"score {info['score']['size']}")
    if downloads:
        lines.append(f"  [dim]↓ {' · '.join(downloads)}[/dim]")

    star = "[yellow]★[/yellow] " if info.get("recommended") else ""
    console.print(Panel(
        "\n".join(lines),
        title=f"{star}[bold green]♫[/bold green] Now playing",
        border_style="green",
        expand=False,
        padding=(0, 1),
    ))


def print_markers(markers: list[dict]):
    """One line per marker, indented by its stacking level."""
    if not markers:
        return
    for m in markers:
        indent = "  " * m["level"]
        console.print(f"  [dim]{m['time']}[/dim] {indent}[magenta]▸[/magenta] {m['label']}")


def print_lyric(line: str, time: Optional[str] = None):
    stamp = f"[dim]{time}[/dim]  " if time else ""
    console.print(f"  {stamp}[italic]{line or '♪'}[/italic]")


def print_status_line(progress: dict, paused: bool):
    """Persistent one-liner with play state and progress bar."""
    bar_len = 20
    filled = min(bar_len, int(progress.get("percent", 0) / 100 * bar_len))
    bar = "[green]" + "━" * filled + "[/green][dim]" + "·" * (bar_len - filled) + "[/dim]"
    icon = "[yellow]⏸[/yellow]" if paused else "[green]♫[/green]"
    duration = progress.get("duration") or "…"
    console.print(f"\n  {icon}  {progress['time']}/{duration} {bar}")


def print_help():
    """Keyboard shortcuts."""
    sections = [
        ("Playback", "Space/k play · pause  ·  ←→ seek 10s  ·  </> seek 3s"),
        ("Tracks", "n next · p previous  ·  N next album · P previous album"),
        ("Browse", "b albums · t tracks · l lyrics · m markers · u share link"),
        ("Quit", "q · Ctrl+C"),
    ]

    lines: list[str] = []
    for title, content in sections:
        lines.append(f"  [bold]{title}[/bold]  [dim]│[/dim]  {content}")

    console.print(Panel(
        "\n".join(lines),
        border_style="dim",
        expand=False,
        padding=(0, 1),
    ))
