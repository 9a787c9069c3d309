"""Album Player — entry point."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from rich import print as rprint

from albumplayer.config import CATALOG_PATH, OUTPUT_DIR, PLAYER_LOG, SEEK_STEP, SEEK_STEP_SMALL, WEB_PORT
from albumplayer.engine import PlayerEngine
from albumplayer.errors import NavigationError, format_error
from albumplayer.input import _read_nav_key, key_to_action
from albumplayer.links import build_track_url
from albumplayer.navigation import navigate_albums, navigate_tracks
from albumplayer.preflight import run_preflight
from albumplayer.transport import AfplayTransport
from albumplayer.ui import (
    console,
    print_catalog,
    print_header,
    print_help,
    print_lyric,
    print_markers,
    print_now_playing,
    print_status_line,
)
from albumplayer.web.state import PlayerEvent, PlayerState

logger = logging.getLogger("albumplayer")

transport = AfplayTransport()


def _setup_logging():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=PLAYER_LOG,
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play albums with synced lyrics and markers.")
    parser.add_argument("catalog", nargs="?", default=str(CATALOG_PATH), help="catalog JSON file")
    parser.add_argument("--album", help="album to start with")
    parser.add_argument("--track", help="track to start with (needs --album)")
    parser.add_argument("--time", help="start position, SS or MM:SS")
    parser.add_argument("--web", action="store_true", help="serve the HTTP/WebSocket API instead")
    parser.add_argument("--port", type=int, default=WEB_PORT)
    return parser.parse_args(argv)


def _start_url(args: argparse.Namespace) -> Optional[str]:
    if not args.album:
        return None
    return build_track_url("http://localhost/", args.album, args.track or "", args.time)


def _render(event: str, data, show: dict):
    """Terminal subscriber: turn engine broadcasts into console output."""
    if event is PlayerEvent.NOW_PLAYING:
        print_now_playing(data)
        if show["markers"] and data:
            print_markers(data.get("markers", []))
    elif event is PlayerEvent.LYRIC_LINE and show["lyrics"]:
        print_lyric(data["line"])
    elif event is PlayerEvent.ERROR:
        console.print(f"  [red]{data['message']}[/red]")


async def _handle_action(action: str, engine: PlayerEngine, show: dict) -> bool:
    """Run one keyboard action. Returns False to quit."""
    if action == "quit":
        return False
    if action == "toggle_pause":
        await engine.play_or_pause()
        print_status_line(await engine.update_progress(), engine.transport.paused)
    elif action == "next":
        await engine.next_track()
    elif action == "prev":
        await engine.prev_track()
    elif action == "next_album":
        await engine.next_album()
    elif action == "prev_album":
        await engine.prev_album()
    elif action == "seek_forward":
        await engine.seek_relative(SEEK_STEP)
    elif action == "seek_back":
        await engine.seek_relative(-SEEK_STEP)
    elif action == "seek_forward_small":
        await engine.seek_relative(SEEK_STEP_SMALL)
    elif action == "seek_back_small":
        await engine.seek_relative(-SEEK_STEP_SMALL)
    elif action == "browse_albums":
        album = await navigate_albums(engine.catalog, engine.cursor.current_album, engine.cursor.playing_album())
        if album is not None:
            await engine.select_album(album)
            console.print(f"  [cyan]◦ viewing[/cyan] {album.name}  [dim]t to pick a track · n to start it[/dim]")
    elif action == "browse_tracks":
        album = engine.cursor.current_album
        if album is not None:
            track = await navigate_tracks(album, engine.cursor.current_track)
            if track is not None:
                await engine.select_track(track)
    elif action == "lyrics":
        show["lyrics"] = not show["lyrics"]
        console.print(f"  [dim]lyrics {'on' if show['lyrics'] else 'off'}[/dim]")
    elif action == "markers":
        show["markers"] = not show["markers"]
        if show["markers"]:
            print_markers(engine.marker_layout())
    elif action == "share":
        progress = await engine.update_progress()
        console.print(f"  [dim]Link:[/dim] {engine.share_url(progress['time'])}")
    elif action == "help":
        print_help()
    return True


async def main(args: argparse.Namespace):
    print_header()

    catalog = run_preflight(Path(args.catalog))
    if catalog is None:
        sys.exit(1)

    state = PlayerState()
    engine = PlayerEngine(catalog, transport, state)
    queue = state.subscribe("terminal")
    show = {"lyrics": True, "markers": False}

    print_catalog(catalog)
    print_help()

    await engine.initialize(_start_url(args))
    await engine.play()
    engine.start()

    loop = asyncio.get_event_loop()
    running = True
    while running:
        while not queue.empty():
            event, data = queue.get_nowait()
            _render(event, data, show)

        key = await loop.run_in_executor(None, _read_nav_key, 0.25)
        if key is None:
            continue
        action = key_to_action(key)
        if action is None:
            continue
        try:
            running = await _handle_action(action, engine, show)
        except NavigationError as e:
            console.print(f"\n[red]{format_error('navigation', action, raw=str(e))}[/red]")
            running = False

    await engine.stop()
    transport.stop()
    console.print("\n  [bold cyan]♪[/bold cyan]  See you next time.\n")


def serve(args: argparse.Namespace):
    import uvicorn

    from albumplayer.web.server import create_app

    catalog = run_preflight(Path(args.catalog))
    if catalog is None:
        sys.exit(1)
    engine = PlayerEngine(catalog, transport, PlayerState(), base_url=f"http://localhost:{args.port}/")
    uvicorn.run(create_app(engine, initial_url=_start_url(args)), host="127.0.0.1", port=args.port)


def run():
    _setup_logging()
    args = _parse_args()
    if args.web:
        serve(args)
        return
    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        transport.stop()
        rprint("\n\n  [bold]Stopped.[/bold] Goodbye.\n")
        sys.exit(0)
    except NavigationError as e:
        transport.stop()
        rprint(f"\n[red]{format_error('navigation', raw=str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    run()
