"""Module 7b — Startup Preflight Check"""
import shutil
from pathlib import Path

from rich.console import Console

from .catalog import Catalog, load_catalog
from .config import APP_VERSION
from .errors import CatalogError

console = Console()


def run_preflight(catalog_path: Path, need_audio: bool = True) -> Catalog | None:
    """
    Run all startup checks. Print results. Return the catalog only if ALL pass.
    """
    console.print(f"\n  [bold]♪  Album Player v{APP_VERSION}[/bold] — preflight check\n")

    state: dict = {}
    checks = [
        ("Python deps", _check_python_deps),
        ("Catalog", lambda: _check_catalog(catalog_path, state)),
    ]
    if need_audio:
        checks.append(("afplay", lambda: _check_binary("afplay", "afplay ships with macOS only.")))
        checks.append(("ffmpeg (seeking)", lambda: _check_binary("ffmpeg", "Install it: brew install ffmpeg")))

    results = []
    for i, (label, fn) in enumerate(checks, 1):
        ok, msg, fix = fn()
        results.append((ok, label, msg, fix))
        icon = "[green]✓[/green]" if ok else "[red]✗[/red]"
        dots = "." * max(30 - len(label), 3)
        status = f"[green]{msg}[/green]" if ok else f"[red]{msg}[/red]"
        console.print(f"  [{i}/{len(checks)}] {label} {dots} {icon} {status}")

    failures = [(label, fix) for ok, label, _, fix in results if not ok and fix]
    if failures:
        console.print("")
        for label, fix in failures:
            console.print(f"  [yellow]Fix for {label}:[/yellow]")
            for line in fix.strip().splitlines():
                console.print(f"    {line}")
            console.print("")
        return None

    console.print("")
    return state.get("catalog")


def _check_python_deps() -> tuple[bool, str, str]:
    missing = []
    versions = []
    try:
        import httpx as hx
        versions.append(f"httpx {hx.__version__}")
    except ImportError:
        missing.append("httpx")

    try:
        import rich
        versions.append(f"rich {getattr(rich, '__version__', 'ok')}")
    except ImportError:
        missing.append("rich")

    try:
        import dotenv  # noqa: F401
        versions.append("python-dotenv")
    except ImportError:
        missing.append("python-dotenv")

    if missing:
        return False, f"missing: {', '.join(missing)}", "Run: pip install -e ."
    return True, ", ".join(versions), ""


def _check_catalog(path: Path, state: dict) -> tuple[bool, str, str]:
    try:
        catalog = load_catalog(path)
    except CatalogError as e:
        return False, "unreadable", f"{e}\nPoint CATALOG_PATH (or the first argument) at a catalog JSON file."
    if not len(catalog):
        return False, "no albums", "Add at least one album to the catalog."
    state["catalog"] = catalog
    return True, f"{len(catalog)} albums", ""


def _check_binary(name: str, fix: str) -> tuple[bool, str, str]:
    path = shutil.which(name)
    if path:
        return True, path, ""
    return False, "not found", fix
