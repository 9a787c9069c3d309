"""Structured error logging — JSON to errors.log, no terminal formatting."""
import json
import logging
from datetime import datetime
from typing import Optional

from .config import APP_VERSION, DEV_MODE, ERRORS_LOG

logger = logging.getLogger(__name__)

_FRIENDLY_MESSAGES = {
    "navigation": "Nothing to play — check the catalog's albums and sources.",
    "catalog": "Couldn't read the catalog file.",
    "transport": "Playback failed — is afplay available?",
    "preflight": "Startup check failed.",
}


class PlayerError(Exception):
    """Base class for errors raised by the player core."""


class NavigationError(PlayerError):
    """Navigation reached a state with nothing playable.

    Raised for a catalog without albums, an album without tracks or a
    track without audio sources. There is no fallback for these.
    """


class CatalogError(PlayerError):
    """The catalog definition is malformed."""


def format_error(
    stage: str,
    action: str = "",
    params: Optional[dict] = None,
    raw: str = "",
) -> str:
    """Record a failure that reached the listener; return what to show them.

    ``action`` is the command that failed (a key action or WS message type).
    """
    entry = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "version": APP_VERSION,
        "stage": stage,
        "action": action or None,
        "params": params,
        "error": raw,
    }
    logger.error("%s failed during %s: %s", action or "player", stage, raw)
    _append_to_log(entry)

    friendly = _FRIENDLY_MESSAGES.get(stage, f"Something went wrong ({stage}).")
    return json.dumps(entry, indent=2) if DEV_MODE else friendly


def _append_to_log(entry: dict):
    try:
        ERRORS_LOG.parent.mkdir(parents=True, exist_ok=True)
        with ERRORS_LOG.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.warning("Could not write %s: %s", ERRORS_LOG, e)
