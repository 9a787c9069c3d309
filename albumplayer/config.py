"""Module 1 — Config & Constants"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (one level up from albumplayer/)
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")

# ─── Paths ────────────────────────────────────────────────────────────────────
ROOT_DIR = _ROOT
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "output")
ERRORS_LOG = OUTPUT_DIR / "errors.log"
PLAYER_LOG = OUTPUT_DIR / "player.log"
CATALOG_PATH = Path(os.getenv("CATALOG_PATH", "catalog.json"))

# ─── Lyrics ───────────────────────────────────────────────────────────────────
LYRICS_FETCH_TIMEOUT = float(os.getenv("LYRICS_FETCH_TIMEOUT", "10"))

# ─── Timeline markers ─────────────────────────────────────────────────────────
MARKER_LEVELS = 10          # discrete rows above the progress bar
MARKER_GUTTER_PX = 10       # minimum horizontal gap between two labels
MARKER_CHAR_WIDTH = 5.25    # estimated px per label character
MARKER_CHROME_PX = 15       # time badge + padding around the label
MARKER_BASE_HEIGHT = 35
MARKER_LEVEL_HEIGHT = 30
DEFAULT_BAR_WIDTH = float(os.getenv("DEFAULT_BAR_WIDTH", "800"))

# ─── Transport ────────────────────────────────────────────────────────────────
SEEK_STEP = 10        # seconds, arrow keys
SEEK_STEP_SMALL = 3   # seconds, shift + arrow keys

APP_VERSION = "0.3.0"

# ─── Web server ──────────────────────────────────────────────────────────────
WEB_PORT = int(os.getenv("WEB_PORT", "8888"))

# ─── Dev mode ─────────────────────────────────────────────────────────────────
DEV_MODE = os.getenv("DEV_MODE", "1").strip() in ("1", "true", "yes")
