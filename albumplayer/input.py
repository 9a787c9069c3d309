"""Terminal input — raw key reading mapped to player actions."""
import select as _sel
import sys
import termios
import tty

_KEY_ACTIONS = {
    " ": "toggle_pause",
    "k": "toggle_pause",
    "n": "next",
    "p": "prev",
    "N": "next_album",
    "P": "prev_album",
    "right": "seek_forward",
    "left": "seek_back",
    ">": "seek_forward_small",
    "<": "seek_back_small",
    "b": "browse_albums",
    "t": "browse_tracks",
    "l": "lyrics",
    "m": "markers",
    "u": "share",
    "h": "help",
    "?": "help",
    "q": "quit",
    "\x03": "quit",
}


def _read_nav_key(timeout: float | None = None) -> str | None:
    """Read one logical keypress in raw mode; return a normalised key name.

    With a timeout, returns None when nothing was pressed in time.
    """
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        if timeout is not None:
            readable, _, _ = _sel.select([sys.stdin], [], [], timeout)
            if not readable:
                return None
        ch = sys.stdin.read(1)
        if ch == "\x1b":
            readable, _, _ = _sel.select([sys.stdin], [], [], 0.05)
            if readable:
                nxt = sys.stdin.read(1)
                if nxt == "[":
                    readable2, _, _ = _sel.select([sys.stdin], [], [], 0.05)
                    if readable2:
                        n2 = sys.stdin.read(1)
                        return {"A": "up", "B": "down", "C": "right", "D": "left"}.get(n2, "ignore")
                return "ignore"
            return "esc"   # bare Escape
        return ch
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)


def key_to_action(key: str) -> str | None:
    return _KEY_ACTIONS.get(key)
