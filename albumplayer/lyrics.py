"""Time-coded lyrics: parsing, floor lookup and load-once fetching.

A lyric source is line-oriented text where every useful line looks like
``[MM:SS.xx]text``. Only the ``MM:SS`` label is kept; the centiseconds
are matched and dropped. Lines that don't match are skipped entirely.

Lookups compare labels as strings. Fixed-width zero-padded ``MM:SS``
sorts lexicographically exactly like it sorts numerically, so a plain
binary search over the labels answers "which line is active at T".

LyricTrack wraps the index with a single shared in-flight load so the
playback tick can poll for the active line without racing the fetch.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

import httpx

from .config import LYRICS_FETCH_TIMEOUT

logger = logging.getLogger(__name__)

LYRIC_LINE_RE = re.compile(r"^\[(\d\d:\d\d)\.\d\d\](.*)$")

Fetcher = Callable[[str], Awaitable[str]]


class _Unavailable:
    """Returned by deferred lookups when no load was ever requested."""

    def __bool__(self):
        return False

    def __repr__(self):
        return "UNAVAILABLE"


UNAVAILABLE = _Unavailable()


@dataclass(frozen=True)
class LyricLine:
    line: str
    index: int


class TimedText:
    """Index-aligned ``lines``/``times`` lists with floor lookup."""

    def __init__(self, lines: Optional[list[str]] = None, times: Optional[list[str]] = None):
        self.lines: list[str] = list(lines or [])
        self.times: list[str] = list(times or [])
        if len(self.lines) != len(self.times):
            raise ValueError("lines and times must be the same length")

    @classmethod
    def parse(cls, text: str) -> "TimedText":
        lines: list[str] = []
        times: list[str] = []
        for raw in text.splitlines():
            match = LYRIC_LINE_RE.match(raw)
            if not match:
                continue
            times.append(match.group(1))
            lines.append(match.group(2) or "")

        # Source order is kept as-is; floor lookups assume it is ascending.
        if any(a > b for a, b in zip(times, times[1:])):
            logger.warning("lyric timestamps are out of order; lookups may be inaccurate")
        return cls(lines, times)

    def __len__(self) -> int:
        return len(self.times)

    def time_for_index(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.times):
            return self.times[index]
        return None

    def find_at(self, timestamp: str) -> Optional[LyricLine]:
        """Return the last line whose cue time is <= timestamp ("MM:SS").

        None when the index is empty or the timestamp precedes every cue.
        """
        low = 0
        high = len(self.times) - 1
        prev = None
        while low <= high:
            mid = low + (high - low) // 2
            if self.times[mid] > timestamp:
                high = mid - 1
            elif self.times[mid] < timestamp:
                low = mid + 1
                prev = mid
            else:
                return LyricLine(self.lines[mid], mid)

        if prev is None:
            return None
        return LyricLine(self.lines[prev], prev)


async def fetch_text(uri: str) -> str:
    """Read a lyric source: http(s) through httpx, anything else from disk."""
    if uri.startswith(("http://", "https://")):
        async with httpx.AsyncClient(timeout=LYRICS_FETCH_TIMEOUT) as client:
            r = await client.get(uri)
            r.raise_for_status()
            return r.text

    path = Path(uri[len("file://"):]) if uri.startswith("file://") else Path(uri)
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, lambda: path.read_text(encoding="utf-8"))


class LyricTrack:
    """Lyrics for one track, fetched and parsed at most once.

    ``load()`` starts a single task on first call; every later or
    concurrent caller awaits that same task. A failed fetch or parse is
    logged and leaves an empty index behind; it is never retried.
    """

    def __init__(self, source: str, fetch: Optional[Fetcher] = None):
        self.source = source
        self._fetch = fetch or fetch_text
        self._text: Optional[TimedText] = None
        self._task: Optional[asyncio.Future] = None

    @property
    def requested(self) -> bool:
        return self._task is not None

    @property
    def loaded(self) -> bool:
        return self._text is not None

    @property
    def text(self) -> Optional[TimedText]:
        return self._text

    @property
    def lines(self) -> list[str]:
        return self._text.lines if self._text is not None else []

    @property
    def times(self) -> list[str]:
        return self._text.times if self._text is not None else []

    def request(self) -> asyncio.Future:
        """Start the load without waiting for it. Returns the shared task."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._load())
        return self._task

    def load(self) -> "asyncio.Future[TimedText]":
        """Register the load immediately and return an awaitable for its result.

        The request is recorded as soon as load() is called, before any
        await, so deferred lookups issued afterwards wait for it.
        """
        if self._text is not None:
            done = asyncio.get_running_loop().create_future()
            done.set_result(self._text)
            return done
        # Shielded: a caller giving up must not abort the shared load.
        return asyncio.shield(self.request())

    async def _load(self) -> TimedText:
        try:
            raw = await self._fetch(self.source)
            text = TimedText.parse(raw)
        except Exception as e:
            logger.error("failed to load lyrics from %s: %s", self.source, e)
            text = TimedText()
        self._text = text
        return text

    def get_lyrics_at(self, timestamp: str) -> Union[LyricLine, None, _Unavailable]:
        if self._text is None:
            return UNAVAILABLE
        return self._text.find_at(timestamp)

    async def get_lyrics_at_deferred(self, timestamp: str) -> Union[LyricLine, None, _Unavailable]:
        """Wait for the pending load, then look up timestamp.

        Returns UNAVAILABLE straight away if load() was never called.
        """
        if self._task is None:
            return UNAVAILABLE
        await self.load()
        return self.get_lyrics_at(timestamp)
