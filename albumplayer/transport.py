"""Module 6 — Media transport: the playback primitive the engine drives"""
import asyncio
import logging
import math
import os
import re
import signal
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Optional, Protocol

from .models import AudioSource

logger = logging.getLogger(__name__)


class MediaTransport(Protocol):
    """What the engine needs from an audio element.

    Times are seconds. ``duration`` is NaN until it is known.
    """

    current_time: float

    @property
    def duration(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    @property
    def ended(self) -> bool: ...

    def load(self, sources: list[AudioSource]): ...

    def play(self): ...

    def pause(self): ...


def get_audio_duration(path: Path) -> float | None:
    """Get audio duration in seconds using macOS afinfo. Returns None on failure."""
    try:
        result = subprocess.run(
            ["afinfo", str(path)],
            capture_output=True, text=True, timeout=5,
        )
        match = re.search(r"estimated duration:\s+([\d.]+)\s+sec", result.stdout)
        return float(match.group(1)) if match else None
    except (OSError, subprocess.SubprocessError):
        return None


def local_path(source: AudioSource) -> Optional[Path]:
    uri = source.uri
    if uri.startswith("file://"):
        return Path(uri[len("file://"):])
    if "://" in uri:
        return None
    return Path(uri)


class AfplayTransport:
    """Plays local files with afplay; pause is SIGSTOP, seek re-spawns from an ffmpeg trim."""

    def __init__(self):
        self._proc: Optional[subprocess.Popen] = None
        self._source: Optional[Path] = None
        self._duration: float = math.nan
        self._play_start: float = 0.0
        self._paused_at: float = 0.0
        self._total_paused: float = 0.0
        self._seek_offset: float = 0.0
        self._stopping: bool = False
        self._ended: bool = False
        self._temp_file: Optional[Path] = None
        self._watcher_task: Optional[asyncio.Task] = None

    # ── Loading ────────────────────────────────────────────────────────────────

    def load(self, sources: list[AudioSource]):
        """Pick the first local source. Nothing plays until play()."""
        self.stop()
        self._source = None
        self._duration = math.nan
        for source in sources:
            path = local_path(source)
            if path is not None and path.exists():
                self._source = path
                break
            logger.warning("Skipping unplayable source %s", source.uri)
        if self._source is not None:
            self._duration = get_audio_duration(self._source) or math.nan
        self._ended = False

    # ── Playback ───────────────────────────────────────────────────────────────

    def play(self):
        if self._proc and self._proc.poll() is None:
            if self._paused_at > 0:
                self._resume()
            return
        if self._source is None:
            return
        if self._ended:
            self._seek_offset = 0.0
        self._spawn(self._seek_offset)

    def pause(self):
        """Suspend afplay in place (SIGSTOP). Position is preserved."""
        if self._proc and self._proc.poll() is None and self._paused_at == 0:
            try:
                os.kill(self._proc.pid, signal.SIGSTOP)
                self._paused_at = time.monotonic()
            except ProcessLookupError:
                pass

    def stop(self):
        """Terminate playback and wait for process to clean up."""
        self._kill()
        self._play_start = 0.0
        self._paused_at = 0.0
        self._total_paused = 0.0
        self._seek_offset = 0.0
        self._cleanup_temp()

    # ── State ──────────────────────────────────────────────────────────────────

    @property
    def paused(self) -> bool:
        if self._proc is None or self._proc.poll() is not None:
            return True
        return self._paused_at > 0

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def current_time(self) -> float:
        """Seconds into the file, accounting for pauses and seeks."""
        if self._play_start == 0:
            return self._seek_offset
        if self._paused_at > 0:
            raw = self._paused_at - self._play_start - self._total_paused
        else:
            raw = time.monotonic() - self._play_start - self._total_paused
        pos = self._seek_offset + raw
        if not math.isnan(self._duration):
            pos = min(pos, self._duration)
        return pos

    @current_time.setter
    def current_time(self, seconds: float):
        new_pos = max(0.0, seconds)
        if not math.isnan(self._duration):
            new_pos = min(new_pos, max(0.0, self._duration - 0.5))
        self._ended = False
        if self._proc is None or self._proc.poll() is not None:
            self._seek_offset = new_pos
            return
        was_paused = self._paused_at > 0
        self._spawn(new_pos)
        if was_paused:
            time.sleep(0.05)
            self.pause()

    # ── Internals ──────────────────────────────────────────────────────────────

    def _resume(self):
        try:
            os.kill(self._proc.pid, signal.SIGCONT)
        except ProcessLookupError:
            pass
        self._total_paused += time.monotonic() - self._paused_at
        self._paused_at = 0.0

    def _spawn(self, offset: float):
        self._kill()
        self._cleanup_temp()
        path = self._source
        if offset > 0:
            path = self._trim(offset) or self._source
            if path is self._source:
                offset = 0.0

        self._proc = subprocess.Popen(
            ["afplay", str(path)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        self._play_start = time.monotonic()
        self._paused_at = 0.0
        self._total_paused = 0.0
        self._seek_offset = offset
        self._ended = False
        self._stopping = False

        proc = self._proc

        async def _watch():
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, proc.wait)
            if proc is self._proc and not self._stopping:
                self._ended = True

        self._watcher_task = asyncio.create_task(_watch())

    def _trim(self, offset: float) -> Optional[Path]:
        """ffmpeg-trim the source from offset into a temp wav (afplay can't seek)."""
        tmp = Path(tempfile.mktemp(suffix=".wav"))
        try:
            subprocess.run(
                ["ffmpeg", "-y", "-loglevel", "error",
                 "-ss", str(offset), "-i", str(self._source),
                 "-f", "wav", str(tmp)],
                capture_output=True, timeout=15,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("ffmpeg seek failed: %s", e)
            tmp.unlink(missing_ok=True)
            return None
        if not tmp.exists() or tmp.stat().st_size < 100:
            tmp.unlink(missing_ok=True)
            return None
        self._temp_file = tmp
        return tmp

    def _kill(self):
        if self._proc and self._proc.poll() is None:
            self._stopping = True
            if self._paused_at > 0:
                # Must resume before terminate — SIGSTOP blocks SIGTERM
                try:
                    os.kill(self._proc.pid, signal.SIGCONT)
                except ProcessLookupError:
                    pass
            self._proc.terminate()
            try:
                self._proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._proc.kill()
        if self._watcher_task and not self._watcher_task.done():
            self._watcher_task.cancel()
        self._proc = None

    def _cleanup_temp(self):
        """Remove any temporary seek file."""
        if self._temp_file:
            try:
                self._temp_file.unlink(missing_ok=True)
            except OSError:
                pass
            self._temp_file = None
