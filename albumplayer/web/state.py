"""PlayerState — observable state bridge between engine and its renderers."""
import asyncio
import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class PlayerEvent(str, Enum):
    """Event names pushed to subscribers. Serializes as the plain string."""

    ALBUM_SELECTED = "album_selected"
    NOW_PLAYING = "now_playing"
    LYRICS = "lyrics"
    LYRIC_LINE = "lyric_line"
    PROGRESS = "progress"
    PLAYBACK_STATE = "playback_state"
    ERROR = "error"

    def __str__(self):
        return self.value


class PlayerState:
    def __init__(self, maxsize: int = 50):
        self._maxsize = maxsize
        self._subscribers: dict[str, asyncio.Queue] = {}

    def subscribe(self, client_id: str) -> asyncio.Queue:
        """Register a renderer. Its queue receives (PlayerEvent, data) tuples."""
        q: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers[client_id] = q
        return q

    def unsubscribe(self, client_id: str):
        self._subscribers.pop(client_id, None)

    @property
    def client_count(self) -> int:
        return len(self._subscribers)

    async def broadcast(self, event: PlayerEvent, data: Any):
        """Queue an event for every renderer; a full queue loses its oldest event."""
        event = PlayerEvent(event)
        for client_id, q in list(self._subscribers.items()):
            if q.full():
                dropped, _ = q.get_nowait()
                logger.debug("Client %s lagging, dropped %s", client_id, dropped)
            q.put_nowait((event, data))
