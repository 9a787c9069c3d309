"""Timeline marker layout — stack labels so they don't overlap.

Markers sit above the progress bar at their time offset. Each label is
lifted to a "level" (row); a single greedy left-to-right pass gives
every marker the lowest row not blocked by an earlier marker that sits
closer than the label's estimated width plus a gutter.
"""
from dataclasses import dataclass
from typing import Optional

from .config import (
    MARKER_BASE_HEIGHT,
    MARKER_CHAR_WIDTH,
    MARKER_CHROME_PX,
    MARKER_GUTTER_PX,
    MARKER_LEVEL_HEIGHT,
    MARKER_LEVELS,
)
from .models import Marker
from .utils import pretty_duration_ms


@dataclass(frozen=True)
class MarkerPlacement:
    marker: Marker
    offset: float    # fraction of the track, 0..1
    width: float     # estimated label width in px
    level: int
    height: int      # px from the bar to the label

    @property
    def time_label(self) -> str:
        return pretty_duration_ms(self.marker.time_ms)

    def to_dict(self) -> dict:
        return {
            "label": self.marker.label,
            "time": self.time_label,
            "time_ms": self.marker.time_ms,
            "offset": self.offset,
            "width": self.width,
            "level": self.level,
            "height": self.height,
        }


def estimate_width(label: str) -> float:
    return len(label) * MARKER_CHAR_WIDTH + MARKER_CHROME_PX


def level_height(level: int) -> int:
    return MARKER_BASE_HEIGHT + level * MARKER_LEVEL_HEIGHT


def assign_levels(items: list[tuple[float, float]], bar_width: float) -> list[int]:
    """items: (offset fraction, estimated width) in time order. Returns one level per item.

    When every level is blocked the marker reuses the highest level.
    """
    placed: list[tuple[float, int]] = []
    levels: list[int] = []
    for offset, width in items:
        blocked = set()
        for prev_offset, prev_level in placed:
            distance = (offset - prev_offset) * bar_width
            if distance < width + MARKER_GUTTER_PX:
                blocked.add(prev_level)

        level = next(
            (lvl for lvl in range(MARKER_LEVELS) if lvl not in blocked),
            MARKER_LEVELS - 1,
        )
        placed.append((offset, level))
        levels.append(level)
    return levels


def layout_markers(
    markers: list[Marker],
    duration_ms: Optional[float],
    bar_width: float,
) -> list[MarkerPlacement]:
    """Place a track's markers along a bar bar_width pixels wide."""
    offsets = [m.time_ms / duration_ms if duration_ms else 0.0 for m in markers]
    widths = [estimate_width(m.label) for m in markers]
    levels = assign_levels(list(zip(offsets, widths)), bar_width)
    return [
        MarkerPlacement(marker, offset, width, level, level_height(level))
        for marker, offset, width, level in zip(markers, offsets, widths, levels)
    ]
