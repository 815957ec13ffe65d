from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal


TimelineUnitName = Literal["week", "day"]
"""Supported timeline cadences; `timeline_unit_size` is the pixel width of one unit."""

DAYS_PER_UNIT: dict[str, int] = {"week": 7, "day": 1}

ZOOM_MIN = 50
ZOOM_MAX = 200
ZOOM_STEP = 25
ZOOM_DEFAULT = 100


@dataclass(frozen=True)
class GanttConfig:
    """Chart options recognised by the scheduling core."""

    timeline_unit_size: float = 70
    taskbar_height: int = 25
    row_height: int = 40
    show_baseline: bool = True
    enable_virtual_scrolling: bool = True
    progress_threshold: int = 50
    timeline_unit: TimelineUnitName = "week"

    @property
    def days_per_unit(self) -> int:
        """Calendar days covered by one timeline unit."""
        return DAYS_PER_UNIT[self.timeline_unit]

    def zoomed(self, zoom_percent: int) -> "GanttConfig":
        """Return a copy whose unit size reflects the given zoom level."""
        return replace(self, timeline_unit_size=zoom_unit_size(self.timeline_unit_size, zoom_percent))


def clamp_zoom(zoom_percent: int) -> int:
    return max(ZOOM_MIN, min(ZOOM_MAX, zoom_percent))


def zoom_in(zoom_percent: int) -> int:
    return clamp_zoom(zoom_percent + ZOOM_STEP)


def zoom_out(zoom_percent: int) -> int:
    return clamp_zoom(zoom_percent - ZOOM_STEP)


def zoom_unit_size(base_unit_size: float, zoom_percent: int) -> float:
    """Effective unit width for a zoom level (clamped to the supported range)."""
    return base_unit_size * clamp_zoom(zoom_percent) / 100
