from __future__ import annotations

import datetime as dt
import enum
import logging
from dataclasses import dataclass

from .policy import ensure_editable
from .positions import pixels_to_days
from .task_models import Task
from .timeline import WEEK_DAYS

logger = logging.getLogger(__name__)

# Width in pixels of the grab handles at each end of a bar.
HANDLE_WIDTH = 8.0


class DragMode(enum.Enum):
    MOVE = "move"
    RESIZE_START = "resize-start"
    RESIZE_END = "resize-end"


@dataclass(frozen=True)
class DragState:
    """Transient gesture data captured on pointer-down."""

    task_id: str
    mode: DragMode
    start_x: float
    original_start: dt.date


@dataclass(frozen=True)
class DragResult:
    """Committed gesture, ready to be applied to the forest."""

    task_id: str
    mode: DragMode
    days_delta: int


def grab_mode(pointer_x: float, bar_left: float, bar_width: float, handle_width: float = HANDLE_WIDTH) -> DragMode:
    """
    Mode for a pointer-down at `pointer_x` on a bar.

    The left handle resizes the start, the right handle resizes the end and the
    body moves the bar. On bars narrower than two handles the body wins.
    """

    if bar_width <= 2 * handle_width:
        return DragMode.MOVE
    if pointer_x - bar_left <= handle_width:
        return DragMode.RESIZE_START
    if bar_left + bar_width - pointer_x <= handle_width:
        return DragMode.RESIZE_END
    return DragMode.MOVE


def shift_dates(task: Task, mode: DragMode, days_delta: int) -> tuple[dt.date, dt.date]:
    """New (start, end) after shifting by `days_delta` days; no validation."""
    delta = dt.timedelta(days=days_delta)
    if mode is DragMode.MOVE:
        return task.start_date + delta, task.end_date + delta
    if mode is DragMode.RESIZE_START:
        return task.start_date + delta, task.end_date
    if mode is DragMode.RESIZE_END:
        return task.start_date, task.end_date + delta
    raise ValueError(f"Unsupported drag mode: {mode!r}")


class DragEngine:
    """
    Pointer gesture state machine: idle (state is None) or dragging.

    The engine never touches the forest; `finish` hands back a DragResult which
    the caller applies through `mutations.apply_drag`.
    """

    def __init__(self, unit_size: float, progress_threshold: int, days_per_unit: int = WEEK_DAYS) -> None:
        self.unit_size = unit_size
        self.progress_threshold = progress_threshold
        self.days_per_unit = days_per_unit
        self.state: DragState | None = None

    @property
    def is_dragging(self) -> bool:
        return self.state is not None

    def begin(self, task: Task, pointer_x: float, mode: DragMode = DragMode.MOVE) -> DragState:
        if self.state is not None:
            raise RuntimeError(f"A drag of task '{self.state.task_id}' is already in progress")
        ensure_editable(task, self.progress_threshold, "drag")
        self.state = DragState(task_id=task.task_id, mode=mode, start_x=pointer_x, original_start=task.start_date)
        logger.debug("Drag started on %s (%s) at x=%s", task.task_id, mode.value, pointer_x)
        return self.state

    def finish(self, pointer_x: float) -> DragResult | None:
        """
        Complete the gesture at `pointer_x` and return to idle.

        Returns None when idle or when the movement rounds to zero days (a click).
        """

        state = self.state
        if state is None:
            return None
        self.state = None

        days_delta = pixels_to_days(pointer_x - state.start_x, self.unit_size, self.days_per_unit)
        if days_delta == 0:
            logger.debug("Drag on %s ended without a whole-day movement", state.task_id)
            return None
        return DragResult(task_id=state.task_id, mode=state.mode, days_delta=days_delta)

    def cancel(self) -> None:
        if self.state is not None:
            logger.debug("Drag on %s cancelled", self.state.task_id)
        self.state = None
