from __future__ import annotations

import datetime as dt
import logging

from . import mutations
from .config import ZOOM_DEFAULT, GanttConfig, zoom_in, zoom_out, zoom_unit_size
from .critical_path import critical_task_ids
from .drag import DragEngine, DragMode, DragResult, grab_mode
from .errors import PolicyViolation
from .flatten import flatten_tasks
from .policy import is_task_editable
from .positions import calculate_baseline_position, calculate_task_position, dependency_lines
from .task_models import DependencyLine, Forest, Task, TaskPosition, TimelineUnit
from .timeline import generate_timeline, timeline_window

logger = logging.getLogger(__name__)


class GanttSession:
    """
    Orchestrating layer that owns the forest for one open chart.

    Every gesture runs synchronously: policy gate, date arithmetic, tree
    rewrite. Derived views (rows, geometry, critical path) are recomputed from
    the current forest on each access and never cached.
    """

    def __init__(
        self,
        forest: Forest,
        config: GanttConfig | None = None,
        window: tuple[dt.date, dt.date] | None = None,
    ) -> None:
        self.forest = forest
        self.config = config or GanttConfig()
        self.zoom = ZOOM_DEFAULT
        self.window = window
        self.selected_id: str | None = None
        self.history: list[Forest] = []
        self._drag = DragEngine(self.unit_size, self.config.progress_threshold, self.config.days_per_unit)

    # --- derived views -----------------------------------------------------

    @property
    def unit_size(self) -> float:
        return zoom_unit_size(self.config.timeline_unit_size, self.zoom)

    @property
    def flat(self) -> list[Task]:
        return flatten_tasks(self.forest)

    @property
    def critical(self) -> frozenset[str]:
        return critical_task_ids(self.flat)

    @property
    def timeline(self) -> list[TimelineUnit]:
        start, end = self._window()
        return generate_timeline(start, end, self.unit_size, self.config.days_per_unit)

    @property
    def origin(self) -> dt.date:
        return self._window()[0]

    def positions(self) -> dict[str, TaskPosition]:
        origin = self.origin
        return {
            task.task_id: calculate_task_position(task, origin, self.unit_size, self.config.days_per_unit)
            for task in self.flat
        }

    def baseline_positions(self) -> dict[str, TaskPosition]:
        if not self.config.show_baseline:
            return {}
        origin = self.origin
        found: dict[str, TaskPosition] = {}
        for task in self.flat:
            position = calculate_baseline_position(task, origin, self.unit_size, self.config.days_per_unit)
            if position is not None:
                found[task.task_id] = position
        return found

    def dependency_lines(self) -> list[DependencyLine]:
        flat = self.flat
        return dependency_lines(
            flat,
            self.origin,
            self.unit_size,
            self.config.row_height,
            critical_task_ids(flat),
            self.config.days_per_unit,
        )

    def is_editable(self, task_id: str) -> bool:
        task = self.forest.get(task_id)
        return task is not None and is_task_editable(task, self.config.progress_threshold)

    # --- selection ---------------------------------------------------------

    def select(self, task_id: str | None) -> Task | None:
        self.selected_id = task_id if task_id in self.forest else None
        return self.selected

    @property
    def selected(self) -> Task | None:
        if self.selected_id is None:
            return None
        return self.forest.get(self.selected_id)

    # --- gestures ----------------------------------------------------------

    def add_task(self, start: dt.date | None = None, parent_id: str | None = None) -> Task:
        forest, task = mutations.add_task(self.forest, start=start, parent_id=parent_id)
        self._commit(forest)
        return task

    def edit_task(self, task_id: str, patch: dict) -> Forest:
        return self._commit(
            mutations.update_task_fields(self.forest, task_id, patch, self.config.progress_threshold)
        )

    def begin_drag(
        self,
        task_id: str,
        pointer_x: float,
        mode: DragMode | None = None,
    ) -> bool:
        """
        Start a drag on `task_id`; returns False when the task does not exist.

        Without an explicit mode the grabbed zone of the bar decides it.
        """

        task = self.forest.get(task_id)
        if task is None:
            return False
        if mode is None:
            bar = calculate_task_position(task, self.origin, self.unit_size, self.config.days_per_unit)
            mode = grab_mode(pointer_x, bar.left, bar.width)
        self._drag.begin(task, pointer_x, mode)
        return True

    def end_drag(self, pointer_x: float) -> DragResult | None:
        result = self._drag.finish(pointer_x)
        if result is None:
            return None
        self._commit(
            mutations.apply_drag(
                self.forest, result.task_id, result.mode, result.days_delta, self.config.progress_threshold
            )
        )
        return result

    def cancel_drag(self) -> None:
        self._drag.cancel()

    @property
    def is_dragging(self) -> bool:
        return self._drag.is_dragging

    def toggle_expand(self, task_id: str) -> Forest:
        return self._commit(mutations.toggle_expand(self.forest, task_id))

    def collapse_selected(self) -> Forest:
        return self._commit(mutations.set_expanded(self.forest, self._require_selection("collapse"), False))

    def expand_selected(self) -> Forest:
        return self._commit(mutations.set_expanded(self.forest, self._require_selection("expand"), True))

    def delete_selected(self) -> Forest:
        task_id = self._require_selection("delete")
        forest = self._commit(mutations.delete_task(self.forest, task_id, self.config.progress_threshold))
        self.selected_id = None
        return forest

    def remove_selected_dependencies(self) -> Forest:
        task_id = self._require_selection("remove-dependencies")
        return self._commit(mutations.remove_dependencies(self.forest, task_id, self.config.progress_threshold))

    def link(self, task_id: str, prerequisite_id: str) -> Forest:
        return self._commit(
            mutations.add_dependency(self.forest, task_id, prerequisite_id, self.config.progress_threshold)
        )

    def zoom_in(self) -> int:
        return self._set_zoom(zoom_in(self.zoom))

    def zoom_out(self) -> int:
        return self._set_zoom(zoom_out(self.zoom))

    def zoom_reset(self) -> int:
        return self._set_zoom(ZOOM_DEFAULT)

    def undo(self) -> bool:
        if not self.history:
            return False
        self.forest = self.history.pop()
        if self.selected_id not in self.forest:
            self.selected_id = None
        return True

    # --- internals ---------------------------------------------------------

    def _commit(self, forest: Forest) -> Forest:
        if forest is not self.forest:
            self.history.append(self.forest)
            self.forest = forest
        return self.forest

    def _set_zoom(self, zoom: int) -> int:
        self.zoom = zoom
        self._drag.cancel()
        self._drag = DragEngine(self.unit_size, self.config.progress_threshold, self.config.days_per_unit)
        return self.zoom

    def _require_selection(self, action: str) -> str:
        if self.selected_id is None or self.selected_id not in self.forest:
            logger.warning("No task selected for %s", action)
            raise PolicyViolation("<none>", action, "no task selected")
        return self.selected_id

    def _window(self) -> tuple[dt.date, dt.date]:
        if self.window is not None:
            return self.window
        return timeline_window(self.forest)
