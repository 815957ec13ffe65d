from __future__ import annotations

import datetime as dt
import math
from typing import AbstractSet, Sequence

from .task_models import DependencyLine, Task, TaskPosition, floor_days
from .timeline import WEEK_DAYS

# Bars never get narrower than this so short tasks stay visible and grabbable.
MIN_BAR_WIDTH = 20.0


def pixels_per_day(unit_size: float, days_per_unit: int = WEEK_DAYS) -> float:
    if unit_size <= 0:
        raise ValueError(f"unit_size must be positive, got {unit_size}")
    return unit_size / days_per_unit


def calculate_task_position(
    task: Task,
    origin: dt.date,
    unit_size: float,
    days_per_unit: int = WEEK_DAYS,
) -> TaskPosition:
    """
    Map a task's date range onto the timeline.

    `left` is linear in the whole days from `origin` to the start (negative
    before the origin); `width` is linear in the task's whole-day span with a
    floor of MIN_BAR_WIDTH. Milestones collapse to a MIN_BAR_WIDTH marker at
    their start date.
    """

    scale = pixels_per_day(unit_size, days_per_unit)
    offset_days = floor_days(task.start_date - origin)
    if task.milestone:
        return TaskPosition(left=offset_days * scale, width=MIN_BAR_WIDTH)
    span_days = floor_days(task.end_date - task.start_date)
    return TaskPosition(left=offset_days * scale, width=max(span_days * scale, MIN_BAR_WIDTH))


def calculate_baseline_position(
    task: Task,
    origin: dt.date,
    unit_size: float,
    days_per_unit: int = WEEK_DAYS,
) -> TaskPosition | None:
    """Geometry of the frozen baseline range, or None when the task has no baseline."""
    if not task.has_baseline:
        return None
    scale = pixels_per_day(unit_size, days_per_unit)
    offset_days = floor_days(task.baseline_start - origin)
    span_days = floor_days(task.baseline_end - task.baseline_start)
    return TaskPosition(left=offset_days * scale, width=max(span_days * scale, 0.0))


def pixels_to_days(pixel_delta: float, unit_size: float, days_per_unit: int = WEEK_DAYS) -> int:
    """Whole days represented by a horizontal pointer movement (halves round up)."""
    return math.floor(pixel_delta / pixels_per_day(unit_size, days_per_unit) + 0.5)


def dependency_lines(
    flat: Sequence[Task],
    origin: dt.date,
    unit_size: float,
    row_height: float,
    critical: AbstractSet[str] = frozenset(),
    days_per_unit: int = WEEK_DAYS,
) -> list[DependencyLine]:
    """
    Connector geometry for every visible dependency.

    Group rows draw no connectors, and a prerequisite that is not in `flat`
    (collapsed away or deleted) produces no line.
    """

    rows = {task.task_id: idx for idx, task in enumerate(flat)}
    by_id = {task.task_id: task for task in flat}
    lines: list[DependencyLine] = []

    for idx, task in enumerate(flat):
        if not task.is_leaf or not task.dependencies:
            continue
        to_pos = calculate_task_position(task, origin, unit_size, days_per_unit)
        for dep_id in sorted(task.dependencies):
            dep = by_id.get(dep_id)
            if dep is None:
                continue
            from_pos = calculate_task_position(dep, origin, unit_size, days_per_unit)
            lines.append(
                DependencyLine(
                    from_id=dep_id,
                    to_id=task.task_id,
                    from_x=from_pos.left + from_pos.width,
                    from_y=rows[dep_id] * row_height + row_height / 2,
                    to_x=to_pos.left,
                    to_y=idx * row_height + row_height / 2,
                    critical=task.task_id in critical and dep_id in critical,
                )
            )
    return lines
