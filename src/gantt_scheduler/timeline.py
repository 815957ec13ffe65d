from __future__ import annotations

import datetime as dt
import logging

from .task_models import Forest, TimelineUnit

logger = logging.getLogger(__name__)

WEEK_DAYS = 7


def generate_timeline(
    start: dt.date,
    end: dt.date,
    unit_size: float,
    step_days: int = WEEK_DAYS,
) -> list[TimelineUnit]:
    """
    Build the timeline header units covering [start, end].

    - One unit per `step_days` starting at `start`; the last unit is the last
      step whose date is on or before `end`.
    - `start == end` yields a single unit; `start > end` yields no units.
    - Every unit is `unit_size` pixels wide so bars and grid align.
    """

    if unit_size <= 0:
        raise ValueError(f"unit_size must be positive, got {unit_size}")
    if step_days <= 0:
        raise ValueError(f"step_days must be positive, got {step_days}")
    if start > end:
        logger.warning("Timeline window is inverted (%s > %s); no units generated", start, end)
        return []

    step = dt.timedelta(days=step_days)
    units: list[TimelineUnit] = []
    current = start
    while current <= end:
        units.append(TimelineUnit(date=current, width=unit_size, is_weekend=is_weekend(current)))
        current += step
    return units


def is_weekend(day: dt.date) -> bool:
    return day.weekday() >= 5


def timeline_window(forest: Forest, padding_days: int = 0) -> tuple[dt.date, dt.date]:
    """
    Smallest [start, end] window covering every task (and baseline) in the forest.

    Collapsed rows still count so the window does not jump when rows are toggled.
    """

    starts: list[dt.date] = []
    ends: list[dt.date] = []
    for task in forest.walk():
        starts.append(task.start_date)
        ends.append(task.end_date)
        if task.has_baseline:
            starts.append(task.baseline_start)
            ends.append(task.baseline_end)
    if not starts:
        raise ValueError("Cannot infer a timeline window from an empty forest")

    pad = dt.timedelta(days=padding_days)
    return min(starts) - pad, max(ends) + pad
