from __future__ import annotations

from typing import Iterable

from .task_models import Task

# Heuristic: a dependent leaf is critical when its duration plus a fixed
# penalty per prerequisite exceeds the threshold. Not a CPM float analysis.
CRITICAL_THRESHOLD = 10
DEPENDENCY_WEIGHT = 2


def is_critical(task: Task) -> bool:
    if not task.is_leaf or not task.dependencies:
        return False
    return task.duration + DEPENDENCY_WEIGHT * len(task.dependencies) > CRITICAL_THRESHOLD


def estimate_critical_path(flat: Iterable[Task]) -> list[str]:
    """Ids of the critical tasks, in row order. Recomputed from scratch on every call."""
    return [task.task_id for task in flat if is_critical(task)]


def critical_task_ids(flat: Iterable[Task]) -> frozenset[str]:
    return frozenset(estimate_critical_path(flat))
