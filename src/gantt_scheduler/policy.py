from __future__ import annotations

import logging
from typing import Literal

from .errors import PolicyViolation
from .task_models import Task

logger = logging.getLogger(__name__)

Action = Literal["edit", "drag", "delete", "remove-dependencies", "link"]


def is_task_editable(task: Task, progress_threshold: int) -> bool:
    """A task is editable while below the progress threshold and not a group row."""
    return task.progress < progress_threshold and task.is_leaf


def ensure_editable(task: Task, progress_threshold: int, action: Action = "edit") -> None:
    """Raise PolicyViolation unless `task` may be edited, dragged or relinked."""
    if not task.is_leaf:
        _reject(task, action, "group rows are locked")
    if task.progress >= progress_threshold:
        _reject(task, action, f"progress {task.progress}% has reached the {progress_threshold}% lock threshold")


def ensure_deletable(task: Task, progress_threshold: int) -> None:
    """Group rows and locked tasks cannot be deleted; a group would take locked children with it."""
    ensure_editable(task, progress_threshold, "delete")


def ensure_dependencies_removable(task: Task, progress_threshold: int) -> None:
    if not task.dependencies:
        _reject(task, "remove-dependencies", "it has no dependencies")
    ensure_editable(task, progress_threshold, "remove-dependencies")


def _reject(task: Task, action: Action, reason: str) -> None:
    logger.warning("Rejected %s on task %s: %s", action, task.task_id, reason)
    raise PolicyViolation(task.task_id, action, reason)
