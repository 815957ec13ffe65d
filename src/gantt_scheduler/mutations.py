from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Any, Mapping, get_args

from .drag import DragMode, shift_dates
from .errors import CycleRejected, ValidationFailure
from .policy import ensure_deletable, ensure_dependencies_removable, ensure_editable
from .scheduling import proposed_cycle
from .task_models import Forest, Task, TaskKind, TaskStatus

logger = logging.getLogger(__name__)

DEFAULT_TASK_DAYS = 7
NEW_TASK_PREFIX = "NEW"

# Fields the edit dialog may change. Identity, structure, dependencies and the
# baseline have dedicated operations (or none at all).
EDITABLE_FIELDS = frozenset(
    {"name", "start_date", "end_date", "progress", "duration", "milestone", "activity_number", "resources", "status"}
)
LOCKED_FIELDS = frozenset(
    {"task_id", "kind", "parent_id", "children", "dependencies", "baseline_start", "baseline_end", "expanded"}
)


def add_task(
    forest: Forest,
    *,
    start: dt.date | None = None,
    name: str = "New Task",
    parent_id: str | None = None,
    task_id: str | None = None,
) -> tuple[Forest, Task]:
    """
    Append a new leaf task and return (new forest, created task).

    Defaults: starts today, lasts DEFAULT_TASK_DAYS days, 0% progress, and a
    generated id that is unique in the forest.
    """

    if parent_id is not None and parent_id not in forest:
        raise ValidationFailure({"parent_id": f"Unknown parent task '{parent_id}'"})
    if task_id is None:
        task_id = _next_task_id(forest)
    elif task_id in forest:
        raise ValidationFailure({"task_id": f"Task id '{task_id}' is already in use"})

    start = start or dt.date.today()
    task = Task(
        task_id=task_id,
        name=name,
        start_date=start,
        end_date=start + dt.timedelta(days=DEFAULT_TASK_DAYS),
        progress=0,
        kind=TaskKind.LEAF,
        parent_id=parent_id,
    )
    errors = validate_task(task)
    if errors:
        raise ValidationFailure(errors)

    logger.info("Added task %s", task_id)
    return forest.with_child(task), task


def update_task_fields(
    forest: Forest,
    task_id: str,
    patch: Mapping[str, Any],
    progress_threshold: int,
) -> Forest:
    """
    Apply a dialog edit to one task, all or nothing.

    The task must be editable. Every field of the patched task is validated and
    any failure rejects the whole patch. A `duration` entry is checked but the
    stored duration is always derived from the dates.
    """

    task = forest.get(task_id)
    if task is None:
        logger.debug("Edit target %s not found; forest unchanged", task_id)
        return forest
    ensure_editable(task, progress_threshold, "edit")

    errors: dict[str, str] = {}
    for key in patch:
        if key in LOCKED_FIELDS:
            errors[key] = "Field cannot be changed from the edit dialog"
        elif key not in EDITABLE_FIELDS:
            errors[key] = "Unknown field"
    if errors:
        _reject_edit(task_id, errors)

    # Malformed values never reach the Task constructor.
    malformed = _check_patch_values(patch)
    fields = {key: value for key, value in patch.items() if key != "duration" and key not in malformed}
    updated = replace(task, **fields)

    errors = {**validate_task(updated), **malformed}
    if "duration" in patch:
        duration = patch["duration"]
        if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
            errors["duration"] = "Duration must be greater than 0"
    if errors:
        _reject_edit(task_id, errors)

    logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(patch)))
    return forest.with_task(updated)


def validate_task(task: Task) -> dict[str, str]:
    """Per-field validation messages for a task; empty when the task is valid."""

    errors: dict[str, str] = {}
    if not isinstance(task.name, str) or not task.name.strip():
        errors["name"] = "Task name is required"

    dates_ok = True
    for key in ("start_date", "end_date"):
        if not isinstance(getattr(task, key), dt.date):
            errors[key] = "Expected a date"
            dates_ok = False
    if dates_ok:
        try:
            if task.start_date >= task.end_date:
                errors["end_date"] = "End date must be after start date"
        except TypeError:
            errors["end_date"] = "Start and end must both be dates or both be datetimes"

    progress = task.progress
    if not isinstance(progress, int) or isinstance(progress, bool) or not 0 <= progress <= 100:
        errors["progress"] = "Progress must be between 0 and 100"

    if not isinstance(task.milestone, bool):
        errors["milestone"] = "Milestone must be true or false"
    if task.activity_number is not None and not isinstance(task.activity_number, str):
        errors["activity_number"] = "Activity number must be text"
    if not all(isinstance(item, str) for item in task.resources):
        errors["resources"] = "Resources must be a list of names"
    if task.status is not None and task.status not in get_args(TaskStatus):
        errors["status"] = f"Status must be one of {list(get_args(TaskStatus))}"
    return errors


def _check_patch_values(patch: Mapping[str, Any]) -> dict[str, str]:
    # Task coerces resources with tuple(), which would split a bare string.
    errors: dict[str, str] = {}
    if "resources" in patch:
        resources = patch["resources"]
        if not isinstance(resources, (list, tuple)) or not all(isinstance(item, str) for item in resources):
            errors["resources"] = "Resources must be a list of names"
    return errors


def apply_drag(
    forest: Forest,
    task_id: str,
    mode: DragMode,
    days_delta: int,
    progress_threshold: int | None = None,
) -> Forest:
    """
    Shift a task's dates for a finished move or resize gesture.

    A zero delta is a click and changes nothing. A result with start on or
    after end is rejected with ValidationFailure. When `progress_threshold` is
    given the edit policy is re-checked before committing.
    """

    task = forest.get(task_id)
    if task is None:
        logger.debug("Drag target %s not found; forest unchanged", task_id)
        return forest
    if progress_threshold is not None:
        ensure_editable(task, progress_threshold, "drag")
    if days_delta == 0:
        return forest

    start, end = shift_dates(task, mode, days_delta)
    if start >= end:
        field = "start_date" if mode is DragMode.RESIZE_START else "end_date"
        logger.warning("Rejected %s of %s by %+d days: start would not precede end", mode.value, task_id, days_delta)
        raise ValidationFailure({field: "End date must be after start date"})

    logger.info("Task %s %s by %+d days", task_id, "moved" if mode is DragMode.MOVE else "resized", days_delta)
    return forest.with_task(replace(task, start_date=start, end_date=end))


def toggle_expand(forest: Forest, task_id: str) -> Forest:
    task = forest.get(task_id)
    if task is None:
        logger.debug("Toggle target %s not found; forest unchanged", task_id)
        return forest
    return forest.with_task(replace(task, expanded=not task.expanded))


def set_expanded(forest: Forest, task_id: str, expanded: bool) -> Forest:
    """Explicit collapse/expand; a no-op when the row is already in that state."""
    task = forest.get(task_id)
    if task is None or task.expanded == expanded:
        return forest
    return forest.with_task(replace(task, expanded=expanded))


def remove_dependencies(forest: Forest, task_id: str, progress_threshold: int) -> Forest:
    """Clear every prerequisite of an editable task."""
    task = forest.get(task_id)
    if task is None:
        logger.debug("Dependency removal target %s not found; forest unchanged", task_id)
        return forest
    ensure_dependencies_removable(task, progress_threshold)

    logger.info("Removed %d dependencies from task %s", len(task.dependencies), task_id)
    return forest.with_task(replace(task, dependencies=frozenset()))


def add_dependency(
    forest: Forest,
    task_id: str,
    prerequisite_id: str,
    progress_threshold: int | None = None,
) -> Forest:
    """
    Make `task_id` depend on `prerequisite_id`.

    The edge is checked for cycles before anything is written; a loop raises
    CycleRejected. Re-adding an existing edge changes nothing.
    """

    task = forest.get(task_id)
    if task is None:
        logger.debug("Link target %s not found; forest unchanged", task_id)
        return forest
    if progress_threshold is not None:
        ensure_editable(task, progress_threshold, "link")
    if prerequisite_id not in forest:
        raise ValidationFailure({"dependencies": f"Unknown task '{prerequisite_id}'"})
    if prerequisite_id in task.dependencies:
        return forest

    cycle = proposed_cycle(forest, prerequisite_id, task_id)
    if cycle is not None:
        logger.warning("Rejected dependency %s -> %s: %s", task_id, prerequisite_id, cycle)
        raise CycleRejected(prerequisite_id, task_id, cycle)

    logger.info("Task %s now depends on %s", task_id, prerequisite_id)
    return forest.with_task(replace(task, dependencies=task.dependencies | {prerequisite_id}))


def delete_task(forest: Forest, task_id: str, progress_threshold: int) -> Forest:
    """
    Remove an editable leaf task (with any rows nested under it).

    Group rows are refused by the delete policy. Surviving tasks lose any dependency on the removed ids so no dangling
    references remain.
    """

    task = forest.get(task_id)
    if task is None:
        logger.debug("Delete target %s not found; forest unchanged", task_id)
        return forest
    ensure_deletable(task, progress_threshold)

    removed = {task_id, *forest.descendants_of(task_id)}
    pruned = forest.without(task_id)
    orphaned = [
        replace(other, dependencies=other.dependencies - removed)
        for other in pruned.walk()
        if other.dependencies & removed
    ]
    if orphaned:
        pruned = pruned.with_tasks(orphaned)

    logger.info("Deleted task %s (%d rows)", task_id, len(removed))
    return pruned


def _next_task_id(forest: Forest) -> str:
    counter = len(forest) + 1
    while f"{NEW_TASK_PREFIX}{counter}" in forest:
        counter += 1
    return f"{NEW_TASK_PREFIX}{counter}"


def _reject_edit(task_id: str, errors: dict[str, str]) -> None:
    logger.warning("Rejected edit of task %s: %s", task_id, errors)
    raise ValidationFailure(errors)
