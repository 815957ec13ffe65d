from __future__ import annotations

from typing import Iterable

from .task_models import FlatRow, Forest, Task


def flatten_tasks(forest: Forest) -> list[Task]:
    """
    Convert the forest into the ordered list of visible rows.

    Rows are emitted in pre-order. A task's children follow it only while the
    task is expanded; a collapsed subtree is left out entirely.
    """

    flat: list[Task] = []
    stack = list(reversed(forest.children.get(None, ())))
    while stack:
        task = forest.tasks[stack.pop()]
        flat.append(task)
        if task.expanded:
            stack.extend(reversed(forest.children.get(task.task_id, ())))
    return flat


def row_index(flat: Iterable[Task]) -> dict[str, int]:
    """Map each visible task id to its row number."""
    return {task.task_id: idx for idx, task in enumerate(flat)}


def to_rows(forest: Forest) -> list[FlatRow]:
    """
    Visible rows with indentation for the grid.

    Top-level rows have indent 0; nested rows increase indent by 1.
    """

    rows: list[FlatRow] = []
    for order, task in enumerate(flatten_tasks(forest)):
        rows.append(
            FlatRow(
                order=order,
                indent=_depth(forest, task),
                task_id=task.task_id,
                name=task.name,
                kind=task.kind,
            )
        )
    return rows


def _depth(forest: Forest, task: Task) -> int:
    depth = 0
    parent_id = task.parent_id
    while parent_id is not None:
        depth += 1
        parent_id = forest.tasks[parent_id].parent_id
    return depth
