from __future__ import annotations

import datetime as dt
import enum
import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Literal, Mapping

from .errors import ForestValidationError


TaskStatus = Literal["not-started", "in-progress", "completed", "delayed"]
"""Optional reporting status carried alongside progress."""

_SECONDS_PER_DAY = 24 * 60 * 60


class TaskKind(enum.Enum):
    """Row kind: a rollup group (level 0) or a schedulable leaf (level 1)."""

    GROUP = "group"
    LEAF = "leaf"


def duration_between(start: dt.date, end: dt.date) -> int:
    """Whole days spanned by [start, end), rounding partial days up."""
    return math.ceil((end - start).total_seconds() / _SECONDS_PER_DAY)


def floor_days(delta: dt.timedelta) -> int:
    """Signed whole days in a timedelta, rounding toward negative infinity."""
    return math.floor(delta.total_seconds() / _SECONDS_PER_DAY)


@dataclass(frozen=True)
class Task:
    """
    One row of the chart.

    Tasks are immutable; edits produce a new instance via `dataclasses.replace`.
    Duration is never stored: it is always derived from the date pair.
    """

    task_id: str
    name: str
    start_date: dt.date
    end_date: dt.date
    progress: int = 0
    kind: TaskKind = TaskKind.LEAF
    parent_id: str | None = None
    expanded: bool = True
    dependencies: frozenset[str] = field(default_factory=frozenset)
    baseline_start: dt.date | None = None
    baseline_end: dt.date | None = None
    milestone: bool = False
    activity_number: str | None = None
    resources: tuple[str, ...] = ()
    status: TaskStatus | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.dependencies, frozenset):
            object.__setattr__(self, "dependencies", frozenset(self.dependencies))
        if not isinstance(self.resources, tuple):
            object.__setattr__(self, "resources", tuple(self.resources))

    @property
    def duration(self) -> int:
        """Whole days between start and end."""
        return duration_between(self.start_date, self.end_date)

    @property
    def level(self) -> int:
        """Legacy depth view of the kind: 0 for groups, 1 for leaves."""
        return 0 if self.kind is TaskKind.GROUP else 1

    @property
    def is_leaf(self) -> bool:
        return self.kind is TaskKind.LEAF

    @property
    def has_baseline(self) -> bool:
        return self.baseline_start is not None and self.baseline_end is not None


@dataclass(frozen=True)
class TimelineUnit:
    """One calendar interval of the timeline header."""

    date: dt.date
    width: float
    is_weekend: bool = False


@dataclass(frozen=True)
class TaskPosition:
    """Horizontal pixel geometry of a bar relative to the timeline origin."""

    left: float
    width: float


@dataclass(frozen=True)
class DependencyLine:
    """Connector from a prerequisite bar's right edge to its dependent's left edge."""

    from_id: str
    to_id: str
    from_x: float
    from_y: float
    to_x: float
    to_y: float
    critical: bool = False


@dataclass(frozen=True)
class FlatRow:
    """
    Flattened view of a forest used by the grid.

    Only the fields relevant to row layout are kept: positional order,
    indentation, identity, and row kind.
    """

    order: int
    indent: int
    task_id: str
    name: str
    kind: TaskKind


@dataclass(frozen=True)
class Forest:
    """
    Arena of tasks keyed by id plus an ordered parent -> children index.

    The `None` key of `children` lists the top-level rows. Every operation
    returns a new Forest; task objects are shared between versions.
    """

    tasks: Mapping[str, Task] = field(default_factory=dict)
    children: Mapping[str | None, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, tasks: Iterable[Task]) -> "Forest":
        """
        Build a forest from tasks listed parents-first.

        Sibling order follows iteration order. Raises ForestValidationError
        on duplicate ids or a parent that has not been seen yet.
        """

        by_id: dict[str, Task] = {}
        children: dict[str | None, tuple[str, ...]] = {}
        for task in tasks:
            _check_attachable(by_id, task)
            by_id[task.task_id] = task
            children[task.parent_id] = children.get(task.parent_id, ()) + (task.task_id,)
        return cls(tasks=by_id, children=children)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.tasks

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        return self.walk()

    def get(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def roots(self) -> list[Task]:
        return [self.tasks[tid] for tid in self.children.get(None, ())]

    def children_of(self, task_id: str) -> list[Task]:
        return [self.tasks[tid] for tid in self.children.get(task_id, ())]

    def has_children(self, task_id: str) -> bool:
        return bool(self.children.get(task_id))

    def walk(self) -> Iterator[Task]:
        """Pre-order traversal of every task, ignoring expansion state."""
        stack = list(reversed(self.children.get(None, ())))
        while stack:
            task_id = stack.pop()
            yield self.tasks[task_id]
            stack.extend(reversed(self.children.get(task_id, ())))

    def descendants_of(self, task_id: str) -> list[str]:
        """Ids of every descendant of `task_id` in pre-order (excluding itself)."""
        found: list[str] = []
        stack = list(reversed(self.children.get(task_id, ())))
        while stack:
            current = stack.pop()
            found.append(current)
            stack.extend(reversed(self.children.get(current, ())))
        return found

    def with_task(self, task: Task) -> "Forest":
        """Replace an existing task in place; its position in the tree is kept."""
        existing = self.tasks.get(task.task_id)
        if existing is None:
            raise KeyError(task.task_id)
        if existing.parent_id != task.parent_id:
            raise ForestValidationError(f"Task '{task.task_id}' cannot be re-parented by replacement")
        tasks = dict(self.tasks)
        tasks[task.task_id] = task
        return Forest(tasks=tasks, children=self.children)

    def with_tasks(self, replacements: Iterable[Task]) -> "Forest":
        """Replace several existing tasks in a single new version."""
        tasks = dict(self.tasks)
        for task in replacements:
            existing = tasks.get(task.task_id)
            if existing is None:
                raise KeyError(task.task_id)
            if existing.parent_id != task.parent_id:
                raise ForestValidationError(f"Task '{task.task_id}' cannot be re-parented by replacement")
            tasks[task.task_id] = task
        return Forest(tasks=tasks, children=self.children)

    def with_child(self, task: Task) -> "Forest":
        """Append a new task as the last child of `task.parent_id` (or as a root)."""
        return self._attach(task)

    def without(self, task_id: str) -> "Forest":
        """Remove a task together with its whole subtree."""
        if task_id not in self.tasks:
            raise KeyError(task_id)
        doomed = {task_id, *self.descendants_of(task_id)}
        parent_id = self.tasks[task_id].parent_id

        tasks = {tid: task for tid, task in self.tasks.items() if tid not in doomed}
        children = {key: ids for key, ids in self.children.items() if key not in doomed}
        children[parent_id] = tuple(tid for tid in self.children.get(parent_id, ()) if tid != task_id)
        return Forest(tasks=tasks, children=children)

    def _attach(self, task: Task) -> "Forest":
        _check_attachable(self.tasks, task)
        tasks = dict(self.tasks)
        tasks[task.task_id] = task
        children = dict(self.children)
        children[task.parent_id] = children.get(task.parent_id, ()) + (task.task_id,)
        return Forest(tasks=tasks, children=children)


def _check_attachable(tasks: Mapping[str, Task], task: Task) -> None:
    if task.task_id in tasks:
        raise ForestValidationError(f"Duplicate task id '{task.task_id}'")
    if task.parent_id is not None and task.parent_id not in tasks:
        raise ForestValidationError(f"Task '{task.task_id}' references unknown parent '{task.parent_id}'")
