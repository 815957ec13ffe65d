from __future__ import annotations

import datetime as dt
import random

from .task_models import Forest, Task, TaskKind

WEEK = dt.timedelta(days=7)


def generate_test_data(
    parent_count: int = 275,
    children_per_parent: int = 5,
    *,
    seed: int | None = None,
    start: dt.date = dt.date(2024, 1, 1),
) -> Forest:
    """
    Build a demo forest of weekly-staggered groups with chained children.

    Group i starts i weeks after `start` and spans one week per child. Each
    child lasts a week, depends on its previous sibling, and carries a
    baseline two days earlier / one day later than its live dates. Progress
    and milestone flags are random; pass `seed` for a repeatable forest.
    """

    rng = random.Random(seed)
    tasks: list[Task] = []

    for i in range(1, parent_count + 1):
        parent_start = start + WEEK * i
        parent_id = f"P{i}"
        tasks.append(
            Task(
                task_id=parent_id,
                name=f"Parent Task {i}",
                start_date=parent_start,
                end_date=parent_start + WEEK * children_per_parent,
                progress=rng.randrange(100),
                kind=TaskKind.GROUP,
                expanded=True,
                activity_number=f"ACT-{parent_id}",
            )
        )

        for j in range(1, children_per_parent + 1):
            child_start = parent_start + WEEK * (j - 1)
            child_end = child_start + WEEK
            child_id = f"P{i}C{j}"
            tasks.append(
                Task(
                    task_id=child_id,
                    name=f"Child Task {i}.{j}",
                    start_date=child_start,
                    end_date=child_end,
                    progress=rng.randrange(100),
                    kind=TaskKind.LEAF,
                    parent_id=parent_id,
                    dependencies=frozenset({f"P{i}C{j - 1}"}) if j > 1 else frozenset(),
                    baseline_start=child_start - dt.timedelta(days=2),
                    baseline_end=child_end + dt.timedelta(days=1),
                    milestone=rng.random() > 0.8,
                    activity_number=f"ACT-{child_id}",
                )
            )

    return Forest.build(tasks)
