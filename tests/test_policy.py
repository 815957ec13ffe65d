import datetime as dt

import pytest

from gantt_scheduler.errors import PolicyViolation
from gantt_scheduler.policy import (
    ensure_deletable,
    ensure_dependencies_removable,
    ensure_editable,
    is_task_editable,
)
from gantt_scheduler.task_models import Task, TaskKind


def _task(progress=0, kind=TaskKind.LEAF, depends_on=()):
    return Task(
        task_id="T1",
        name="Task",
        start_date=dt.date(2024, 3, 1),
        end_date=dt.date(2024, 3, 8),
        progress=progress,
        kind=kind,
        dependencies=frozenset(depends_on),
    )


@pytest.mark.parametrize(
    "progress, kind, expected",
    [
        (0, TaskKind.LEAF, True),
        (49, TaskKind.LEAF, True),
        (50, TaskKind.LEAF, False),
        (90, TaskKind.LEAF, False),
        (0, TaskKind.GROUP, False),
    ],
)
def test_editability_gate(progress, kind, expected):
    assert is_task_editable(_task(progress, kind), 50) is expected


def test_level_view_matches_kind():
    assert _task(kind=TaskKind.GROUP).level == 0
    assert _task().level == 1


def test_locked_task_raises_policy_violation():
    with pytest.raises(PolicyViolation) as exc_info:
        ensure_editable(_task(progress=75), 50, "drag")

    assert exc_info.value.task_id == "T1"
    assert exc_info.value.action == "drag"
    assert "75%" in str(exc_info.value)


def test_group_rows_cannot_be_edited():
    with pytest.raises(PolicyViolation, match="group"):
        ensure_editable(_task(kind=TaskKind.GROUP), 50)


def test_deletion_refuses_groups_and_locked_tasks():
    ensure_deletable(_task(progress=10), 50)

    with pytest.raises(PolicyViolation) as exc_info:
        ensure_deletable(_task(progress=10, kind=TaskKind.GROUP), 50)
    assert exc_info.value.action == "delete"

    with pytest.raises(PolicyViolation):
        ensure_deletable(_task(progress=60), 50)


def test_dependency_removal_needs_dependencies():
    with pytest.raises(PolicyViolation, match="no dependencies"):
        ensure_dependencies_removable(_task(), 50)

    ensure_dependencies_removable(_task(depends_on=["X"]), 50)


def test_dependency_removal_respects_lock():
    with pytest.raises(PolicyViolation):
        ensure_dependencies_removable(_task(progress=50, depends_on=["X"]), 50)
