import datetime as dt

import pytest

from gantt_scheduler.errors import ForestValidationError
from gantt_scheduler.scheduling import (
    detect_dependency_cycle,
    find_cycle,
    proposed_cycle,
    validate_forest,
    would_create_cycle,
)
from gantt_scheduler.task_models import Forest, Task


def _leaf(task_id, depends_on=(), start=dt.date(2024, 1, 1), days=2):
    return Task(
        task_id=task_id,
        name=task_id,
        start_date=start,
        end_date=start + dt.timedelta(days=days),
        dependencies=frozenset(depends_on),
    )


def _chain_forest():
    # A depends on B, B depends on C.
    return Forest.build([_leaf("A", ["B"]), _leaf("B", ["C"]), _leaf("C")])


def test_closing_edge_is_reported_as_cycle():
    forest = _chain_forest()

    assert detect_dependency_cycle(forest, "A", "C") is True


def test_forward_edge_is_not_a_cycle():
    forest = _chain_forest()

    assert detect_dependency_cycle(forest, "C", "A") is False


def test_cycle_check_leaves_dependencies_untouched():
    forest = _chain_forest()
    before = {task_id: task.dependencies for task_id, task in forest.tasks.items()}
    tasks_before = dict(forest.tasks)

    detect_dependency_cycle(forest, "A", "C")
    detect_dependency_cycle(forest, "C", "A")

    assert {task_id: task.dependencies for task_id, task in forest.tasks.items()} == before
    for task_id, task in forest.tasks.items():
        assert task is tasks_before[task_id]


def test_self_dependency_is_a_cycle():
    forest = _chain_forest()

    assert detect_dependency_cycle(forest, "A", "A") is True


def test_unknown_target_cannot_form_cycle():
    forest = _chain_forest()

    assert detect_dependency_cycle(forest, "A", "missing") is False


def test_would_create_cycle_does_not_modify_graph():
    graph = {"A": ["B"], "B": []}
    snapshot = {key: list(value) for key, value in graph.items()}

    assert would_create_cycle(graph, "A", "B") is True
    assert would_create_cycle(graph, "B", "A") is False
    assert graph == snapshot


def test_collapsed_rows_still_take_part_in_cycle_check():
    group = Task(
        task_id="G",
        name="G",
        start_date=dt.date(2024, 1, 1),
        end_date=dt.date(2024, 1, 5),
        expanded=False,
    )
    hidden = Task(
        task_id="H",
        name="H",
        start_date=dt.date(2024, 1, 1),
        end_date=dt.date(2024, 1, 3),
        parent_id="G",
        dependencies=frozenset({"V"}),
    )
    forest = Forest.build([group, hidden, _leaf("V")])

    assert detect_dependency_cycle(forest, "H", "V") is True


def test_find_cycle_reports_loop_path():
    cycle = find_cycle(["A", "B"], {"A": ["B"], "B": ["A"]})

    assert cycle is not None
    assert cycle.path == ["A", "B", "A"]


def test_proposed_cycle_includes_new_edge():
    cycle = proposed_cycle(_chain_forest(), "A", "C")

    assert cycle is not None
    assert cycle.path == ["C", "A", "B", "C"]


def test_long_chain_does_not_hit_recursion_limit():
    size = 5000
    graph = {f"T{i}": [f"T{i + 1}"] for i in range(size - 1)}

    assert would_create_cycle(graph, "T0", f"T{size - 1}") is True
    assert would_create_cycle(graph, f"T{size - 1}", "T0") is False


def test_validate_forest_accepts_acyclic_forest():
    forest = _chain_forest()

    assert validate_forest(forest) is forest


def test_invalid_dependency_reference_raises_validation_error():
    forest = Forest.build([_leaf("A", ["missing"])])

    with pytest.raises(ForestValidationError):
        validate_forest(forest)


def test_dependency_cycle_is_detected():
    forest = Forest.build([_leaf("A", ["B"]), _leaf("B", ["A"])])

    with pytest.raises(ForestValidationError, match="cycle"):
        validate_forest(forest)


def test_inverted_dates_are_rejected():
    task = Task(task_id="A", name="A", start_date=dt.date(2024, 1, 5), end_date=dt.date(2024, 1, 5))

    with pytest.raises(ForestValidationError):
        validate_forest(Forest.build([task]))
