import datetime as dt
import textwrap

import pytest

from gantt_scheduler.errors import ConfigError, ForestValidationError
from gantt_scheduler.flatten import flatten_tasks
from gantt_scheduler.parse_forest import load_config, load_forest, parse_config, parse_forest
from gantt_scheduler.task_models import TaskKind

PROJECT_YAML = """
tasks:
  - id: G1
    name: Design
    children:
      - id: A
        name: Sketch
        start_date: 2024-03-01
        end_date: 2024-03-08
        progress: 20
        resources: [ana]
      - id: B
        name: Review
        start_date: 2024-03-08
        end_date: 2024-03-12
        depends_on: [A]
        baseline:
          start_date: 2024-03-07
          end_date: 2024-03-12
  - id: C
    name: Ship
    start_date: "2024-03-15"
    end_date: "2024-03-16"
    milestone: true
    status: not-started
    activity_number: ACT-7
"""


def _write(tmp_path, text, name="project.yaml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return str(path)


def test_load_forest_builds_tree(tmp_path):
    forest = load_forest(_write(tmp_path, PROJECT_YAML))

    assert [task.task_id for task in flatten_tasks(forest)] == ["G1", "A", "B", "C"]

    group = forest.get("G1")
    assert group.kind is TaskKind.GROUP
    assert (group.start_date, group.end_date) == (dt.date(2024, 3, 1), dt.date(2024, 3, 12))

    review = forest.get("B")
    assert review.parent_id == "G1"
    assert review.dependencies == frozenset({"A"})
    assert review.baseline_start == dt.date(2024, 3, 7)
    assert review.duration == 4

    ship = forest.get("C")
    assert ship.start_date == dt.date(2024, 3, 15)
    assert ship.milestone is True
    assert ship.status == "not-started"
    assert ship.activity_number == "ACT-7"
    assert forest.get("A").resources == ("ana",)


@pytest.mark.parametrize(
    "document, message",
    [
        ({"tasks": [{"id": "A", "name": "A", "start_date": "2024-01-01", "end_date": "2024-01-02", "x": 1}]}, "unexpected"),
        (
            {
                "tasks": [
                    {"id": "A", "name": "A", "start_date": "2024-01-01", "end_date": "2024-01-02"},
                    {"id": "A", "name": "B", "start_date": "2024-01-01", "end_date": "2024-01-02"},
                ]
            },
            "duplicate",
        ),
        (
            {
                "tasks": [
                    {"id": "A", "name": "A", "start_date": "2024-01-01", "end_date": "2024-01-02", "depends_on": ["B"]},
                    {"id": "B", "name": "B", "start_date": "2024-01-01", "end_date": "2024-01-02", "depends_on": ["A"]},
                ]
            },
            "cycle",
        ),
        (
            {"tasks": [{"id": "A", "name": "A", "start_date": "2024-01-01", "end_date": "2024-01-02", "depends_on": ["Z"]}]},
            "unknown task",
        ),
        ({"tasks": [{"id": "A", "name": "A", "start_date": "2024-01-01", "end_date": "2024-01-02", "progress": 120}]}, "between"),
        ({"tasks": [{"id": "A", "name": "A", "start_date": "01/02/2024", "end_date": "2024-01-02"}]}, "YYYY-MM-DD"),
        ({"tasks": [{"id": "A", "name": "A", "start_date": "2024-01-01"}]}, "end_date"),
        ({"tasks": [{"id": "G", "name": "G", "children": [], "depends_on": []}]}, "depends_on"),
        ({"tasks": [{"id": "G", "name": "G", "children": []}]}, "non-empty"),
        ({"items": []}, "unexpected"),
    ],
)
def test_invalid_documents_are_rejected(document, message):
    with pytest.raises(ForestValidationError, match=message):
        parse_forest(document)


def test_error_paths_point_at_the_offending_node():
    document = {
        "tasks": [
            {
                "id": "G",
                "name": "G",
                "children": [{"id": "A", "name": "A", "start_date": "2024-01-01", "end_date": "2024-01-02", "status": "late"}],
            }
        ]
    }

    with pytest.raises(ForestValidationError, match=r"tasks\[0\]\.children\[0\]\.status"):
        parse_forest(document)


def test_load_config_overrides_defaults(tmp_path):
    path = _write(
        tmp_path,
        """
        timeline_unit_size: 140
        progress_threshold: 80
        show_baseline: false
        """,
        name="config.yaml",
    )

    config = load_config(path)

    assert config.timeline_unit_size == 140
    assert config.progress_threshold == 80
    assert config.show_baseline is False
    assert config.row_height == 40


def test_empty_config_uses_defaults():
    config = parse_config(None)

    assert config.timeline_unit_size == 70
    assert config.progress_threshold == 50
    assert config.timeline_unit == "week"


@pytest.mark.parametrize(
    "data",
    [
        {"progress_threshold": 150},
        {"timeline_unit_size": 0},
        {"timeline_unit": "month"},
        {"row_height": "tall"},
        {"show_baseline": "yes"},
        {"zoom": 2},
        ["timeline_unit_size"],
    ],
)
def test_invalid_config_is_rejected(data):
    with pytest.raises(ConfigError):
        parse_config(data)


def test_malformed_config_yaml_is_a_config_error(tmp_path):
    path = _write(tmp_path, "timeline_unit_size: [1, 2\n", name="broken.yaml")

    with pytest.raises(ConfigError):
        load_config(path)
