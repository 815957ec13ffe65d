from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, fields
from typing import Any, get_args

import yaml

from .config import DAYS_PER_UNIT, GanttConfig
from .errors import ConfigError, ForestValidationError
from .scheduling import validate_forest
from .task_models import Forest, Task, TaskKind, TaskStatus


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like tasks[0].children[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


_TASK_KEYS = {
    "id",
    "name",
    "start_date",
    "end_date",
    "progress",
    "children",
    "depends_on",
    "expanded",
    "baseline",
    "milestone",
    "activity_number",
    "resources",
    "status",
}


def load_forest(path: str) -> Forest:
    """Load and validate a task forest from a YAML file at the given path."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_forest(raw)


def parse_forest(data: Any) -> Forest:
    """Build a validated Forest from an already-decoded YAML document."""

    path = _Path()
    if not isinstance(data, dict):
        raise ForestValidationError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"tasks"}, path, ForestValidationError)

    tasks_raw = data.get("tasks")
    if tasks_raw is None:
        raise ForestValidationError(f"{path}: missing required field 'tasks'")
    if not isinstance(tasks_raw, list):
        raise ForestValidationError(f"{path}.tasks: expected list")

    ids: set[str] = set()
    tasks: list[Task] = []
    for idx, task_raw in enumerate(tasks_raw):
        tasks.extend(_parse_task(task_raw, path.child(f"tasks[{idx}]"), ids, parent_id=None))

    return validate_forest(Forest.build(tasks))


def _parse_task(data: Any, path: _Path, ids: set[str], parent_id: str | None) -> list[Task]:
    """Parse one task mapping; returns the task followed by its subtree in pre-order."""

    if not isinstance(data, dict):
        raise ForestValidationError(f"{path}: expected mapping for task")
    _assert_allowed_keys(data, _TASK_KEYS, path, ForestValidationError)

    task_id = _require_str(data, "id", path)
    if task_id in ids:
        raise ForestValidationError(f"{path.child('id')}: duplicate task id '{task_id}'")
    ids.add(task_id)
    name = _require_str(data, "name", path)

    subtree: list[Task] = []
    if "children" in data:
        if "depends_on" in data:
            raise ForestValidationError(f"{path}: group tasks must not define depends_on")
        children_raw = data["children"]
        if not isinstance(children_raw, list) or not children_raw:
            raise ForestValidationError(f"{path}.children: expected non-empty list")
        for idx, child_raw in enumerate(children_raw):
            subtree.extend(_parse_task(child_raw, path.child(f"children[{idx}]"), ids, parent_id=task_id))
        kind = TaskKind.GROUP
    else:
        kind = TaskKind.LEAF

    start_date, end_date = _parse_dates(data, path, kind, subtree, group_id=task_id)
    baseline_start, baseline_end = _parse_baseline(data.get("baseline"), path.child("baseline"))

    task = Task(
        task_id=task_id,
        name=name,
        start_date=start_date,
        end_date=end_date,
        progress=_parse_progress(data.get("progress", 0), path.child("progress")),
        kind=kind,
        parent_id=parent_id,
        expanded=_parse_bool(data.get("expanded", True), path.child("expanded")),
        dependencies=frozenset(_parse_str_list(data.get("depends_on"), path.child("depends_on"))),
        baseline_start=baseline_start,
        baseline_end=baseline_end,
        milestone=_parse_bool(data.get("milestone", False), path.child("milestone")),
        activity_number=_optional_str(data, "activity_number", path),
        resources=tuple(_parse_str_list(data.get("resources"), path.child("resources"))),
        status=_parse_status(data.get("status"), path.child("status")),
    )
    return [task, *subtree]


def _parse_dates(
    data: dict[str, Any], path: _Path, kind: TaskKind, subtree: list[Task], group_id: str
) -> tuple[_dt.date, _dt.date]:
    if kind is TaskKind.LEAF:
        start = _parse_date(_require_value(data, "start_date", path), path.child("start_date"))
        end = _parse_date(_require_value(data, "end_date", path), path.child("end_date"))
        return start, end

    # Groups may omit their dates; the span of their direct children is used.
    direct = [task for task in subtree if task.parent_id == group_id]
    start = (
        _parse_date(data["start_date"], path.child("start_date"))
        if "start_date" in data
        else min(task.start_date for task in direct)
    )
    end = (
        _parse_date(data["end_date"], path.child("end_date"))
        if "end_date" in data
        else max(task.end_date for task in direct)
    )
    return start, end


def _parse_baseline(value: Any, path: _Path) -> tuple[_dt.date | None, _dt.date | None]:
    if value is None:
        return None, None
    if not isinstance(value, dict):
        raise ForestValidationError(f"{path}: expected mapping with start_date and end_date")
    _assert_allowed_keys(value, {"start_date", "end_date"}, path, ForestValidationError)
    start = _parse_date(_require_value(value, "start_date", path), path.child("start_date"))
    end = _parse_date(_require_value(value, "end_date", path), path.child("end_date"))
    if start > end:
        raise ForestValidationError(f"{path}: baseline start {start} is after end {end}")
    return start, end


def _parse_progress(value: Any, path: _Path) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ForestValidationError(f"{path}: expected integer percent")
    if not 0 <= value <= 100:
        raise ForestValidationError(f"{path}: expected value between 0 and 100")
    return value


def _parse_status(value: Any, path: _Path) -> TaskStatus | None:
    if value is None:
        return None
    allowed = get_args(TaskStatus)
    if value not in allowed:
        raise ForestValidationError(f"{path}: expected one of {list(allowed)}")
    return value


def _parse_str_list(value: Any, path: _Path) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ForestValidationError(f"{path}: expected list of strings")
    items: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str):
            raise ForestValidationError(f"{path}[{idx}]: expected string")
        items.append(item)
    return items


def _parse_bool(value: Any, path: _Path) -> bool:
    if not isinstance(value, bool):
        raise ForestValidationError(f"{path}: expected true or false")
    return value


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # safe_load already turns unquoted ISO dates into date/datetime objects.
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise ForestValidationError(f"{path}: expected YYYY-MM-DD date")
    try:
        parsed = _dt.date.fromisoformat(value)
    except ValueError as exc:
        raise ForestValidationError(f"{path}: expected YYYY-MM-DD date") from exc
    return parsed


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path, error: type[Exception]) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise error(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise ForestValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ForestValidationError(f"{path.child(key)}: expected string")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise ForestValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def load_config(path: str) -> GanttConfig:
    """Load chart configuration from a YAML file; missing keys keep their defaults."""

    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML ({exc})") from exc

    return parse_config(raw)


def parse_config(data: Any) -> GanttConfig:
    """Build a GanttConfig from a decoded mapping (or None for all defaults)."""

    path = _Path(("config",))
    if data is None:
        return GanttConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected mapping")
    known = {f.name for f in fields(GanttConfig)}
    _assert_allowed_keys(data, known, path, ConfigError)

    values: dict[str, Any] = {}
    for key, value in data.items():
        key_path = path.child(key)
        if key in {"show_baseline", "enable_virtual_scrolling"}:
            if not isinstance(value, bool):
                raise ConfigError(f"{key_path}: expected true or false")
        elif key == "timeline_unit":
            if value not in DAYS_PER_UNIT:
                raise ConfigError(f"{key_path}: expected one of {sorted(DAYS_PER_UNIT)}")
        elif key == "timeline_unit_size":
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ConfigError(f"{key_path}: expected positive number")
        elif key == "progress_threshold":
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 100:
                raise ConfigError(f"{key_path}: expected integer between 0 and 100")
        elif not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ConfigError(f"{key_path}: expected positive integer")
        values[key] = value

    return GanttConfig(**values)
