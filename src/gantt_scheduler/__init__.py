from __future__ import annotations

from importlib import metadata

from .config import GanttConfig
from .critical_path import estimate_critical_path
from .drag import DragEngine, DragMode
from .errors import (
    ConfigError,
    CycleRejected,
    ForestValidationError,
    GanttError,
    PolicyViolation,
    ValidationFailure,
)
from .flatten import flatten_tasks
from .mutations import (
    add_dependency,
    add_task,
    apply_drag,
    delete_task,
    remove_dependencies,
    toggle_expand,
    update_task_fields,
)
from .policy import is_task_editable
from .positions import calculate_task_position
from .scheduling import detect_dependency_cycle
from .session import GanttSession
from .task_models import Forest, Task, TaskKind, TimelineUnit
from .timeline import generate_timeline


def _tool_version() -> str:
    try:
        return metadata.version("gantt-scheduler")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__version__ = _tool_version()

__all__ = [
    "ConfigError",
    "CycleRejected",
    "DragEngine",
    "DragMode",
    "Forest",
    "ForestValidationError",
    "GanttConfig",
    "GanttError",
    "GanttSession",
    "PolicyViolation",
    "Task",
    "TaskKind",
    "TimelineUnit",
    "ValidationFailure",
    "add_dependency",
    "add_task",
    "apply_drag",
    "calculate_task_position",
    "delete_task",
    "detect_dependency_cycle",
    "estimate_critical_path",
    "flatten_tasks",
    "generate_timeline",
    "is_task_editable",
    "remove_dependencies",
    "toggle_expand",
    "update_task_fields",
]
