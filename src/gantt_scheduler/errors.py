from __future__ import annotations


class GanttError(Exception):
    """Base class for every rejection raised by the scheduling core."""


class ForestValidationError(GanttError):
    """Raised when the task forest is invalid (duplicates, bad refs, cycles, bad dates)."""


class ConfigError(GanttError):
    """Raised when chart configuration cannot be loaded or holds invalid values."""


class PolicyViolation(GanttError):
    """Raised when a locked task or a group row is the target of an edit gesture."""

    def __init__(self, task_id: str, action: str, reason: str) -> None:
        super().__init__(f"Cannot {action} task '{task_id}': {reason}")
        self.task_id = task_id
        self.action = action
        self.reason = reason


class ValidationFailure(GanttError):
    """Raised when an edit is rejected; `errors` maps field name to message."""

    def __init__(self, errors: dict[str, str]) -> None:
        summary = "; ".join(f"{field}: {message}" for field, message in sorted(errors.items()))
        super().__init__(f"Invalid task: {summary}")
        self.errors = dict(errors)


class CycleRejected(GanttError):
    """Raised when a proposed dependency edge would close a loop."""

    def __init__(self, from_id: str, to_id: str, cycle: object | None = None) -> None:
        detail = f" ({cycle})" if cycle else ""
        super().__init__(f"Dependency '{to_id}' -> '{from_id}' would create a cycle{detail}")
        self.from_id = from_id
        self.to_id = to_id
        self.cycle = cycle
