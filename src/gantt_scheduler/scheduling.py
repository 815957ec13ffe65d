from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Mapping

from .errors import ForestValidationError
from .task_models import Forest

DependencyGraph = Mapping[str, Iterable[str]]
"""Task id -> ids of its prerequisites (edges point from dependent to prerequisite)."""

ProposedEdge = tuple[str, str]
"""(dependent, prerequisite) pair considered in addition to the graph's own edges."""


@dataclass(frozen=True)
class Cycle:
    """Represents a detected cycle path for error reporting."""

    path: list[str]

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return " -> ".join(self.path)


def validate_forest(forest: Forest) -> Forest:
    """
    Validate a forest and return it unchanged.

    - Rejects inverted or empty date ranges and progress outside 0..100.
    - Rejects self dependencies and references to unknown task ids.
    - Rejects dependency cycles, reporting the loop path.
    """

    _validate_task_fields(forest)
    _validate_dependencies_exist(forest)
    _assert_no_cycles(forest)
    return forest


def would_create_cycle(graph: DependencyGraph, from_id: str, to_id: str) -> bool:
    """
    Decide whether making `to_id` depend on `from_id` would close a loop.

    The proposed edge is threaded through the traversal; `graph` is only read.
    """

    return find_cycle([to_id], graph, proposed=(to_id, from_id)) is not None


def detect_dependency_cycle(forest: Forest, from_id: str, to_id: str) -> bool:
    """
    Forest-level cycle check used before a dependency edge is accepted.

    Every task counts, visible or collapsed. An unknown `to_id` cannot gain an
    edge, so the answer is False.
    """

    if to_id not in forest:
        return False
    return would_create_cycle(dependency_graph(forest), from_id, to_id)


def proposed_cycle(forest: Forest, from_id: str, to_id: str) -> Cycle | None:
    """Loop path that the proposed edge would close, or None."""
    if to_id not in forest:
        return None
    return find_cycle([to_id], dependency_graph(forest), proposed=(to_id, from_id))


def dependency_graph(forest: Forest) -> dict[str, frozenset[str]]:
    return {task_id: task.dependencies for task_id, task in forest.tasks.items()}


def find_cycle(
    order: Iterable[str],
    dependencies: DependencyGraph,
    proposed: ProposedEdge | None = None,
) -> Cycle | None:
    """
    Three-colour depth-first search for a back edge.

    Nodes are unvisited (absent from `state`), "visiting" while on the current
    path, or "done". Seeds are explored in `order`; the first back edge found
    is returned as the loop path. Runs in O(V + E).
    """

    edges_of = _edge_reader(dependencies, proposed)
    state: dict[str, str] = {}

    for seed in order:
        if state.get(seed) is None:
            found = _dfs(seed, edges_of, state)
            if found:
                return found
    return None


def _edge_reader(
    dependencies: DependencyGraph, proposed: ProposedEdge | None
) -> Callable[[str], list[str]]:
    def edges_of(node: str) -> list[str]:
        targets = sorted(dependencies.get(node, ()))
        if proposed is not None and proposed[0] == node:
            targets.append(proposed[1])
        return targets

    return edges_of


def _dfs(root: str, edges_of: Callable[[str], list[str]], state: dict[str, str]) -> Cycle | None:
    # Explicit stack so long dependency chains do not hit the recursion limit.
    stack: list[str] = [root]
    positions: dict[str, int] = {root: 0}
    pending: list[Iterator[str]] = [iter(edges_of(root))]
    state[root] = "visiting"

    while pending:
        dep_id = next(pending[-1], None)
        if dep_id is None:
            node_id = stack.pop()
            pending.pop()
            positions.pop(node_id, None)
            state[node_id] = "done"
            continue

        dep_state = state.get(dep_id)
        if dep_state == "visiting":
            return Cycle(stack[positions[dep_id] :] + [dep_id])
        if dep_state is None:
            state[dep_id] = "visiting"
            positions[dep_id] = len(stack)
            stack.append(dep_id)
            pending.append(iter(edges_of(dep_id)))
    return None


def _validate_task_fields(forest: Forest) -> None:
    for task in forest.walk():
        if task.start_date >= task.end_date:
            raise ForestValidationError(
                f"Task '{task.task_id}' start {task.start_date} is not before end {task.end_date}"
            )
        if not 0 <= task.progress <= 100:
            raise ForestValidationError(f"Task '{task.task_id}' has progress {task.progress} outside 0..100")


def _validate_dependencies_exist(forest: Forest) -> None:
    for task in forest.walk():
        for dep_id in sorted(task.dependencies):
            if dep_id == task.task_id:
                raise ForestValidationError(f"Task '{task.task_id}' depends on itself")
            if dep_id not in forest:
                raise ForestValidationError(f"Task '{task.task_id}' depends on unknown task '{dep_id}'")


def _assert_no_cycles(forest: Forest) -> None:
    order = [task.task_id for task in forest.walk()]
    cycle = find_cycle(order, dependency_graph(forest))
    if cycle:
        raise ForestValidationError(f"Dependency cycle detected: {cycle}")
