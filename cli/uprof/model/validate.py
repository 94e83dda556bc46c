import math
from typing import List

from uprof.model.callgraph import CallEdge, CallGraph, MethodInfo, ThreadInfo

TOLERANCE = 1e-9


class ModelValidationError(ValueError):
    """Raised when a call graph breaks one of the model invariants."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f" (+{len(self.problems) - 5} more)"
        super().__init__(f"invalid call graph: {summary}")


def _check_times(where: str, total_time, self_time) -> List[str]:
    errors = []
    for label, value in (("total_time", total_time), ("self_time", self_time)):
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            errors.append(f"{where}: {label} must be a number, got {value!r}")
        elif not math.isfinite(value):
            errors.append(f"{where}: {label} must be finite, got {value}")
        elif value < 0:
            errors.append(f"{where}: {label} is negative ({value})")
    if not errors and self_time > total_time + TOLERANCE:
        errors.append(f"{where}: self_time {self_time} exceeds total_time {total_time}")
    return errors


def _check_count(where: str, called, minimum: int) -> List[str]:
    if not isinstance(called, int) or isinstance(called, bool):
        return [f"{where}: called must be an integer, got {called!r}"]
    if called < minimum:
        return [f"{where}: called must be >= {minimum}, got {called}"]
    return []


def _check_edge(thread: ThreadInfo, method: MethodInfo, edge: CallEdge, kind: str) -> List[str]:
    where = f"thread {thread.id}: {kind} edge {method.name} -> {edge.target}"
    if kind == "parent":
        where = f"thread {thread.id}: parent edge {edge.target} -> {method.name}"
    errors = _check_times(where, edge.total_time, edge.self_time)
    errors += _check_count(where, edge.called, 0)
    if edge.target not in thread.methods:
        errors.append(f"{where}: target '{edge.target}' is not a method of this thread")
    return errors


def validate_model(model: CallGraph) -> List[str]:
    """Return every invariant violation found in ``model`` (empty when valid)."""
    errors: List[str] = []
    seen_ids = set()
    for thread in model.threads:
        if thread.id in seen_ids:
            errors.append(f"duplicate thread id {thread.id!r}")
        seen_ids.add(thread.id)
        for key, method in thread.methods.items():
            where = f"thread {thread.id}: method {key}"
            if key != method.name:
                errors.append(f"{where}: stored under a different name ('{method.name}')")
            errors += _check_times(where, method.total_time, method.self_time)
            errors += _check_count(where, method.called, 1)
            for edge in method.parents:
                errors += _check_edge(thread, method, edge, "parent")
            for edge in method.children:
                errors += _check_edge(thread, method, edge, "child")
    return errors


def check_model(model: CallGraph) -> None:
    problems = validate_model(model)
    if problems:
        raise ModelValidationError(problems)
