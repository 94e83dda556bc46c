import json
import logging
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from uprof.model.callgraph import CallEdge, CallGraph, MethodInfo, ThreadInfo
from uprof.model.validate import TOLERANCE, ModelValidationError

logger = logging.getLogger(__name__)

_EDGE = {
    "type": "object",
    "properties": {
        "target": {"type": "string"},
        "total_time": {"type": "number"},
        "self_time": {"type": "number"},
        "children_time": {"type": "number"},
        "called": {"type": "integer"},
    },
    "required": ["target", "total_time", "self_time", "called"],
    "additionalProperties": False,
}

SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "threads": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": ["integer", "string"]},
                    "sequence": {"type": "integer"},
                    "methods": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "total_time": {"type": "number"},
                                "self_time": {"type": "number"},
                                "children_time": {"type": "number"},
                                "called": {"type": "integer"},
                                "parents": {"type": "array", "items": _EDGE},
                                "children": {"type": "array", "items": _EDGE},
                            },
                            "required": ["name", "total_time", "self_time", "called"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["id", "methods"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["threads"],
}


class SnapshotError(ValueError):
    """The snapshot document could not be read or does not match the schema."""

    def __init__(self, message: str, errors: List[str] = None):
        self.errors = list(errors or [])
        super().__init__(message)


def validate_snapshot_dict(data: Any) -> List[str]:
    validator = Draft202012Validator(SCHEMA)
    errors = []
    for err in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
        where = "/".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{where}: {err.message}")
    return errors


def _derived_mismatch(where: str, entry: Dict[str, Any]) -> List[str]:
    if "children_time" not in entry:
        return []
    expected = entry["total_time"] - entry["self_time"]
    if abs(entry["children_time"] - expected) > TOLERANCE:
        return [
            f"{where}: children_time {entry['children_time']} != "
            f"total_time - self_time ({expected})"
        ]
    return []


def _edge(entry: Dict[str, Any]) -> CallEdge:
    return CallEdge(
        target=entry["target"],
        total_time=entry["total_time"],
        self_time=entry["self_time"],
        called=entry["called"],
    )


def snapshot_from_dict(data: Dict[str, Any]) -> CallGraph:
    """Build a CallGraph from a decoded snapshot document."""
    errors = validate_snapshot_dict(data)
    if errors:
        raise SnapshotError("snapshot does not match schema", errors)

    problems: List[str] = []
    threads = []
    for position, t in enumerate(data["threads"]):
        methods: Dict[str, MethodInfo] = {}
        for m in t["methods"]:
            where = f"thread {t['id']}: method {m['name']}"
            if m["name"] in methods:
                problems.append(f"thread {t['id']}: duplicate method '{m['name']}'")
                continue
            problems += _derived_mismatch(where, m)
            for e in m.get("parents", []) + m.get("children", []):
                problems += _derived_mismatch(f"{where}: edge {e['target']}", e)
            methods[m["name"]] = MethodInfo(
                name=m["name"],
                total_time=m["total_time"],
                self_time=m["self_time"],
                called=m["called"],
                parents=[_edge(e) for e in m.get("parents", [])],
                children=[_edge(e) for e in m.get("children", [])],
            )
        threads.append(
            ThreadInfo(id=t["id"], methods=methods, sequence=t.get("sequence", position))
        )
    if problems:
        raise ModelValidationError(problems)

    graph = CallGraph(threads=threads)
    logger.debug("loaded snapshot: %d thread(s), %d method(s)", len(graph), graph.method_count())
    return graph


def load_snapshot(path: str) -> CallGraph:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise SnapshotError(f"cannot read snapshot {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"snapshot {path} is not valid JSON: {e}") from e
    return snapshot_from_dict(data)
