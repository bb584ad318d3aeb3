"""Validation for task payloads, stored tasks and dependency graphs.

All checks are exhaustive: they return every issue found instead of stopping
at the first one, so a caller can show the full list at once.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import EFFORTS, PRIORITIES, Task, ValidationIssue
from .ndjson import iter_ndjson_lines

TASK_ID_FORMAT = re.compile(r"^(fe|be)-\d{4,}$")

REQUIRED_CREATE_FIELDS = ("name", "level", "component")
PAYLOAD_FIELDS = frozenset({
    "name",
    "level",
    "component",
    "effort",
    "ready",
    "done",
    "dependencies",
    "files",
    "tests_success",
    "acceptance_criteria",
    "implementation_notes",
})
PAYLOAD_ALIASES = {
    "priority": "level",
    "estimated_effort": "effort",
    "blocked_by": "dependencies",
}


def _field_issue(field_name: str, message: str, task_id: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        type="field",
        severity="error",
        message=f"{field_name}: {message}",
        task_id=task_id,
        field=field_name,
    )


def normalize_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Map alias keys onto their canonical field names."""
    normalized: Dict[str, Any] = {}
    for key, value in payload.items():
        canonical = PAYLOAD_ALIASES.get(key, key)
        if canonical in normalized and key != canonical:
            # the canonical spelling wins over an alias
            continue
        normalized[canonical] = value
    return normalized


def check_field(field_name: str, value: Any) -> Optional[str]:
    """Return a problem description for one field value, or None if valid."""
    if field_name in ("name", "component"):
        if not isinstance(value, str) or not value.strip():
            return "must be a non-empty string"
    elif field_name == "level":
        if value not in PRIORITIES:
            return f"must be one of {', '.join(PRIORITIES)} (got {value!r})"
    elif field_name == "effort":
        if value not in EFFORTS:
            return f"must be one of {', '.join(EFFORTS)} (got {value!r})"
    elif field_name in ("ready", "done"):
        if not isinstance(value, bool):
            return "must be a boolean"
    elif field_name in ("files", "implementation_notes"):
        if not isinstance(value, str):
            return "must be a string"
    elif field_name in ("tests_success", "acceptance_criteria"):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            return "must be a list of strings"
    elif field_name == "dependencies":
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            return "must be a list of task IDs"
        invalid = [item for item in value if not TASK_ID_FORMAT.match(item)]
        if invalid:
            return f"invalid task IDs: {', '.join(invalid)}"
    return None


def validate_task_create(payload: Any) -> List[ValidationIssue]:
    """Validate a task creation payload.

    Required: ``name``, ``level``, ``component``. The ID is assigned by the
    store, so supplying one is an error. One issue per bad field.
    """
    if not isinstance(payload, Mapping):
        return [_field_issue("payload", "must be an object")]

    payload = normalize_payload(payload)
    issues: List[ValidationIssue] = []

    if "id" in payload:
        issues.append(_field_issue("id", "is assigned by the store and cannot be supplied"))

    for field_name in REQUIRED_CREATE_FIELDS:
        if payload.get(field_name) is None:
            issues.append(_field_issue(field_name, "is required"))

    for field_name, value in payload.items():
        if field_name == "id" or value is None:
            continue
        if field_name not in PAYLOAD_FIELDS:
            issues.append(_field_issue(field_name, "unknown field"))
            continue
        problem = check_field(field_name, value)
        if problem:
            issues.append(_field_issue(field_name, problem))

    return issues


def validate_task_update(payload: Any, task_id: Optional[str] = None) -> List[ValidationIssue]:
    """Validate a task update payload; every field is optional, ``id`` is immutable."""
    if not isinstance(payload, Mapping):
        return [_field_issue("payload", "must be an object", task_id)]

    payload = normalize_payload(payload)
    issues: List[ValidationIssue] = []

    for field_name, value in payload.items():
        if field_name == "id":
            if value != task_id:
                issues.append(_field_issue("id", "is immutable", task_id))
            continue
        if value is None:
            continue
        if field_name not in PAYLOAD_FIELDS:
            issues.append(_field_issue(field_name, "unknown field", task_id))
            continue
        problem = check_field(field_name, value)
        if problem:
            issues.append(_field_issue(field_name, problem, task_id))

    return issues


def validate_task_id(value: Any, task_id: Optional[str] = None) -> List[ValidationIssue]:
    if isinstance(value, str) and TASK_ID_FORMAT.match(value):
        return []
    return [_field_issue("id", f"must be in format fe-XXXX or be-XXXX (got {value!r})", task_id)]


def validate_task_record(task: Task) -> List[ValidationIssue]:
    """Field-level checks for a complete task record."""
    issues = validate_task_id(task.id, task.id)
    for field_name in sorted(PAYLOAD_FIELDS):
        problem = check_field(field_name, getattr(task, field_name))
        if problem:
            issues.append(_field_issue(field_name, problem, task.id))
    return issues


# ----------------------------------------------------------------------
# Dependency graph checks
# ----------------------------------------------------------------------

def dependency_graph(tasks: Iterable[Task]) -> Dict[str, List[str]]:
    """Task ID -> dependency IDs, in task order."""
    graph: Dict[str, List[str]] = {}
    for task in tasks:
        graph.setdefault(task.id, list(task.dependencies))
    return graph


def cycle_members(cycle: Sequence[str]) -> List[str]:
    """The nodes that form the loop, without the lead-in from the walk start."""
    return list(cycle[cycle.index(cycle[-1]):-1])


def find_cycles(graph: Mapping[str, Sequence[str]]) -> List[List[str]]:
    """Find dependency cycles with a depth-first walk.

    Nodes are started in mapping order and edges followed in listed order,
    so results are reproducible. Each cycle is the walk from its start node
    up to and including the repeated node, e.g. ``["X", "A", "B", "A"]``.
    A cycle is recorded and the walk continues, so independent cycles are
    all reported. Nodes that are only referenced (not keys of ``graph``)
    have no outgoing edges.
    """
    cycles: List[List[str]] = []
    explored: set[str] = set()
    exhausted = object()

    for start in graph:
        if start in explored:
            continue
        path = [start]
        on_path = {start}
        edges = [iter(graph.get(start, ()))]

        while edges:
            dep = next(edges[-1], exhausted)
            if dep is exhausted:
                finished = path.pop()
                on_path.discard(finished)
                explored.add(finished)
                edges.pop()
                continue
            if dep in on_path:
                cycles.append(path + [dep])
                continue
            if dep in explored:
                continue
            path.append(dep)
            on_path.add(dep)
            edges.append(iter(graph.get(dep, ())))

    return cycles


def detect_circular_dependencies(tasks: Iterable[Task]) -> List[ValidationIssue]:
    return [
        ValidationIssue(
            type="circular",
            severity="error",
            message=f"Circular dependency: {' -> '.join(cycle)}",
            task_id=cycle[0],
            field="dependencies",
        )
        for cycle in find_cycles(dependency_graph(tasks))
    ]


def find_dangling_dependencies(tasks: Iterable[Task]) -> List[ValidationIssue]:
    """Dependencies that point at tasks which do not exist."""
    tasks = list(tasks)
    known = {task.id for task in tasks}
    return [
        ValidationIssue(
            type="dangling-dependency",
            severity="error",
            message=f"Task {task.id} depends on non-existent task {dep}",
            task_id=task.id,
            field="dependencies",
        )
        for task in tasks
        for dep in task.dependencies
        if dep not in known
    ]


def find_duplicate_ids(tasks: Iterable[Task]) -> List[ValidationIssue]:
    seen: set[str] = set()
    issues: List[ValidationIssue] = []
    for task in tasks:
        if task.id in seen:
            issues.append(ValidationIssue(
                type="field",
                severity="error",
                message=f"Duplicate task ID: {task.id}",
                task_id=task.id,
                field="id",
            ))
        seen.add(task.id)
    return issues


def validate_tasks(tasks: Sequence[Task]) -> List[ValidationIssue]:
    """Run every field and graph check across a task collection."""
    issues: List[ValidationIssue] = []
    for task in tasks:
        issues.extend(validate_task_record(task))
    issues.extend(find_duplicate_ids(tasks))
    issues.extend(detect_circular_dependencies(tasks))
    issues.extend(find_dangling_dependencies(tasks))
    return issues


# ----------------------------------------------------------------------
# Raw file checks
# ----------------------------------------------------------------------

def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def validate_jsonl_file(content: str) -> List[ValidationIssue]:
    """Check the raw text of a task file line by line.

    Reports unparsable lines (``format``), records that are not valid tasks
    (``structure``), dependency problems, and timestamp inconsistencies as
    ``data`` warnings.
    """
    issues: List[ValidationIssue] = []
    tasks: List[Task] = []

    for entry in iter_ndjson_lines(content):
        line_no = entry.index + 1
        if not entry.ok:
            issues.append(ValidationIssue(
                type="format",
                severity="error",
                message=f"Invalid JSON: {entry.error}",
                line=line_no,
            ))
            continue
        data = entry.data
        if not isinstance(data, dict):
            issues.append(ValidationIssue(
                type="structure",
                severity="error",
                message="root: expected an object",
                line=line_no,
            ))
            continue
        if "metadata" in data:
            continue
        try:
            task = Task.from_dict(data)
        except KeyError as e:
            issues.append(ValidationIssue(
                type="structure",
                severity="error",
                message=f"{e.args[0]}: Required",
                task_id=data.get("id") if isinstance(data.get("id"), str) else None,
                line=line_no,
            ))
            continue
        except (ValueError, TypeError) as e:
            issues.append(ValidationIssue(
                type="structure",
                severity="error",
                message=str(e),
                task_id=data.get("id") if isinstance(data.get("id"), str) else None,
                line=line_no,
            ))
            continue
        for issue in validate_task_record(task):
            issue.type = "structure"
            issue.line = line_no
            issues.append(issue)
        tasks.append(task)

    issues.extend(find_duplicate_ids(tasks))
    issues.extend(find_dangling_dependencies(tasks))
    issues.extend(detect_circular_dependencies(tasks))

    for task in tasks:
        try:
            out_of_order = _parse_timestamp(task.created_at) > _parse_timestamp(task.updated_at)
        except (AttributeError, TypeError, ValueError):
            issues.append(ValidationIssue(
                type="data",
                severity="warning",
                message=f"Unparsable timestamps: created_at={task.created_at!r}, updated_at={task.updated_at!r}",
                task_id=task.id,
            ))
            continue
        if out_of_order:
            issues.append(ValidationIssue(
                type="data",
                severity="warning",
                message=f"created_at ({task.created_at}) is after updated_at ({task.updated_at})",
                task_id=task.id,
            ))

    return issues
