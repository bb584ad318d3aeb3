"""Data models for the pland task manager.

This module contains the records persisted in a plan's task file (tasks and
plan metadata) and the derived views built from them (validation issues,
dependency chains, progress statistics).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

PLATFORMS = ("frontend", "backend")
PRIORITIES = ("critical", "high", "medium", "low")
PRIORITY_WEIGHTS = {"critical": 4, "high": 3, "medium": 2, "low": 1}
EFFORTS = ("S", "M", "L", "XL")
SEVERITIES = ("error", "warning")

DEFAULT_EFFORT = "M"
METADATA_VERSION = "1.0.0"


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


_REQUIRED = object()


def _typed(data: Dict[str, Any], field_name: str, kind: type, default: Any = _REQUIRED) -> Any:
    """Read ``field_name`` from ``data``, rejecting values of the wrong type."""
    if field_name not in data:
        if default is _REQUIRED:
            raise KeyError(field_name)
        return default
    value = data[field_name]
    if not isinstance(value, kind):
        raise ValueError(f"{field_name} must be a {kind.__name__}, got {type(value).__name__}")
    return value


def _string_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return list(value)


@dataclass(slots=True)
class Task:
    """A single implementation task within a plan."""

    id: str
    name: str
    level: str
    component: str
    effort: str = DEFAULT_EFFORT
    ready: bool = True
    done: bool = False
    dependencies: List[str] = field(default_factory=list)
    files: str = ""
    tests_success: List[str] = field(default_factory=list)
    acceptance_criteria: List[str] = field(default_factory=list)
    implementation_notes: str = ""
    created_at: str = field(default_factory=utc_timestamp)
    updated_at: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "component": self.component,
            "effort": self.effort,
            "ready": self.ready,
            "done": self.done,
            "dependencies": list(self.dependencies),
            "files": self.files,
            "tests_success": list(self.tests_success),
            "acceptance_criteria": list(self.acceptance_criteria),
            "implementation_notes": self.implementation_notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary representation.

        Raises ``KeyError`` for missing required fields and ``ValueError`` for
        values of the wrong type or outside their allowed set, so callers can
        skip bad records.
        """
        task_id = data["id"]
        if not isinstance(task_id, str) or not task_id:
            raise ValueError("id must be a non-empty string")
        level = data["level"]
        if level not in PRIORITIES:
            raise ValueError(f"Invalid level: {level}")
        effort = data.get("effort", DEFAULT_EFFORT)
        if effort not in EFFORTS:
            raise ValueError(f"Invalid effort: {effort}")
        now = utc_timestamp()
        return cls(
            id=task_id,
            name=_typed(data, "name", str),
            level=level,
            component=_typed(data, "component", str),
            effort=effort,
            ready=_typed(data, "ready", bool, True),
            done=_typed(data, "done", bool, False),
            dependencies=_string_list(data.get("dependencies"), "dependencies"),
            files=_typed(data, "files", str, ""),
            tests_success=_string_list(data.get("tests_success"), "tests_success"),
            acceptance_criteria=_string_list(data.get("acceptance_criteria"), "acceptance_criteria"),
            implementation_notes=_typed(data, "implementation_notes", str, ""),
            created_at=_typed(data, "created_at", str, now),
            updated_at=_typed(data, "updated_at", str, now),
        )

    def is_foundation(self) -> bool:
        """A foundation task has no dependencies."""
        return not self.dependencies

    def status_label(self) -> str:
        if self.done:
            return "done"
        return "ready" if self.ready else "pending"


@dataclass(slots=True)
class TaskMetadata:
    """Describes which plan and platform a task file belongs to."""

    plan_name: str
    platform: str
    framework: str = "unknown"
    current_dependencies: List[str] = field(default_factory=list)
    created_at: str = field(default_factory=utc_timestamp)
    version: str = METADATA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "plan_name": self.plan_name,
            "platform": self.platform,
            "framework": self.framework,
            "current_dependencies": list(self.current_dependencies),
            "created_at": self.created_at,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskMetadata":
        """Create from dictionary representation."""
        platform = data["platform"]
        if platform not in PLATFORMS:
            raise ValueError(f"Invalid platform: {platform}")
        return cls(
            plan_name=_typed(data, "plan_name", str),
            platform=platform,
            framework=_typed(data, "framework", str, "unknown"),
            current_dependencies=_string_list(data.get("current_dependencies"), "current_dependencies"),
            created_at=_typed(data, "created_at", str, utc_timestamp()),
            version=_typed(data, "version", str, METADATA_VERSION),
        )


@dataclass(slots=True)
class ValidationIssue:
    """One problem found while validating a payload or a task graph."""

    type: str  # 'field', 'circular', 'dangling-dependency', 'format', 'structure', 'data'
    severity: str  # 'error' or 'warning'
    message: str
    task_id: Optional[str] = None
    field: Optional[str] = None
    line: Optional[int] = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Invalid severity: {self.severity}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "task_id": self.task_id,
            "field": self.field,
            "line": self.line,
        }

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


@dataclass(slots=True)
class ChainEntry:
    task_id: str
    name: str
    direct: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"task_id": self.task_id, "name": self.name, "direct": self.direct}


@dataclass(slots=True)
class DependencyChain:
    """Dependencies and dependents of a single task."""

    task_id: str
    dependencies: List[ChainEntry] = field(default_factory=list)
    dependents: List[ChainEntry] = field(default_factory=list)
    full_chain: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "dependencies": [entry.to_dict() for entry in self.dependencies],
            "dependents": [entry.to_dict() for entry in self.dependents],
            "full_chain": list(self.full_chain),
        }


@dataclass(slots=True)
class ProgressStats:
    """Progress summary for one plan file."""

    total: int = 0
    by_level: Dict[str, int] = field(default_factory=lambda: {level: 0 for level in PRIORITIES})
    done: int = 0
    ready: int = 0
    pending: int = 0
    foundation: int = 0
    blocked: int = 0

    @property
    def completion_rate(self) -> str:
        """Percentage of done tasks, one decimal; ``"0"`` for an empty plan."""
        if self.total == 0:
            return "0"
        return f"{(self.done / self.total) * 100:.1f}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total": self.total,
            "by_level": dict(self.by_level),
            "by_status": {
                "done": self.done,
                "ready": self.ready,
                "pending": self.pending,
                "blocked": self.blocked,
            },
            "foundation": self.foundation,
            "blocked": self.blocked,
            "completion_rate": self.completion_rate,
        }


@dataclass(slots=True)
class InitResult:
    """Outcome of bootstrapping a plan file."""

    initialized: bool
    path: Path
    metadata: Optional[TaskMetadata] = None
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "path": str(self.path),
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "warning": self.warning,
        }
