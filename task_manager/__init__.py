"""Plan task manager exports."""

from .config import Settings, locate_project_root, resolve_root
from .errors import ConfigurationError, NotFoundError, PlanNotFoundError, TaskManagerError, ValidationError
from .identifiers import format_task_id, next_task_id, parse_task_id
from .models import DependencyChain, InitResult, ProgressStats, Task, TaskMetadata, ValidationIssue
from .service import TaskStore
from .task_logging import setup_logging
from .templates import TEMPLATES, TaskTemplate, apply_template, get_template

__version__ = "0.1.0"

__all__ = [
    "TaskStore",
    "Task",
    "TaskMetadata",
    "ValidationIssue",
    "DependencyChain",
    "ProgressStats",
    "InitResult",
    "TaskManagerError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "PlanNotFoundError",
    "Settings",
    "locate_project_root",
    "resolve_root",
    "setup_logging",
    "format_task_id",
    "next_task_id",
    "parse_task_id",
    "TEMPLATES",
    "TaskTemplate",
    "apply_template",
    "get_template",
]
