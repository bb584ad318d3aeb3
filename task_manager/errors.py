"""Error types raised by the task manager core.

Every error carries a stable ``code`` so the command line and the MCP server
can report failures uniformly.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ValidationIssue


class TaskManagerError(Exception):
    """Base class for all task manager errors."""

    code = "TASK_MANAGER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskManagerError):
    """Invalid input data; holds every issue found, not just the first."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: Optional[List["ValidationIssue"]] = None):
        super().__init__(message)
        self.issues: List["ValidationIssue"] = list(issues or [])

    def messages(self) -> List[str]:
        """Return the individual issue messages."""
        return [issue.message for issue in self.issues] or [self.message]


class NotFoundError(TaskManagerError):
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class PlanNotFoundError(NotFoundError):
    """Raised when an operation needs a plan file that was never written."""

    def __init__(self, plan_name: str, platform: str, path: Path):
        super().__init__("Plan", f"{plan_name} ({platform}) at {path}")
        self.plan_name = plan_name
        self.platform = platform
        self.path = path


class ConfigurationError(TaskManagerError, ValueError):
    """A project root from an argument or the environment is unusable."""

    code = "CONFIGURATION_ERROR"
