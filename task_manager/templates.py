"""Task templates for recurring kinds of work.

Template strings use ``{Placeholder}`` markers that ``apply_template`` fills
from caller-supplied variables. Markers without a value stay as they are.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping

from .errors import NotFoundError

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(slots=True, frozen=True)
class TaskTemplate:
    level: str
    name: str
    component: str
    files: str
    effort: str
    implementation_notes: str
    tests_success: List[str] = field(default_factory=list)
    acceptance_criteria: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Task creation payload built from this template."""
        return {
            "name": self.name,
            "level": self.level,
            "component": self.component,
            "files": self.files,
            "effort": self.effort,
            "implementation_notes": self.implementation_notes,
            "tests_success": list(self.tests_success),
            "acceptance_criteria": list(self.acceptance_criteria),
        }


TEMPLATES: Dict[str, TaskTemplate] = {
    "component": TaskTemplate(
        level="high",
        name="Create {ComponentName} Component",
        component="{ComponentName}",
        files="src/components/{ComponentName}/{ComponentName}.{ext}",
        effort="M",
        implementation_notes="Use atomic design principles",
        tests_success=["Renders correctly", "Handles user interactions", "Accessible with ARIA"],
        acceptance_criteria=[
            "Component renders without errors",
            "All interactions work",
            "WCAG 2.1 AA compliant",
        ],
    ),
    "service": TaskTemplate(
        level="high",
        name="Create {ServiceName} Service",
        component="{ServiceName}",
        files="src/services/{category}/{ServiceName}.{ext}",
        effort="M",
        implementation_notes="Register in DI container",
        tests_success=["Unit tests pass", "Error handling works", "Edge cases covered"],
        acceptance_criteria=["All methods return correct results", "Error states handled properly"],
    ),
    "hook": TaskTemplate(
        level="medium",
        name="Create use{HookName} Hook",
        component="use{HookName}",
        files="src/hooks/use{HookName}.{ext}",
        effort="S",
        implementation_notes="Include type definitions",
        tests_success=["Hook returns expected values", "State updates work", "Cleanup runs correctly"],
        acceptance_criteria=["Follows hooks rules", "Proper cleanup on unmount"],
    ),
    "page": TaskTemplate(
        level="high",
        name="Create {PageName} Page",
        component="{PageName}",
        files="src/pages/{PageName}/{PageName}.{ext}",
        effort="L",
        implementation_notes="Integrate with routing",
        tests_success=["Page renders", "Navigation works", "Data fetching works"],
        acceptance_criteria=["Full user flow functional", "Loading and error states handled"],
    ),
    "test": TaskTemplate(
        level="medium",
        name="Add Tests for {ComponentName}",
        component="{ComponentName}",
        files="{ComponentPath}.test.{ext}",
        effort="M",
        implementation_notes="Use the project's testing library",
        tests_success=["All tests pass", "Coverage meets threshold"],
        acceptance_criteria=["Unit tests cover happy path", "Edge cases tested", "Error scenarios covered"],
    ),
    "repository": TaskTemplate(
        level="high",
        name="Create {Entity}Repository",
        component="{Entity}Repository",
        files="src/repositories/{entity}Repository.{ext}",
        effort="M",
        implementation_notes="Use ORM of choice",
        tests_success=["CRUD operations", "Error handling", "Edge cases"],
        acceptance_criteria=["All CRUD methods work", "Database queries tested"],
    ),
    "controller": TaskTemplate(
        level="high",
        name="Create {Entity}Controller",
        component="{Entity}Controller",
        files="src/controllers/{entity}Controller.{ext}",
        effort="M",
        implementation_notes="Framework-specific patterns",
        tests_success=["Request parsing", "Response formatting", "Error responses"],
        acceptance_criteria=["All endpoints work", "Validation implemented"],
    ),
    "migration": TaskTemplate(
        level="critical",
        name="Create {Entity} Migration",
        component="{Entity}Migration",
        files="migrations/{timestamp}_create_{entity}.{ext}",
        effort="S",
        implementation_notes="Include rollback",
        tests_success=["Migration up/down", "Schema validation"],
        acceptance_criteria=["Table created correctly", "Indexes defined", "Migration reversible"],
    ),
    "middleware": TaskTemplate(
        level="medium",
        name="Create {MiddlewareName} Middleware",
        component="{MiddlewareName}Middleware",
        files="src/middleware/{middlewareName}.{ext}",
        effort="S",
        implementation_notes="Document execution order",
        tests_success=["Middleware execution", "Error cases", "Bypass conditions"],
        acceptance_criteria=["Middleware works correctly", "Errors handled"],
    ),
    "di-registration": TaskTemplate(
        level="medium",
        name="Register {ServiceName} in DI Container",
        component="DI Registration",
        files="src/di/registrations.{ext}",
        effort="S",
        implementation_notes="Choose singleton or scoped lifetime explicitly",
        tests_success=["Service resolves correctly", "Singleton/scoped works"],
        acceptance_criteria=["Registered as correct lifetime", "Dependencies injected properly"],
    ),
}


def fill_placeholders(text: str, variables: Mapping[str, Any]) -> str:
    return _PLACEHOLDER.sub(
        lambda match: str(variables[match.group(1)]) if match.group(1) in variables else match.group(0),
        text,
    )


def apply_template(template: TaskTemplate, variables: Mapping[str, Any]) -> TaskTemplate:
    """Return a copy of ``template`` with placeholders substituted."""
    return replace(
        template,
        name=fill_placeholders(template.name, variables),
        component=fill_placeholders(template.component, variables),
        files=fill_placeholders(template.files, variables),
        implementation_notes=fill_placeholders(template.implementation_notes, variables),
        tests_success=[fill_placeholders(item, variables) for item in template.tests_success],
        acceptance_criteria=[fill_placeholders(item, variables) for item in template.acceptance_criteria],
    )


def get_template(name: str) -> TaskTemplate:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise NotFoundError("Template", name) from None
