"""MCP server exposing the plan task manager as tools."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from task_manager import (
    ConfigurationError,
    NotFoundError,
    PlanNotFoundError,
    Settings,
    TaskManagerError,
    TaskStore,
    TEMPLATES,
    apply_template,
    get_template,
    locate_project_root,
    resolve_root,
    setup_logging,
)

mcp = FastMCP("pland-task-manager")


def _store(plan_name: str, platform: str, root: Optional[str]) -> TaskStore:
    return TaskStore(plan_name, platform, root)


def _failure(error: TaskManagerError) -> Dict[str, Any]:
    response: Dict[str, Any] = {"error": error.code, "message": error.message}
    issues = getattr(error, "issues", None)
    if issues:
        response["issues"] = [issue.to_dict() for issue in issues]
    if isinstance(error, PlanNotFoundError):
        response["suggestion"] = "Call project_init first to create the plan file"
        response["next_suggested_step"] = "project_init"
    elif isinstance(error, NotFoundError):
        response["suggestion"] = "Call task_list to see the existing task IDs"
    elif isinstance(error, ConfigurationError):
        response["suggestion"] = "Pass an existing directory as root or fix PLAND_PROJECT_ROOT"
    return response


def _identity(store: TaskStore) -> Dict[str, str]:
    plan_name, platform = store.display_metadata()
    return {"plan_name": plan_name, "platform": platform, "tasks_path": str(store.path)}


@mcp.tool()
def project_init(
    plan_name: str,
    platform: str,
    framework: Optional[str] = None,
    deps: Optional[List[str]] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """STEP 1: Create the task file for a plan and platform (frontend or backend).
    Re-running on a plan that already holds tasks changes nothing and returns a warning."""

    try:
        result = _store(plan_name, platform, root).init(framework=framework, deps=deps)
    except TaskManagerError as e:
        return _failure(e)

    response = result.to_dict()
    if result.initialized:
        response["next_suggested_step"] = "task_create"
        response["workflow_tip"] = "Next: add tasks with task_create; IDs are assigned automatically"
    return response


@mcp.tool()
def task_create(
    plan_name: str,
    platform: str,
    name: Optional[str] = None,
    level: Optional[str] = None,
    component: Optional[str] = None,
    effort: Optional[str] = None,
    files: Optional[str] = None,
    dependencies: Optional[List[str]] = None,
    ready: Optional[bool] = None,
    done: Optional[bool] = None,
    tests_success: Optional[List[str]] = None,
    acceptance_criteria: Optional[List[str]] = None,
    implementation_notes: Optional[str] = None,
    template: Optional[str] = None,
    variables: Optional[Dict[str, str]] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """STEP 2: Create a task. The ID (fe-0001, be-0001, ...) is assigned from the platform.
    Supply name, level (critical/high/medium/low) and component, or start from a template."""

    fields = {
        "name": name,
        "level": level,
        "component": component,
        "effort": effort,
        "files": files,
        "dependencies": dependencies,
        "ready": ready,
        "done": done,
        "tests_success": tests_success,
        "acceptance_criteria": acceptance_criteria,
        "implementation_notes": implementation_notes,
    }

    try:
        payload: Dict[str, Any] = {}
        if template:
            payload.update(apply_template(get_template(template), variables or {}).to_payload())
        payload.update({key: value for key, value in fields.items() if value is not None})

        store = _store(plan_name, platform, root)
        task = store.create(payload)
    except TaskManagerError as e:
        return _failure(e)

    return {
        "task": task.to_dict(),
        **_identity(store),
        "message": f"Task {task.id} created.",
    }


@mcp.tool()
def task_update(
    plan_name: str,
    platform: str,
    task_id: str,
    changes: Dict[str, Any],
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Update fields of an existing task. The task ID itself cannot be changed."""

    try:
        task = _store(plan_name, platform, root).update(task_id, changes)
    except TaskManagerError as e:
        return _failure(e)

    return {"task": task.to_dict(), "message": f"Task {task.id} updated."}


@mcp.tool()
def task_list(
    plan_name: str,
    platform: str,
    level: Optional[str] = None,
    done: Optional[bool] = None,
    ready: Optional[bool] = None,
    foundation: bool = False,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """List tasks sorted by priority, optionally filtered."""

    try:
        store = _store(plan_name, platform, root)
        tasks = store.list_tasks(level=level, done=done, ready=ready, foundation=foundation)
    except TaskManagerError as e:
        return _failure(e)

    return {**_identity(store), "tasks": [task.to_dict() for task in tasks], "total": len(tasks)}


@mcp.tool()
def task_detail(plan_name: str, platform: str, task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Return one task together with the IDs of tasks that depend on it."""

    try:
        store = _store(plan_name, platform, root)
        task = store.require(task_id)
    except TaskManagerError as e:
        return _failure(e)

    dependents = store.repository.find_dependents(store.tasks, task.id)
    return {"task": task.to_dict(), "blocks": [dependent.id for dependent in dependents]}


@mcp.tool()
def task_chain(plan_name: str, platform: str, task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Return direct and transitive dependencies plus dependents of a task."""

    try:
        chain = _store(plan_name, platform, root).get_chain(task_id)
    except TaskManagerError as e:
        return _failure(e)

    return chain.to_dict()


@mcp.tool()
def task_remove(plan_name: str, platform: str, task_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Delete a task. Tasks that still depend on it are reported, not changed."""

    try:
        task, dependents = _store(plan_name, platform, root).remove(task_id)
    except TaskManagerError as e:
        return _failure(e)

    response: Dict[str, Any] = {"removed": task.to_dict(), "message": f"Task {task.id} removed."}
    if dependents:
        response["dangling_dependents"] = [dependent.id for dependent in dependents]
        response["suggestion"] = "Update the listed tasks so they no longer depend on the removed task"
    return response


@mcp.tool()
def task_status(plan_name: str, platform: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Progress summary: counts by status and priority plus tasks ready to start."""

    try:
        store = _store(plan_name, platform, root)
    except TaskManagerError as e:
        return _failure(e)

    ready = store.list_tasks(done=False, ready=True, foundation=True)
    return {
        **_identity(store),
        "progress": store.get_progress().to_dict(),
        "ready_to_start": [task.id for task in ready],
    }


@mcp.tool()
def project_validate(plan_name: str, platform: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Validate every stored task: fields, duplicate IDs, cycles and missing dependencies."""

    try:
        issues = _store(plan_name, platform, root).validate()
    except TaskManagerError as e:
        return _failure(e)

    errors = [issue for issue in issues if issue.is_error]
    return {
        "valid": not errors,
        "error_count": len(errors),
        "warning_count": len(issues) - len(errors),
        "issues": [issue.to_dict() for issue in issues],
    }


@mcp.tool()
def list_templates() -> Dict[str, Any]:
    """Enumerate task templates usable with task_create(template=...)."""

    return {"templates": {name: template.to_payload() for name, template in TEMPLATES.items()}}


def _plan_files(root: Optional[Path], storage_dir: str) -> List[Path]:
    if root is None:
        return []
    return sorted((root / storage_dir).glob("*/*-tasks.jsonl"))


@mcp.resource("pland://plans")
def resource_plans() -> str:
    """Resource view listing the plan task files in the project."""

    settings = Settings.from_env()
    try:
        root = resolve_root(settings=settings) if settings.project_root else locate_project_root(settings.storage_dir)
    except TaskManagerError as e:
        return f"{e.code}: {e.message}"
    files = _plan_files(root, settings.storage_dir)
    if not files:
        return "No plans found. Call project_init or set PLAND_PROJECT_ROOT."

    lines = ["Plans"]
    for path in files:
        platform = path.name[: -len("-tasks.jsonl")]
        lines.append(f"- {path.parent.name} ({platform}): {path}")
    return "\n".join(lines)


def run() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run()
