"""Command line interface: ``task-manager --plan-name NAME <group> <command>``.

Exit status is 0 on success and 1 for validation failures, unknown tasks or
plans, and any validation issue of severity ``error``. Every validation issue
is printed, not just the first.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from .config import LOG_LEVEL_ENV, PLATFORM_ENV, Settings
from .errors import PlanNotFoundError, TaskManagerError, ValidationError
from .models import ValidationIssue
from .rendering import (
    format_chain,
    format_dashboard,
    format_issues,
    format_task_detail,
    format_task_table,
    format_templates,
)
from .service import TaskStore
from .task_logging import setup_logging
from .templates import TEMPLATES, apply_template, get_template
from .validator import validate_jsonl_file

logger = logging.getLogger("task_manager.cli")


def _parse_variables(items: Optional[Sequence[str]]) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    issues: List[ValidationIssue] = []
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            issues.append(ValidationIssue("field", "error", f"var: expected KEY=VALUE (got {item!r})", field="var"))
            continue
        variables[key] = value
    if issues:
        raise ValidationError("Invalid template variables", issues)
    return variables


def _split_ids(values: Optional[Sequence[str]]) -> Optional[List[str]]:
    """Accept both ``--dependencies a b`` and ``--dependencies a,b``."""
    if values is None:
        return None
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def _field_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload = {
        "name": args.name,
        "level": args.level,
        "component": args.component,
        "effort": args.effort,
        "files": args.files,
        "implementation_notes": args.notes,
        "tests_success": args.tests,
        "acceptance_criteria": args.criteria,
        "dependencies": _split_ids(args.dependencies),
        "ready": args.ready,
        "done": args.done,
    }
    return {key: value for key, value in payload.items() if value is not None}


# ----------------------------------------------------------------------
# task commands
# ----------------------------------------------------------------------

def cmd_task_create(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    payload: Dict[str, Any] = {}
    if args.template:
        template = apply_template(get_template(args.template), _parse_variables(args.var))
        payload.update(template.to_payload())
    payload.update(_field_payload(args))

    task = store.create(payload)
    console.print(f"[green]✓ Task created: {task.id}[/green]")
    console.print(format_task_detail(task))
    return 0


def cmd_task_update(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    task = store.update(args.id, _field_payload(args))
    console.print(f"[green]✓ Task updated: {escape(task.id)}[/green]")
    return 0


def cmd_task_list(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    tasks = store.list_tasks(level=args.level, done=args.done, ready=args.ready, foundation=args.foundation)
    plan_name, platform = store.display_metadata()
    console.print(format_task_table(tasks, plan_name, platform))
    return 0


def cmd_task_detail(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    task = store.require(args.id)
    console.print(format_task_detail(task, store.repository.find_dependents(store.tasks, task.id)))
    return 0


def cmd_task_chain(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    console.print(format_chain(store.get_chain(args.id)))
    return 0


def cmd_task_remove(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    task, dependents = store.remove(args.id)
    console.print(f"[green]✓ Task removed: {escape(task.id)}[/green]")
    if dependents:
        ids = ", ".join(dependent.id for dependent in dependents)
        console.print(f"[yellow]⚠ Still referenced by: {escape(ids)}[/yellow]")
    return 0


def cmd_task_status(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    ready = store.list_tasks(done=False, ready=True, foundation=True)
    console.print(format_dashboard(store.get_progress(), ready))
    return 0


def cmd_task_validate_jsonl(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    if not store.repository.exists():
        raise PlanNotFoundError(store.plan_name, store.platform, store.path)
    content = store.repository.read_text()
    issues = validate_jsonl_file(content)
    lines = sum(1 for line in content.splitlines() if line.strip())

    if not any(issue.is_error for issue in issues):
        console.print("[green]✓ Validation passed![/green]")
        console.print(f"[dim]Total entries: {lines}[/dim]")
        if issues:
            console.print(format_issues(issues))
        return 0

    console.print("[red]✗ Validation failed![/red]")
    console.print(format_issues(issues, str(store.path)))
    return 1


# ----------------------------------------------------------------------
# project commands
# ----------------------------------------------------------------------

def cmd_project_init(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    result = store.init(framework=args.framework, deps=args.deps)
    if not result.initialized:
        console.print(f"[yellow]⚠ {escape(result.warning or '')}[/yellow]")
        return 0
    console.print(f"Initialized: {escape(str(result.path))}")
    console.print(f"  Plan: {escape(store.plan_name)} | Platform: {store.platform}")
    return 0


def cmd_project_validate(store: TaskStore, args: argparse.Namespace, console: Console) -> int:
    issues = store.validate()
    console.print(format_issues(issues))
    return 1 if any(issue.is_error for issue in issues) else 0


# ----------------------------------------------------------------------
# parser
# ----------------------------------------------------------------------

def _add_field_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", help="Task name")
    parser.add_argument("--level", "--priority", dest="level", help="Priority: critical, high, medium, low")
    parser.add_argument("--component", help="Component name")
    parser.add_argument("--effort", help="Estimated effort: S, M, L, XL")
    parser.add_argument("--files", help="Files to create or change")
    parser.add_argument("--notes", help="Implementation notes")
    parser.add_argument("--tests", nargs="+", metavar="TEST", help="Tests that must pass")
    parser.add_argument("--criteria", nargs="+", metavar="CRITERION", help="Acceptance criteria")
    parser.add_argument(
        "--dependencies", "--blockedBy", dest="dependencies", nargs="+", metavar="ID",
        help="IDs of tasks this one depends on",
    )


def _add_flag_pair(parser: argparse.ArgumentParser, dest: str, on: str, off: str, on_help: str, off_help: str) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(on, dest=dest, action="store_const", const=True, help=on_help)
    group.add_argument(off, dest=dest, action="store_const", const=False, help=off_help)
    parser.set_defaults(**{dest: None})


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(prog="task-manager", description="Plan task manager")
    parser.add_argument("-p", "--plan-name", dest="plan_name", help="Plan name")
    parser.add_argument(
        "--platform",
        default=settings.default_platform,
        help=f"frontend or backend (default: {settings.default_platform}, env {PLATFORM_ENV})",
    )
    parser.add_argument("--root", help="Project root (default: nearest directory holding the plan storage)")
    parser.add_argument("--log-level", help=f"Logging level (default: {settings.log_level}, env {LOG_LEVEL_ENV})")

    groups = parser.add_subparsers(dest="group", metavar="{task,project}")
    groups.required = True

    task = groups.add_parser("task", help="Task commands")
    task_commands = task.add_subparsers(dest="command")
    task_commands.required = True

    create = task_commands.add_parser("create", help="Create a new task")
    _add_field_options(create)
    create.add_argument("--template", help="Start from a named template")
    create.add_argument("--var", action="append", metavar="KEY=VALUE", help="Template placeholder value")
    create.add_argument("--done", dest="done", action="store_const", const=True, default=None, help="Mark as done")
    create.add_argument("--notReady", dest="ready", action="store_const", const=False, default=None,
                        help="Mark as not ready")
    create.set_defaults(handler=cmd_task_create)

    update = task_commands.add_parser("update", help="Update an existing task")
    update.add_argument("id", help="Task ID")
    _add_field_options(update)
    _add_flag_pair(update, "done", "--done", "--notDone", "Mark as done", "Mark as not done")
    _add_flag_pair(update, "ready", "--ready", "--notReady", "Mark as ready", "Mark as not ready")
    update.set_defaults(handler=cmd_task_update)

    listing = task_commands.add_parser("list", help="List tasks")
    listing.add_argument("--level", help="Only tasks with this priority")
    _add_flag_pair(listing, "done", "--done", "--pending", "Only done tasks", "Only tasks not done")
    _add_flag_pair(listing, "ready", "--ready", "--notReady", "Only ready tasks", "Only tasks not ready")
    listing.add_argument("--foundation", action="store_true", help="Only tasks without dependencies")
    listing.set_defaults(handler=cmd_task_list)

    for name, handler, help_text in (
        ("detail", cmd_task_detail, "Show task detail"),
        ("chain", cmd_task_chain, "Show dependency chain"),
        ("remove", cmd_task_remove, "Remove a task"),
    ):
        command = task_commands.add_parser(name, help=help_text)
        command.add_argument("id", help="Task ID")
        command.set_defaults(handler=handler)

    task_commands.add_parser("status", help="Show task status dashboard").set_defaults(handler=cmd_task_status)
    task_commands.add_parser("validate", help="Validate stored tasks").set_defaults(handler=cmd_project_validate)
    task_commands.add_parser("validate-jsonl", help="Validate the raw task file").set_defaults(
        handler=cmd_task_validate_jsonl
    )
    task_commands.add_parser("template", help="List available templates").set_defaults(handler=None)

    project = groups.add_parser("project", help="Project commands")
    project_commands = project.add_subparsers(dest="command")
    project_commands.required = True

    init = project_commands.add_parser("init", help="Initialize the plan file")
    init.add_argument("--framework", help="Framework name")
    init.add_argument("--deps", nargs="*", default=None, help="Project dependencies")
    init.set_defaults(handler=cmd_project_init)

    project_commands.add_parser("validate", help="Validate the plan").set_defaults(handler=cmd_project_validate)

    return parser


def print_error(console: Console, error: TaskManagerError) -> None:
    console.print(f"[red]{error.code}: {escape(error.message)}[/red]")
    for issue in getattr(error, "issues", []):
        console.print(f"  [red]✗[/red] {escape(issue.message)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)
    console = Console(soft_wrap=True)
    error_console = Console(stderr=True, soft_wrap=True)

    try:
        setup_logging((args.log_level or settings.log_level).upper(), settings.log_file)
        logger.debug(f"Running {args.group} {args.command} for plan {args.plan_name!r} ({args.platform})")

        if args.handler is None:
            console.print(format_templates(TEMPLATES))
            return 0

        store = TaskStore(args.plan_name, args.platform, args.root, settings=settings)
        return args.handler(store, args, console)
    except TaskManagerError as e:
        print_error(error_console, e)
        return 1
    except ValueError as e:
        # bad log level
        error_console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
