"""Rich output formatting for the task manager CLI.

Every function builds a renderable and leaves printing to the caller. Task
content is wrapped in ``Text`` so brackets in names are never read as markup.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import PRIORITIES, DependencyChain, ProgressStats, Task, ValidationIssue
from .templates import TaskTemplate

LEVEL_STYLES = {"critical": "bold red", "high": "yellow", "medium": "blue", "low": "dim"}
STATUS_LABELS = {
    "done": ("✓ Done", "green"),
    "ready": ("○ Ready", "cyan"),
    "pending": ("✗ Pending", "red"),
}
READY_PREVIEW = 5
BAR_WIDTH = 40


def format_level(level: str) -> Text:
    return Text(level, style=LEVEL_STYLES.get(level, "dim"))


def format_status(task: Task) -> Text:
    label, style = STATUS_LABELS[task.status_label()]
    return Text(label, style=style)


def format_task_table(tasks: Sequence[Task], plan_name: str, platform: str) -> RenderableType:
    """Task list with a plan/platform header.

    Args:
        tasks: Tasks in display order
        plan_name: Plan name from file metadata, or ``unknown``
        platform: Platform from file metadata, or ``unknown``
    """
    header = Text.assemble(
        ("Tasks: ", "bold"), (plan_name, "bold"), "\n",
        ("Platform: ", "dim"), (platform, "dim"),
    )
    if not tasks:
        return Group(header, Text("No tasks found.", style="dim"))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Priority", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Blocked By")

    for task in tasks:
        table.add_row(
            task.id,
            Text(task.name),
            format_level(task.level),
            format_status(task),
            Text(", ".join(task.dependencies) or "-"),
        )

    return Group(header, table, Text(f"Total: {len(tasks)} task(s)", style="dim"))


def format_task_detail(task: Task, dependents: Iterable[Task] = ()) -> RenderableType:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold", no_wrap=True)
    grid.add_column()
    grid.add_row("Component", Text(task.component))
    grid.add_row("Level", format_level(task.level))
    grid.add_row("Effort", task.effort)
    grid.add_row("Status", format_status(task))
    if task.files:
        grid.add_row("Files", Text(task.files))
    if task.dependencies:
        grid.add_row("Blocked by", ", ".join(task.dependencies))
    blocks = [dependent.id for dependent in dependents]
    if blocks:
        grid.add_row("Blocks", ", ".join(blocks))
    if task.implementation_notes:
        grid.add_row("Notes", Text(task.implementation_notes))
    grid.add_row("Created", task.created_at)
    grid.add_row("Updated", task.updated_at)

    parts: List[RenderableType] = [grid]
    if task.tests_success:
        parts.append(Text("\nTests:", style="bold"))
        parts.extend(Text.assemble(("  ✓ ", "green"), item) for item in task.tests_success)
    if task.acceptance_criteria:
        parts.append(Text("\nAcceptance Criteria:", style="bold"))
        parts.extend(Text.assemble(("  • ", "cyan"), item) for item in task.acceptance_criteria)

    title = Text.assemble((task.id, "bold cyan"), ": ", task.name)
    return Panel(Group(*parts), title=title, title_align="left", border_style="cyan")


def format_chain(chain: DependencyChain) -> RenderableType:
    parts: List[RenderableType] = [Text(f"Dependency Chain: {chain.task_id}", style="bold")]

    if chain.dependencies:
        table = Table(title="Dependencies", title_justify="left", header_style="bold cyan")
        table.add_column("Type", no_wrap=True)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        for entry in chain.dependencies:
            kind = Text("→ Direct", style="green") if entry.direct else Text("• Transitive", style="dim")
            table.add_row(kind, entry.task_id, Text(entry.name))
        parts.append(table)
    else:
        parts.append(Text("✓ No dependencies", style="green"))

    if chain.dependents:
        table = Table(title="Dependents", title_justify="left", header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        for entry in chain.dependents:
            table.add_row(entry.task_id, Text(entry.name))
        parts.append(table)

    if len(chain.full_chain) > 1:
        parts.append(Text.assemble(("Order: ", "bold"), " → ".join(chain.full_chain)))

    return Group(*parts)


def format_progress_bar(stats: ProgressStats, width: int = BAR_WIDTH) -> Text:
    filled = int(float(stats.completion_rate) / 100 * width)
    return Text.assemble(
        ("█" * filled, "green"),
        ("░" * (width - filled), "dim"),
        f" {stats.completion_rate}%",
    )


def format_dashboard(stats: ProgressStats, ready_tasks: Sequence[Task] = ()) -> RenderableType:
    """Progress dashboard: completion bar, status, priority and dependency counts."""
    status = Table(title="By Status", title_justify="left", header_style="bold")
    for label, style in (("Total", "cyan"), ("Done", "green"), ("Ready", "yellow"), ("Pending", "red")):
        status.add_column(label, style=style, justify="right")
    status.add_row(str(stats.total), str(stats.done), str(stats.ready), str(stats.pending))

    priority = Table(title="By Priority", title_justify="left", header_style="bold")
    for level in PRIORITIES:
        priority.add_column(level.capitalize(), style=LEVEL_STYLES[level], justify="right")
    priority.add_row(*(str(stats.by_level.get(level, 0)) for level in PRIORITIES))

    deps = Table(title="Dependencies", title_justify="left", header_style="bold cyan")
    deps.add_column("Type")
    deps.add_column("Count", justify="right")
    deps.add_row(Text("✓ Foundation", style="green"), str(stats.foundation))
    deps.add_row(Text("→ Blocked", style="red"), str(stats.blocked))

    parts: List[RenderableType] = [
        Text("Task Progress Dashboard", style="bold"),
        Text.assemble(("Progress ", "bold"), format_progress_bar(stats)),
        status,
        priority,
        deps,
    ]

    if ready_tasks:
        ready = Table(title="★ Ready to start", title_justify="left", header_style="bold cyan")
        ready.add_column("ID", style="cyan", no_wrap=True)
        ready.add_column("Priority", style="dim", no_wrap=True)
        ready.add_column("Name")
        for task in ready_tasks[:READY_PREVIEW]:
            ready.add_row(task.id, f"[{task.level}]", Text(task.name))
        parts.append(ready)
        if len(ready_tasks) > READY_PREVIEW:
            parts.append(Text(f"... and {len(ready_tasks) - READY_PREVIEW} more", style="dim"))

    return Group(*parts)


def format_issue(issue: ValidationIssue) -> Text:
    icon, style = ("✗", "red") if issue.is_error else ("⚠", "yellow")
    location = f" (line {issue.line})" if issue.line else ""
    return Text.assemble((f"{icon} {issue.severity}", style), f" {issue.type}{location}: {issue.message}")


def format_issues(issues: Sequence[ValidationIssue], path: Optional[str] = None) -> RenderableType:
    """Issue list followed by an error/warning summary."""
    if not issues:
        return Text("✓ No issues found!", style="green")

    errors = sum(1 for issue in issues if issue.is_error)
    parts: List[RenderableType] = []
    if path:
        parts.append(Text(f"File: {path}", style="dim"))
    parts.extend(format_issue(issue) for issue in issues)
    parts.append(Text(f"Summary: {errors} error(s), {len(issues) - errors} warning(s)", style="dim"))
    return Group(*parts)


def format_templates(templates: Mapping[str, TaskTemplate]) -> RenderableType:
    table = Table(title="Available Templates", title_justify="left", header_style="bold cyan")
    table.add_column("Template", style="cyan", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Effort", no_wrap=True)
    table.add_column("Name")
    for name, template in templates.items():
        table.add_row(name, format_level(template.level), template.effort, Text(template.name))
    return table
