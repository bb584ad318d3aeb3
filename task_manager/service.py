"""Task store: the task collection of one plan and platform.

The store loads the whole plan file, applies at most one change and writes
the whole file back. There is no file locking; two processes changing the
same plan at once can lose an update (last writer wins).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import Settings, resolve_root
from .errors import NotFoundError, PlanNotFoundError, TaskManagerError, ValidationError
from .identifiers import next_task_id
from .models import (
    DEFAULT_EFFORT,
    PLATFORMS,
    PRIORITIES,
    PRIORITY_WEIGHTS,
    ChainEntry,
    DependencyChain,
    InitResult,
    ProgressStats,
    Task,
    TaskMetadata,
    ValidationIssue,
    utc_timestamp,
)
from .repository import TaskRepository
from .task_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    log_plan_initialized,
    log_plan_validated,
    log_task_created,
    log_task_removed,
    log_task_updated,
)
from .validator import (
    cycle_members,
    dependency_graph,
    find_cycles,
    normalize_payload,
    validate_task_create,
    validate_task_record,
    validate_task_update,
    validate_tasks,
)

logger = logging.getLogger("task_manager.service")

UNKNOWN = "unknown"


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


class TaskStore:
    """Manage the tasks of one ``(plan_name, platform)`` pair.

    Both identity values are required and checked here. The platform given to
    the constructor is the only source used for ID prefixes; metadata read
    back from the file never overrides it.
    """

    def __init__(
        self,
        plan_name: str,
        platform: str,
        root: Path | str | None = None,
        *,
        settings: Optional[Settings] = None,
    ):
        issues: List[ValidationIssue] = []
        if not isinstance(plan_name, str) or not plan_name.strip():
            issues.append(ValidationIssue("field", "error", "plan_name: is required", field="plan_name"))
        elif "/" in plan_name or "\\" in plan_name or plan_name in (".", ".."):
            issues.append(ValidationIssue(
                "field", "error", f"plan_name: must be a plain directory name (got {plan_name!r})",
                field="plan_name",
            ))
        if platform not in PLATFORMS:
            issues.append(ValidationIssue(
                "field", "error", f"platform: must be 'frontend' or 'backend' (got {platform!r})",
                field="platform",
            ))
        if issues:
            raise ValidationError("plan-name and platform must be specified", issues)

        settings = settings or Settings.from_env()
        self.plan_name = plan_name
        self.platform = platform
        self.root = resolve_root(str(root) if root is not None else None, settings)
        self.repository = TaskRepository(plan_name, platform, self.root, settings.storage_dir)
        self.tasks: List[Task] = []
        self.metadata: Optional[TaskMetadata] = None
        self.load()

    @property
    def path(self) -> Path:
        return self.repository.path

    def load(self) -> None:
        """(Re)load tasks and metadata; a missing file means an empty plan."""
        self.tasks, self.metadata = self.repository.load()

    def save(self) -> None:
        self.repository.save(self.tasks, self.metadata)

    def display_metadata(self) -> Tuple[str, str]:
        """Plan name and platform recorded in the file, or ``unknown`` for both."""
        if self.metadata is None:
            return UNKNOWN, UNKNOWN
        return self.metadata.plan_name, self.metadata.platform

    def get_next_id(self) -> str:
        """Next free ID for this store's platform."""
        return next_task_id(self.platform, [task.id for task in self.tasks])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_plan(self) -> None:
        if not self.repository.exists():
            raise PlanNotFoundError(self.plan_name, self.platform, self.path)

    def _ensure_acyclic(self, tasks: List[Task], task_id: str) -> None:
        cycles = [cycle for cycle in find_cycles(dependency_graph(tasks)) if task_id in cycle_members(cycle)]
        if cycles:
            raise ValidationError(
                f"Dependencies of {task_id} would create a cycle",
                [
                    ValidationIssue(
                        type="circular",
                        severity="error",
                        message=f"Circular dependency: {' -> '.join(cycle)}",
                        task_id=task_id,
                        field="dependencies",
                    )
                    for cycle in cycles
                ],
            )

    def _context(self, operation: str, **extra: Any) -> Dict[str, Any]:
        return {"operation": operation, "plan_name": self.plan_name, "platform": self.platform, **extra}

    @log_performance("task_create")
    def create(self, payload: Mapping[str, Any]) -> Task:
        """Validate ``payload``, assign the next ID and persist the new task.

        Not safe against concurrent invocations on the same plan.
        """
        try:
            with log_operation("task_create", plan_name=self.plan_name, platform=self.platform):
                issues = validate_task_create(payload)
                if issues:
                    raise ValidationError(f"Invalid task data: {len(issues)} issue(s)", issues)

                data = normalize_payload(payload)
                now = utc_timestamp()
                task = Task(
                    id=self.get_next_id(),
                    name=data["name"],
                    level=data["level"],
                    component=data["component"],
                    effort=data.get("effort") or DEFAULT_EFFORT,
                    ready=data.get("ready") is not False,
                    done=data.get("done") is True,
                    dependencies=_unique(data.get("dependencies") or []),
                    files=data.get("files") or "",
                    tests_success=list(data.get("tests_success") or []),
                    acceptance_criteria=list(data.get("acceptance_criteria") or []),
                    implementation_notes=data.get("implementation_notes") or "",
                    created_at=now,
                    updated_at=now,
                )

                candidate = [*self.tasks, task]
                self._ensure_acyclic(candidate, task.id)
                self.tasks = candidate
                self.save()

            logger.info(f"Created task {task.id} in {self.path}")
            log_task_created(self.plan_name, self.platform, task.id, level=task.level)
            return task

        except TaskManagerError:
            raise
        except Exception as e:
            log_error_with_context(e, self._context("task_create"))
            raise

    @log_performance("task_update")
    def update(self, task_id: str, payload: Mapping[str, Any]) -> Task:
        """Apply ``payload`` to an existing task and persist.

        Raises ``PlanNotFoundError`` for a plan that was never written and
        ``NotFoundError`` for an unknown task. Not safe against concurrent
        invocations on the same plan.
        """
        try:
            with log_operation("task_update", plan_name=self.plan_name, platform=self.platform, task_id=task_id):
                self._require_plan()
                task = self.repository.find_by_id(self.tasks, task_id)
                if task is None:
                    raise NotFoundError("Task", task_id)

                issues = validate_task_update(payload, task_id)
                if issues:
                    raise ValidationError(f"Invalid update data: {len(issues)} issue(s)", issues)

                changes = {
                    key: value
                    for key, value in normalize_payload(payload).items()
                    if key != "id" and value is not None
                }
                if "dependencies" in changes:
                    changes["dependencies"] = _unique(changes["dependencies"])
                merged = replace(task, **changes)

                record_issues = [issue for issue in validate_task_record(merged) if issue.field != "id"]
                if record_issues:
                    raise ValidationError(f"Invalid task {task_id}: {len(record_issues)} issue(s)", record_issues)

                candidate = [merged if existing is task else existing for existing in self.tasks]
                self._ensure_acyclic(candidate, task_id)
                merged.updated_at = utc_timestamp()
                self.tasks = candidate
                self.save()

            logger.info(f"Updated task {task_id} in {self.path}")
            log_task_updated(self.plan_name, self.platform, task_id, fields=sorted(changes))
            return merged

        except TaskManagerError:
            raise
        except Exception as e:
            log_error_with_context(e, self._context("task_update", task_id=task_id))
            raise

    @log_performance("task_remove")
    def remove(self, task_id: str) -> Tuple[Task, List[Task]]:
        """Delete a task; returns it together with the tasks that depended on it."""
        self._require_plan()
        task = self.repository.find_by_id(self.tasks, task_id)
        if task is None:
            raise NotFoundError("Task", task_id)

        dependents = self.repository.find_dependents(self.tasks, task_id)
        if dependents:
            logger.warning(
                f"{len(dependents)} task(s) depend on {task_id}: "
                + ", ".join(dependent.id for dependent in dependents)
            )

        self.tasks = [existing for existing in self.tasks if existing is not task]
        self.save()
        log_task_removed(self.plan_name, self.platform, task_id, dependents=[d.id for d in dependents])
        return task, dependents

    def init(self, framework: Optional[str] = None, deps: Optional[List[str]] = None) -> InitResult:
        """Write plan metadata, unless the plan already holds tasks.

        Re-initializing a plan with tasks changes nothing and reports a
        warning instead of silently succeeding.
        """
        if self.repository.exists() and self.tasks:
            warning = (
                f"Task file already exists with {len(self.tasks)} task(s): {self.path}. "
                "Skipping initialization."
            )
            logger.warning(warning)
            return InitResult(initialized=False, path=self.path, metadata=self.metadata, warning=warning)

        self.metadata = TaskMetadata(
            plan_name=self.plan_name,
            platform=self.platform,
            framework=framework or UNKNOWN,
            current_dependencies=list(deps or []),
        )
        self.save()
        logger.info(f"Initialized {self.path}")
        log_plan_initialized(self.plan_name, self.platform, framework=self.metadata.framework)
        return InitResult(initialized=True, path=self.path, metadata=self.metadata)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, task_id: str) -> Optional[Task]:
        return self.repository.find_by_id(self.tasks, task_id)

    def require(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def list_tasks(
        self,
        level: Optional[str] = None,
        done: Optional[bool] = None,
        ready: Optional[bool] = None,
        foundation: bool = False,
    ) -> List[Task]:
        """Filter tasks; sorted by priority (critical first) then ID."""
        if level is not None and level not in PRIORITIES:
            raise ValidationError(
                f"Invalid level filter: {level}",
                [ValidationIssue("field", "error", f"level: must be one of {', '.join(PRIORITIES)}", field="level")],
            )
        filtered = [
            task for task in self.tasks
            if (level is None or task.level == level)
            and (done is None or task.done == done)
            and (ready is None or task.ready == ready)
            and (not foundation or task.is_foundation())
        ]
        filtered.sort(key=lambda task: (-PRIORITY_WEIGHTS.get(task.level, 0), task.id))
        return filtered

    def get_chain(self, task_id: str) -> DependencyChain:
        """Direct and transitive dependencies plus direct dependents of a task."""
        task = self.require(task_id)
        by_id = {existing.id: existing for existing in self.tasks}
        chain = DependencyChain(task_id=task.id)

        direct = [dep for dep in task.dependencies if dep in by_id]
        for dep in direct:
            chain.dependencies.append(ChainEntry(dep, by_id[dep].name, direct=True))

        seen = set(direct) | {task.id}
        pending = list(direct)
        while pending:
            current = by_id[pending.pop(0)]
            for dep in current.dependencies:
                if dep in by_id and dep not in seen:
                    seen.add(dep)
                    pending.append(dep)
                    chain.dependencies.append(ChainEntry(dep, by_id[dep].name, direct=False))

        for dependent in self.repository.find_dependents(self.tasks, task.id):
            chain.dependents.append(ChainEntry(dependent.id, dependent.name, direct=True))

        # dependencies first, ending with the task itself
        ordered: List[str] = []
        visited: set[str] = set()
        stack: List[Tuple[str, bool]] = [(task.id, False)]
        while stack:
            current_id, expanded = stack.pop()
            if expanded:
                ordered.append(current_id)
                continue
            if current_id in visited:
                continue
            visited.add(current_id)
            stack.append((current_id, True))
            for dep in reversed(by_id[current_id].dependencies):
                if dep in by_id and dep not in visited:
                    stack.append((dep, False))
        chain.full_chain = ordered
        return chain

    def get_progress(self) -> ProgressStats:
        stats = ProgressStats(total=len(self.tasks))
        for task in self.tasks:
            stats.by_level[task.level] = stats.by_level.get(task.level, 0) + 1
            if task.done:
                stats.done += 1
            elif task.ready:
                stats.ready += 1
            else:
                stats.pending += 1
            if task.is_foundation():
                stats.foundation += 1
            else:
                stats.blocked += 1
        return stats

    def validate(self) -> List[ValidationIssue]:
        """Every field and dependency-graph issue across the stored tasks."""
        issues = validate_tasks(self.tasks)
        if self.metadata is not None and (
            self.metadata.plan_name != self.plan_name or self.metadata.platform != self.platform
        ):
            issues.append(ValidationIssue(
                type="data",
                severity="warning",
                message=(
                    f"File metadata ({self.metadata.plan_name}/{self.metadata.platform}) does not match "
                    f"the requested plan ({self.plan_name}/{self.platform})"
                ),
            ))

        error_count = sum(1 for issue in issues if issue.is_error)
        log_plan_validated(self.plan_name, self.platform, error_count, len(issues) - error_count)
        return issues
