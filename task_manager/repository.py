"""File repository for one plan/platform task file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .config import DEFAULT_STORAGE_DIR
from .models import Task, TaskMetadata
from .ndjson import read_ndjson, write_ndjson

logger = logging.getLogger("task_manager.repository")


class TaskRepository:
    """Read and overwrite ``<root>/<storage_dir>/<plan>/<platform>-tasks.jsonl``."""

    def __init__(
        self,
        plan_name: str,
        platform: str,
        root: Path | str = ".",
        storage_dir: str = DEFAULT_STORAGE_DIR,
    ):
        self.plan_name = plan_name
        self.platform = platform
        self.root = Path(root)
        self.path = self.root / storage_dir / plan_name / f"{platform}-tasks.jsonl"

    def exists(self) -> bool:
        """Check if the task file has been written."""
        return self.path.exists()

    def load(self) -> Tuple[List[Task], Optional[TaskMetadata]]:
        """Load tasks and metadata, skipping malformed lines."""
        tasks: List[Task] = []
        metadata: Optional[TaskMetadata] = None

        for entry in read_ndjson(self.path):
            line_no = entry.index + 1
            if not entry.ok:
                logger.warning(f"Skipping malformed line {line_no} in {self.path}: {entry.error}")
                continue
            if not isinstance(entry.data, dict):
                logger.warning(f"Skipping non-object line {line_no} in {self.path}")
                continue
            if "metadata" in entry.data:
                try:
                    metadata = TaskMetadata.from_dict(entry.data["metadata"])
                except (KeyError, ValueError, TypeError) as e:
                    logger.warning(f"Ignoring invalid metadata on line {line_no} in {self.path}: {e}")
                continue
            try:
                tasks.append(Task.from_dict(entry.data))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid task on line {line_no} in {self.path}: {e}")

        logger.debug(f"Loaded {len(tasks)} tasks from {self.path}")
        return tasks, metadata

    def save(self, tasks: List[Task], metadata: Optional[TaskMetadata] = None) -> None:
        """Overwrite the task file with the full collection."""
        write_ndjson(
            self.path,
            (task.to_dict() for task in tasks),
            metadata.to_dict() if metadata else None,
        )
        logger.debug(f"Saved {len(tasks)} tasks to {self.path}")

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")

    @staticmethod
    def find_by_id(tasks: List[Task], task_id: str) -> Optional[Task]:
        return next((task for task in tasks if task.id == task_id), None)

    @staticmethod
    def find_dependents(tasks: List[Task], task_id: str) -> List[Task]:
        """Tasks that list ``task_id`` among their dependencies."""
        return [task for task in tasks if task_id in task.dependencies]
