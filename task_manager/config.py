"""Environment-driven configuration and project root discovery."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError

ROOT_ENV = "PLAND_PROJECT_ROOT"
STORAGE_DIR_ENV = "PLAND_STORAGE_DIR"
PLATFORM_ENV = "PLAND_PLATFORM"
LOG_LEVEL_ENV = "PLAND_LOG_LEVEL"
LOG_FILE_ENV = "PLAND_LOG_FILE"

DEFAULT_STORAGE_DIR = ".pland"
DEFAULT_PLATFORM = "frontend"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(slots=True)
class Settings:
    """Values read from the environment at startup."""

    storage_dir: str = DEFAULT_STORAGE_DIR
    default_platform: str = DEFAULT_PLATFORM
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[Path] = None
    project_root: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        log_file = os.getenv(LOG_FILE_ENV)
        return cls(
            storage_dir=os.getenv(STORAGE_DIR_ENV) or DEFAULT_STORAGE_DIR,
            default_platform=os.getenv(PLATFORM_ENV) or DEFAULT_PLATFORM,
            log_level=(os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
            project_root=os.getenv(ROOT_ENV),
        )


def _candidate_bases(start: Optional[Path] = None) -> List[Path]:
    cwd = (start or Path.cwd()).resolve()
    return [cwd, *cwd.parents]


def locate_project_root(storage_dir: str = DEFAULT_STORAGE_DIR, start: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest ancestor of ``start`` holding ``storage_dir``."""
    for base in _candidate_bases(start):
        if (base / storage_dir).is_dir():
            return base
    return None


def resolve_root(root: Optional[str] = None, settings: Optional[Settings] = None) -> Path:
    """Pick the project root.

    Order: explicit argument, ``PLAND_PROJECT_ROOT``, nearest ancestor with a
    storage directory, then the current directory.
    """
    settings = settings or Settings.from_env()

    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ConfigurationError(f"Provided root '{root}' does not exist.")
        return resolved

    if settings.project_root:
        env_path = Path(settings.project_root).expanduser().resolve()
        if not env_path.exists():
            raise ConfigurationError(
                f"Environment variable {ROOT_ENV} points to '{settings.project_root}', which does not exist."
            )
        return env_path

    detected = locate_project_root(settings.storage_dir)
    if detected:
        return detected
    return Path.cwd().resolve()
