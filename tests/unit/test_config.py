"""Unit tests for environment configuration and root discovery."""

from pathlib import Path

import pytest

from task_manager.config import Settings, locate_project_root, resolve_root
from task_manager.errors import ConfigurationError, TaskManagerError


class TestSettings:
    """Values read from PLAND_* variables."""

    def test_defaults(self):
        settings = Settings.from_env()

        assert settings.storage_dir == ".pland"
        assert settings.default_platform == "frontend"
        assert settings.log_level == "WARNING"
        assert settings.log_file is None
        assert settings.project_root is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PLAND_STORAGE_DIR", ".plans")
        monkeypatch.setenv("PLAND_PLATFORM", "backend")
        monkeypatch.setenv("PLAND_LOG_LEVEL", "debug")
        monkeypatch.setenv("PLAND_LOG_FILE", str(tmp_path / "tm.log"))

        settings = Settings.from_env()

        assert settings.storage_dir == ".plans"
        assert settings.default_platform == "backend"
        assert settings.log_level == "DEBUG"
        assert settings.log_file == tmp_path / "tm.log"


class TestRootResolution:
    """Root resolution order."""

    def test_explicit_root(self, tmp_path):
        assert resolve_root(str(tmp_path)) == tmp_path.resolve()

    def test_explicit_root_must_exist(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist") as excinfo:
            resolve_root(str(tmp_path / "missing"))

        assert isinstance(excinfo.value, TaskManagerError)
        assert isinstance(excinfo.value, ValueError)

    def test_environment_root(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PLAND_PROJECT_ROOT", str(tmp_path))

        assert resolve_root() == tmp_path.resolve()

    def test_environment_root_must_exist(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PLAND_PROJECT_ROOT", str(tmp_path / "missing"))

        with pytest.raises(ValueError, match="PLAND_PROJECT_ROOT"):
            resolve_root()

    def test_nearest_ancestor_with_storage(self, tmp_path, monkeypatch):
        (tmp_path / ".pland").mkdir()
        nested = tmp_path / "src" / "app"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert locate_project_root(start=nested) == tmp_path.resolve()
        assert resolve_root() == tmp_path.resolve()

    def test_falls_back_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert resolve_root() == Path.cwd().resolve()
