"""Shared fixtures for the task manager tests."""

import logging

import pytest

from task_manager.config import LOG_FILE_ENV, LOG_LEVEL_ENV, PLATFORM_ENV, ROOT_ENV, STORAGE_DIR_ENV
from task_manager.service import TaskStore
from task_manager.task_logging import LOGGER_NAME, observability_hooks, performance_monitor


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep PLAND_* variables and logger state from leaking between tests."""
    for name in (ROOT_ENV, STORAGE_DIR_ENV, PLATFORM_ENV, LOG_LEVEL_ENV, LOG_FILE_ENV):
        monkeypatch.delenv(name, raising=False)
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    performance_monitor.clear()
    observability_hooks.hooks.clear()


@pytest.fixture
def frontend_store(tmp_path):
    return TaskStore("checkout", "frontend", tmp_path)


@pytest.fixture
def backend_store(tmp_path):
    return TaskStore("checkout", "backend", tmp_path)


@pytest.fixture
def task_payload():
    return {"name": "Build cart", "level": "high", "component": "Cart"}
