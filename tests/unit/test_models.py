"""Unit tests for task manager models.

This module tests serialization of the persisted records and the derived
progress and chain views.
"""

import pytest

from task_manager.models import (
    ChainEntry,
    DependencyChain,
    InitResult,
    ProgressStats,
    Task,
    TaskMetadata,
    ValidationIssue,
    utc_timestamp,
)


def make_task(**overrides):
    fields = {"id": "fe-0001", "name": "Build cart", "level": "high", "component": "Cart"}
    fields.update(overrides)
    return Task(**fields)


class TestTask:
    """Test cases for the Task model."""

    def test_defaults(self):
        task = make_task()

        assert task.effort == "M"
        assert task.ready is True
        assert task.done is False
        assert task.dependencies == []
        assert task.created_at.endswith("Z")

    def test_to_dict_from_dict(self):
        task = make_task(dependencies=["fe-0002"], tests_success=["renders"], files="src/Cart.tsx")

        restored = Task.from_dict(task.to_dict())

        assert restored == task

    def test_from_dict_missing_required_field(self):
        with pytest.raises(KeyError):
            Task.from_dict({"id": "fe-0001", "name": "x", "level": "high"})

    @pytest.mark.parametrize(
        "data",
        [
            {"id": "fe-0001", "name": "x", "level": "urgent", "component": "c"},
            {"id": "fe-0001", "name": "x", "level": "high", "component": "c", "effort": "XXL"},
            {"id": "fe-0001", "name": "x", "level": "high", "component": "c", "dependencies": "fe-0002"},
            {"id": "", "name": "x", "level": "high", "component": "c"},
            {"id": "fe-0001", "name": None, "level": "high", "component": "c"},
            {"id": "fe-0001", "name": "x", "level": "high", "component": 7},
            {"id": "fe-0001", "name": "x", "level": "high", "component": "c", "done": "false"},
            {"id": "fe-0001", "name": "x", "level": "high", "component": "c", "ready": 0},
            {"id": "fe-0001", "name": "x", "level": "high", "component": "c", "files": ["a.ts"]},
        ],
    )
    def test_from_dict_rejects_invalid_values(self, data):
        with pytest.raises(ValueError):
            Task.from_dict(data)

    def test_foundation_and_status(self):
        assert make_task().is_foundation()
        assert not make_task(dependencies=["fe-0002"]).is_foundation()
        assert make_task().status_label() == "ready"
        assert make_task(ready=False).status_label() == "pending"
        assert make_task(ready=False, done=True).status_label() == "done"


class TestTaskMetadata:
    """Test cases for plan metadata."""

    def test_round_trip(self):
        metadata = TaskMetadata(plan_name="checkout", platform="backend", framework="fastapi",
                                current_dependencies=["sqlalchemy"])

        assert TaskMetadata.from_dict(metadata.to_dict()) == metadata

    def test_rejects_unknown_platform(self):
        with pytest.raises(ValueError, match="Invalid platform"):
            TaskMetadata.from_dict({"plan_name": "checkout", "platform": "mobile"})

    def test_rejects_non_string_plan_name(self):
        with pytest.raises(ValueError, match="plan_name must be a str"):
            TaskMetadata.from_dict({"plan_name": None, "platform": "frontend"})


class TestDerivedViews:
    """Progress, chain, issue and init result views."""

    def test_completion_rate(self):
        assert ProgressStats().completion_rate == "0"
        assert ProgressStats(total=3, done=1).completion_rate == "33.3"
        assert ProgressStats(total=2, done=2).completion_rate == "100.0"

    def test_progress_to_dict(self):
        stats = ProgressStats(total=2, done=1, pending=1, foundation=1, blocked=1)

        data = stats.to_dict()

        assert data["by_status"] == {"done": 1, "ready": 0, "pending": 1, "blocked": 1}
        assert data["by_level"] == {"critical": 0, "high": 0, "medium": 0, "low": 0}
        assert data["completion_rate"] == "50.0"

    def test_chain_to_dict(self):
        chain = DependencyChain(
            task_id="fe-0003",
            dependencies=[ChainEntry("fe-0002", "API client", True)],
            full_chain=["fe-0002", "fe-0003"],
        )

        assert chain.to_dict() == {
            "task_id": "fe-0003",
            "dependencies": [{"task_id": "fe-0002", "name": "API client", "direct": True}],
            "dependents": [],
            "full_chain": ["fe-0002", "fe-0003"],
        }

    def test_validation_issue_severity(self):
        assert ValidationIssue("field", "error", "name: is required").is_error
        assert not ValidationIssue("data", "warning", "timestamps").is_error

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValueError, match="Invalid severity"):
            ValidationIssue("data", "info", "timestamps")

    def test_init_result_to_dict(self, tmp_path):
        result = InitResult(initialized=False, path=tmp_path / "fe.jsonl", warning="exists")

        assert result.to_dict() == {
            "initialized": False,
            "path": str(tmp_path / "fe.jsonl"),
            "metadata": None,
            "warning": "exists",
        }

    def test_utc_timestamp_format(self):
        stamp = utc_timestamp()

        assert stamp.endswith("Z")
        assert "T" in stamp
