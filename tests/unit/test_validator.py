"""Unit tests for payload, record and dependency graph validation."""

import json

import pytest

from task_manager.models import Task
from task_manager.validator import (
    cycle_members,
    detect_circular_dependencies,
    find_cycles,
    find_dangling_dependencies,
    find_duplicate_ids,
    normalize_payload,
    validate_jsonl_file,
    validate_task_create,
    validate_task_id,
    validate_task_record,
    validate_task_update,
    validate_tasks,
)


def make_task(task_id, *dependencies, **overrides):
    fields = {"id": task_id, "name": f"Task {task_id}", "level": "medium", "component": "Core",
              "dependencies": list(dependencies)}
    fields.update(overrides)
    return Task(**fields)


class TestCreatePayload:
    """Creation payload validation reports every problem."""

    def test_valid_payload(self):
        assert validate_task_create({"name": "Build cart", "level": "high", "component": "Cart"}) == []

    def test_missing_name_and_invalid_level_gives_two_issues(self):
        issues = validate_task_create({"level": "urgent", "component": "Cart"})

        assert len(issues) == 2
        assert {issue.field for issue in issues} == {"name", "level"}
        assert all(issue.severity == "error" for issue in issues)

    def test_every_required_field_reported(self):
        issues = validate_task_create({})

        assert [issue.message for issue in issues] == [
            "name: is required",
            "level: is required",
            "component: is required",
        ]

    def test_id_cannot_be_supplied(self):
        issues = validate_task_create({"id": "fe-0009", "name": "x", "level": "low", "component": "c"})

        assert [issue.field for issue in issues] == ["id"]

    def test_unknown_field(self):
        issues = validate_task_create({"name": "x", "level": "low", "component": "c", "owner": "sam"})

        assert issues[0].message == "owner: unknown field"

    @pytest.mark.parametrize(
        "field_name, value",
        [
            ("name", "   "),
            ("effort", "XXL"),
            ("ready", "yes"),
            ("files", 3),
            ("tests_success", "renders"),
            ("dependencies", ["fe-1"]),
            ("dependencies", ["xx-0001"]),
        ],
    )
    def test_invalid_optional_fields(self, field_name, value):
        payload = {"name": "x", "level": "low", "component": "c", field_name: value}

        issues = validate_task_create(payload)

        assert [issue.field for issue in issues] == [field_name]

    def test_aliases_are_normalized(self):
        payload = {"name": "x", "priority": "critical", "component": "c", "blocked_by": ["fe-0001"],
                   "estimated_effort": "L"}

        assert validate_task_create(payload) == []
        assert normalize_payload(payload) == {
            "name": "x",
            "level": "critical",
            "component": "c",
            "dependencies": ["fe-0001"],
            "effort": "L",
        }

    def test_canonical_name_wins_over_alias(self):
        assert normalize_payload({"level": "low", "priority": "high"})["level"] == "low"

    def test_non_mapping_payload(self):
        assert validate_task_create(["name"])[0].message == "payload: must be an object"


class TestUpdatePayload:
    """Update payloads: all fields optional, id immutable."""

    def test_partial_update_is_valid(self):
        assert validate_task_update({"done": True}, "fe-0001") == []

    def test_changing_id_is_rejected(self):
        issues = validate_task_update({"id": "fe-0002"}, "fe-0001")

        assert issues[0].message == "id: is immutable"
        assert issues[0].task_id == "fe-0001"

    def test_same_id_is_accepted(self):
        assert validate_task_update({"id": "fe-0001", "name": "Renamed"}, "fe-0001") == []

    def test_all_bad_fields_reported(self):
        issues = validate_task_update({"level": "urgent", "effort": "huge", "done": "no"}, "fe-0001")

        assert {issue.field for issue in issues} == {"level", "effort", "done"}


class TestRecordValidation:
    """Checks on complete task records."""

    def test_task_id_format(self):
        assert validate_task_id("fe-0001") == []
        assert validate_task_id("be-12345") == []
        assert len(validate_task_id("fe-1")) == 1
        assert len(validate_task_id("task-0001")) == 1

    def test_record_reports_each_bad_field(self):
        task = make_task("legacy-1", "bad", name="", effort="XXL")

        fields = {issue.field for issue in validate_task_record(task)}

        assert fields == {"id", "name", "effort", "dependencies"}

    def test_duplicate_ids(self):
        issues = find_duplicate_ids([make_task("fe-0001"), make_task("fe-0001")])

        assert [issue.message for issue in issues] == ["Duplicate task ID: fe-0001"]


class TestCycleDetection:
    """Depth-first cycle search."""

    def test_acyclic_graph(self):
        assert find_cycles({"A": ["B"], "B": ["C"], "C": []}) == []

    def test_three_node_cycle(self):
        assert find_cycles({"A": ["B"], "B": ["C"], "C": ["A"]}) == [["A", "B", "C", "A"]]

    def test_self_dependency(self):
        assert find_cycles({"A": ["A"]}) == [["A", "A"]]

    def test_cycle_path_starts_at_walk_root(self):
        assert find_cycles({"X": ["A"], "A": ["B"], "B": ["A"]}) == [["X", "A", "B", "A"]]

    def test_cycle_members_drop_the_lead_in(self):
        assert cycle_members(["X", "A", "B", "A"]) == ["A", "B"]
        assert cycle_members(["A", "A"]) == ["A"]

    def test_independent_cycles_all_reported(self):
        cycles = find_cycles({"A": ["B"], "B": ["A"], "C": ["D"], "D": ["C"]})

        assert cycles == [["A", "B", "A"], ["C", "D", "C"]]

    def test_referenced_only_nodes_have_no_edges(self):
        assert find_cycles({"A": ["Z"]}) == []

    def test_shared_subgraph_is_not_reported_twice(self):
        graph = {"A": ["C"], "B": ["C"], "C": ["D"], "D": ["C"]}

        assert find_cycles(graph) == [["A", "C", "D", "C"]]

    def test_long_chain_does_not_recurse(self):
        size = 5000
        graph = {f"n{i}": [f"n{i + 1}"] for i in range(size)}
        graph[f"n{size}"] = ["n0"]

        cycles = find_cycles(graph)

        assert len(cycles) == 1
        assert len(cycles[0]) == size + 2

    def test_circular_issue_message(self):
        tasks = [make_task("fe-0001", "fe-0002"), make_task("fe-0002", "fe-0003"), make_task("fe-0003", "fe-0001")]

        issues = detect_circular_dependencies(tasks)

        assert len(issues) == 1
        assert issues[0].type == "circular"
        assert issues[0].severity == "error"
        assert issues[0].message == "Circular dependency: fe-0001 -> fe-0002 -> fe-0003 -> fe-0001"

    def test_circular_issue_names_walk_root(self):
        tasks = [make_task("fe-0001", "fe-0002"), make_task("fe-0002", "fe-0003"), make_task("fe-0003", "fe-0002")]

        issues = validate_tasks(tasks)

        assert [(issue.message, issue.task_id) for issue in issues] == [
            ("Circular dependency: fe-0001 -> fe-0002 -> fe-0003 -> fe-0002", "fe-0001")
        ]


class TestDanglingDependencies:
    """References to tasks that do not exist."""

    def test_dangling_reference(self):
        issues = find_dangling_dependencies([make_task("fe-0001", "fe-0099")])

        assert len(issues) == 1
        assert issues[0].type == "dangling-dependency"
        assert issues[0].severity == "error"
        assert issues[0].message == "Task fe-0001 depends on non-existent task fe-0099"

    def test_validate_tasks_collects_everything(self):
        tasks = [
            make_task("fe-0001", "fe-0002"),
            make_task("fe-0002", "fe-0001"),
            make_task("fe-0003", "fe-0099", level="urgent"),
        ]

        types = sorted(issue.type for issue in validate_tasks(tasks))

        assert types == ["circular", "dangling-dependency", "field"]


class TestJsonlFileValidation:
    """Line-level validation of raw task files."""

    def _line(self, task_id, **fields):
        record = {"id": task_id, "name": "n", "level": "low", "component": "c",
                  "created_at": "2026-01-01T00:00:00Z", "updated_at": "2026-01-02T00:00:00Z"}
        record.update(fields)
        return json.dumps(record)

    def test_wrongly_typed_values_are_structure_errors(self):
        content = "\n".join([self._line("fe-0001", done="false"), self._line("fe-0002", name=None)])

        issues = validate_jsonl_file(content)

        assert [(issue.type, issue.line, issue.task_id) for issue in issues] == [
            ("structure", 1, "fe-0001"),
            ("structure", 2, "fe-0002"),
        ]
        assert issues[0].message == "done must be a bool, got str"

    def test_clean_file(self):
        content = "\n".join([
            json.dumps({"metadata": {"plan_name": "checkout", "platform": "frontend"}}),
            self._line("fe-0001"),
            self._line("fe-0002", dependencies=["fe-0001"]),
        ])

        assert validate_jsonl_file(content) == []

    def test_reports_format_and_structure_errors_with_lines(self):
        content = "\n".join(["{not json", self._line("fe-0001", level="urgent"), "[1, 2]", '{"id": "fe-0003"}'])

        issues = validate_jsonl_file(content)

        assert [(issue.type, issue.line) for issue in issues] == [
            ("format", 1),
            ("structure", 2),
            ("structure", 3),
            ("structure", 4),
        ]

    def test_timestamp_order_warning(self):
        content = self._line("fe-0001", created_at="2026-02-01T00:00:00Z", updated_at="2026-01-01T00:00:00Z")

        issues = validate_jsonl_file(content)

        assert len(issues) == 1
        assert issues[0].type == "data"
        assert issues[0].severity == "warning"

    def test_unparsable_timestamp_warning(self):
        issues = validate_jsonl_file(self._line("fe-0001", created_at="yesterday"))

        assert [(issue.type, issue.severity) for issue in issues] == [("data", "warning")]

    def test_dependency_problems(self):
        content = "\n".join([
            self._line("fe-0001", dependencies=["fe-0002"]),
            self._line("fe-0002", dependencies=["fe-0001", "fe-0050"]),
        ])

        types = sorted(issue.type for issue in validate_jsonl_file(content))

        assert types == ["circular", "dangling-dependency"]
