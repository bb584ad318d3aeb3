"""Unit tests for task identifier encoding."""

import pytest

from task_manager.identifiers import (
    ParsedTaskId,
    format_task_id,
    is_task_id,
    next_task_id,
    parse_task_id,
    prefix_for,
)


class TestPrefixes:
    """Platform to prefix mapping."""

    def test_known_platforms(self):
        assert prefix_for("frontend") == "fe"
        assert prefix_for("backend") == "be"

    def test_unknown_platform_raises(self):
        with pytest.raises(ValueError, match="Unknown platform"):
            prefix_for("mobile")


class TestParseTaskId:
    """Parsing never raises; non-IDs come back as None."""

    def test_parse_frontend_id(self):
        assert parse_task_id("fe-0007") == ParsedTaskId("frontend", 7)

    def test_parse_backend_id(self):
        parsed = parse_task_id("be-0042")
        assert parsed.platform == "backend"
        assert parsed.number == 42

    def test_parse_wide_number(self):
        assert parse_task_id("fe-12345") == ParsedTaskId("frontend", 12345)

    @pytest.mark.parametrize("value", ["xx-0001", "fe-abc", "fe0001", "FE-0001", "fe-", "", None, 12])
    def test_non_ids_return_none(self, value):
        assert parse_task_id(value) is None
        assert not is_task_id(value)


class TestFormatTaskId:
    """Formatting pads to four digits."""

    def test_pads_small_numbers(self):
        assert format_task_id("frontend", 1) == "fe-0001"
        assert format_task_id("backend", 123) == "be-0123"

    def test_wide_numbers_are_not_truncated(self):
        assert format_task_id("backend", 10000) == "be-10000"

    def test_rejects_non_positive_numbers(self):
        with pytest.raises(ValueError):
            format_task_id("frontend", 0)

    def test_parse_inverts_format(self):
        for platform in ("frontend", "backend"):
            for number in (1, 9, 10, 999, 1000, 9999, 10000):
                assert parse_task_id(format_task_id(platform, number)) == (platform, number)


class TestNextTaskId:
    """Allocation of the next free ID per platform."""

    def test_empty_collection_starts_at_one(self):
        assert next_task_id("frontend", []) == "fe-0001"
        assert next_task_id("backend", []) == "be-0001"

    def test_other_platform_ids_are_ignored(self):
        assert next_task_id("backend", ["fe-0001", "fe-0002"]) == "be-0001"

    def test_uses_maximum_not_count(self):
        assert next_task_id("frontend", ["fe-0001", "fe-0005", "fe-0003"]) == "fe-0006"

    def test_unparsable_prefixed_entries_count_as_zero(self):
        assert next_task_id("frontend", ["fe-abc", "fe-0002"]) == "fe-0003"
        assert next_task_id("frontend", ["fe-legacy"]) == "fe-0001"

    def test_rolls_over_to_five_digits(self):
        assert next_task_id("frontend", ["fe-9999"]) == "fe-10000"
