"""Unit tests for homefs.text.patch."""

import pytest

from homefs.text.patch import (
    DeleteOp,
    InsertOp,
    PatchError,
    ReplaceOp,
    ReplaceStringOp,
    apply_patches,
    parse_patches,
)


def _apply(text: str, patches: list[dict]) -> str:
    lines, _ = apply_patches(text.split("\n"), parse_patches(patches))
    return "\n".join(lines)


@pytest.mark.unit
@pytest.mark.text
class TestParsePatches:
    """Tests for parse_patches validation."""

    def test_parses_each_operation_type(self):
        ops = parse_patches(
            [
                {"op": "replace", "start_line": 1, "end_line": 2, "content": "x"},
                {"op": "insert", "start_line": 1, "content": "y"},
                {"op": "delete", "start_line": 3},
                {"op": "replace_string", "search": "a", "replace": "b", "count": -1},
            ]
        )
        assert [type(op) for op in ops] == [ReplaceOp, InsertOp, DeleteOp, ReplaceStringOp]

    def test_missing_op(self):
        with pytest.raises(PatchError) as exc_info:
            parse_patches([{"start_line": 1}])
        assert exc_info.value.index == 0
        assert "'op' is required" in str(exc_info.value)

    def test_unknown_op_reports_index(self):
        with pytest.raises(PatchError) as exc_info:
            parse_patches([{"op": "insert", "start_line": 1}, {"op": "rename"}])
        assert exc_info.value.index == 1
        assert str(exc_info.value).startswith("Patch 1: unknown operation 'rename'")

    def test_non_object_patch(self):
        with pytest.raises(PatchError):
            parse_patches(["delete line 1"])

    def test_bad_field_type(self):
        with pytest.raises(PatchError) as exc_info:
            parse_patches([{"op": "delete", "start_line": "first"}])
        assert "invalid fields" in str(exc_info.value)

    def test_numeric_strings_are_coerced(self):
        (op,) = parse_patches([{"op": "delete", "start_line": "2", "end_line": "3"}])
        assert (op.start_line, op.end_line) == (2, 3)


@pytest.mark.unit
@pytest.mark.text
class TestApplyPatches:
    """Tests for apply_patches semantics."""

    def test_operations_see_previous_results(self):
        """Test delete 2-3 followed by insert before line 2."""
        patches = [
            {"op": "delete", "start_line": 2, "end_line": 3},
            {"op": "insert", "start_line": 2, "content": "X"},
        ]
        assert _apply("1\n2\n3\n4\n", patches) == "1\nX\n4\n"

    def test_replace_range(self):
        patches = [{"op": "replace", "start_line": 2, "end_line": 3, "content": "b\nc\nd"}]
        assert _apply("a\nB\nC\ne", patches) == "a\nb\nc\nd\ne"

    def test_replace_defaults_end_to_start(self):
        assert _apply("a\nb\nc", [{"op": "replace", "start_line": 2, "content": "B"}]) == "a\nB\nc"

    def test_replace_with_empty_content_removes_lines(self):
        patches = [{"op": "replace", "start_line": 1, "end_line": 2, "content": ""}]
        assert _apply("a\nb\nc", patches) == "c"

    def test_insert_past_end_appends(self):
        assert _apply("a\nb", [{"op": "insert", "start_line": 10, "content": "z"}]) == "a\nb\nz"

    def test_insert_multiline(self):
        assert _apply("a\nd", [{"op": "insert", "start_line": 2, "content": "b\nc"}]) == "a\nb\nc\nd"

    def test_delete_single_line(self):
        assert _apply("a\nb\nc", [{"op": "delete", "start_line": 1}]) == "b\nc"

    def test_replace_string_first_only_by_default(self):
        patches = [{"op": "replace_string", "search": "foo", "replace": "bar"}]
        assert _apply("foo foo\nfoo", patches) == "bar foo\nfoo"

    def test_replace_string_all(self):
        patches = [{"op": "replace_string", "search": "foo", "replace": "bar", "count": -1}]
        assert _apply("foo foo\nfoo", patches) == "bar bar\nbar"

    def test_replace_string_across_lines(self):
        patches = [{"op": "replace_string", "search": "a\nb", "replace": "ab"}]
        assert _apply("a\nb\nc", patches) == "ab\nc"

    def test_reports(self):
        ops = parse_patches(
            [
                {"op": "replace", "start_line": 1, "end_line": 2, "content": "x"},
                {"op": "replace_string", "search": "c", "replace": "C", "count": 5},
            ]
        )
        _, reports = apply_patches(["a", "b", "c", "c"], ops)

        assert reports[0] == {
            "op": "replace",
            "start": 1,
            "end": 2,
            "removed_count": 2,
            "added_count": 1,
        }
        assert reports[1]["occurrences"] == 2
        assert reports[1]["replaced_count"] == 2

    def test_input_not_mutated(self):
        original = ["a", "b"]
        apply_patches(original, parse_patches([{"op": "delete", "start_line": 1}]))
        assert original == ["a", "b"]

    @pytest.mark.parametrize(
        "patch",
        [
            {"op": "replace", "start_line": 0, "content": "x"},
            {"op": "replace", "start_line": 3, "end_line": 2, "content": "x"},
            {"op": "delete", "start_line": 0},
            {"op": "delete", "start_line": 2, "end_line": 1},
            {"op": "insert", "start_line": 0, "content": "x"},
        ],
    )
    def test_invalid_ranges(self, patch):
        with pytest.raises(PatchError):
            _apply("a\nb\nc", [patch])

    def test_search_not_found(self):
        with pytest.raises(PatchError) as exc_info:
            _apply("abc", [{"op": "replace_string", "search": "zzz", "replace": "y"}])
        assert "search string not found" in str(exc_info.value)

    def test_empty_search_rejected(self):
        with pytest.raises(PatchError):
            _apply("abc", [{"op": "replace_string", "search": "", "replace": "y"}])

    @pytest.mark.parametrize("count", [0, -2])
    def test_invalid_count(self, count):
        with pytest.raises(PatchError):
            _apply("abc", [{"op": "replace_string", "search": "a", "replace": "y", "count": count}])

    def test_failure_reports_failing_index(self):
        patches = [
            {"op": "delete", "start_line": 1},
            {"op": "replace_string", "search": "missing", "replace": ""},
        ]
        with pytest.raises(PatchError) as exc_info:
            _apply("a\nb", patches)
        assert exc_info.value.index == 1
