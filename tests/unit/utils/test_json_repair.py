"""Tests for the JSON repair engine."""

import pytest

from advocate_etl.utils.json_repair import (
    REMOVED_TRAILING_COMMAS,
    find_unclosed_brackets,
    generate_closing_brackets,
    is_quote_escaped,
    parse_json,
    repair_json_structure,
)


class TestParseJson:
    """Direct parse first, repair as fallback."""

    def test_valid_json_is_not_repaired(self):
        result = parse_json('{"a": 1}')

        assert result.success is True
        assert result.data == {"a": 1}
        assert result.repaired is False
        assert result.repairs == []

    def test_trailing_comma_removed(self):
        result = parse_json('{"a":1,"b":2,}')

        assert result.success is True
        assert result.data == {"a": 1, "b": 2}
        assert result.repaired is True
        assert result.repairs == [REMOVED_TRAILING_COMMAS]

    def test_truncated_document_is_balanced(self):
        result = parse_json('{"a":[1,{"b":2')

        assert result.success is True
        assert result.data == {"a": [1, {"b": 2}]}
        assert result.repairs == ["balanced_3_brackets"]

    def test_failed_repair_reports_attempted_tags(self):
        result = parse_json('{"items": [1, 2,], "nested": {"x": true,')

        # Trailing comma at end of text is not before a closer, so it survives
        assert result.success is False
        assert result.repairs == [REMOVED_TRAILING_COMMAS, "balanced_2_brackets"]

    def test_trailing_comma_inside_truncated_document(self):
        result = parse_json('{"items": [1, 2,], "nested": {"x": true}')

        assert result.success is True
        assert result.data == {"items": [1, 2], "nested": {"x": True}}
        assert result.repairs == [REMOVED_TRAILING_COMMAS, "balanced_1_brackets"]

    def test_unrepairable_text_fails(self):
        result = parse_json("not json at all")

        assert result.success is False
        assert result.data is None
        assert result.error

    def test_deeply_nested_truncated_document_fails_cleanly(self):
        result = parse_json("[" * 100000)

        assert result.success is False
        assert result.repairs == ["balanced_100000_brackets"]
        assert result.error

    def test_deeply_nested_balanced_document_fails_cleanly(self):
        result = parse_json("[" * 100000 + "]" * 100000)

        assert result.success is False
        assert result.repairs == []
        assert result.error

    def test_repair_of_deeply_nested_text_fails_cleanly(self):
        result = repair_json_structure('{"a": ' + "[" * 50000 + "1,")

        assert result.success is False
        assert result.repaired is True
        assert result.repairs == []

    def test_empty_text_fails(self):
        result = parse_json("")

        assert result.success is False
        assert result.error


class TestBracketScan:
    """String-aware bracket tracking."""

    def test_brackets_inside_strings_are_ignored(self):
        result = repair_json_structure('{"a": "x}]{[", "b": [1')

        assert result.success is True
        assert result.data == {"a": "x}]{[", "b": [1]}
        assert result.repairs == ["balanced_2_brackets"]

    def test_escaped_quote_does_not_end_string(self):
        result = repair_json_structure('{"a": "say \\"hi\\" {", "b": 1')

        assert result.success is True
        assert result.data == {"a": 'say "hi" {', "b": 1}

    def test_escaped_backslash_before_quote_ends_string(self):
        result = repair_json_structure('{"path": "C:\\\\", "n": [1')

        assert result.success is True
        assert result.data == {"path": "C:\\", "n": [1]}

    @pytest.mark.parametrize(
        "text,index,expected",
        [
            ('"abc"', 4, False),
            ('"ab\\"', 4, True),
            ('"ab\\\\"', 5, False),
        ],
    )
    def test_is_quote_escaped(self, text, index, expected):
        assert is_quote_escaped(text, index) is expected

    def test_unclosed_openers_are_returned_in_order(self):
        assert find_unclosed_brackets('{"a": [{"b": [') == ["{", "[", "{", "["]

    def test_closed_document_has_no_unclosed_openers(self):
        assert find_unclosed_brackets('{"a": [1, 2], "b": {}}') == []

    def test_closers_are_lifo_and_newline_separated(self):
        assert generate_closing_brackets(["{", "[", "{"]) == "}\n]\n}"
