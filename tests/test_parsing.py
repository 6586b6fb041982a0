"""Tests for sciref.parsing: recovering JSON arrays from model output."""

import pytest

from sciref.errors import MalformedPayload
from sciref.parsing import extract_json_array, parse_candidates, strip_fences


class TestStripFences:
    def test_json_fence(self):
        assert strip_fences('```json\n[1]\n```') == "[1]"

    def test_plain_fence(self):
        assert strip_fences('```\n[1]\n```') == "[1]"

    def test_no_fence(self):
        assert strip_fences("  [1]  ") == "[1]"


class TestParseCandidates:
    def test_clean_array(self):
        assert parse_candidates('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_fenced_array_with_chatter(self):
        text = 'Here are your references:\n```json\n[{"title": "T"}]\n```\nHope this helps!'
        assert parse_candidates(text) == [{"title": "T"}]

    def test_truncated_drops_incomplete_trailing_object(self):
        text = '```json\n[{"a":1},{"a":2'
        assert parse_candidates(text) == [{"a": 1}]

    def test_unclosed_array_keeps_complete_objects(self):
        # The closing bracket is missing but both objects are complete.
        text = '```json\n[{"a":1},{"a":2}\n'
        assert parse_candidates(text) == [{"a": 1}, {"a": 2}]

    def test_truncated_mid_string(self):
        text = '[{"title": "One", "year": "2020"}, {"title": "Tw'
        assert parse_candidates(text) == [{"title": "One", "year": "2020"}]

    def test_no_bracket_fails(self):
        with pytest.raises(MalformedPayload):
            parse_candidates('{"title": "not an array"}')

    def test_empty_text_fails(self):
        with pytest.raises(MalformedPayload):
            parse_candidates("")

    def test_unclosed_without_any_object_fails(self):
        with pytest.raises(MalformedPayload, match="unrecoverable"):
            parse_candidates('[{"title": "cut off')

    def test_invalid_json_keeps_raw_text(self):
        with pytest.raises(MalformedPayload) as exc_info:
            parse_candidates("[{'single': 'quotes'}]")
        assert exc_info.value.raw == "[{'single': 'quotes'}]"

    def test_skips_non_object_items(self):
        assert parse_candidates('[{"a": 1}, "stray", 3]') == [{"a": 1}]

    def test_empty_array(self):
        assert parse_candidates("[]") == []


class TestExtractJsonArray:
    def test_outermost_brackets(self):
        text = 'prefix [{"authors": ["A", "B"]}] suffix'
        assert extract_json_array(text) == '[{"authors": ["A", "B"]}]'

    def test_appends_closing_bracket_on_truncation(self):
        assert extract_json_array('[{"a":1},{"a"') == '[{"a":1}]'
