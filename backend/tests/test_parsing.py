"""Tests for reading JSON objects and numbers out of model replies."""

import pytest

from taskflow.ai.parsing import clamp, extract_json_object, non_negative_int


class TestExtractJsonObject:
    def test_fenced_block(self):
        assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose_and_nesting(self):
        text = 'Sure! {"a": {"b": [1, 2]}} Hope this helps.'
        assert extract_json_object(text) == {"a": {"b": [1, 2]}}

    def test_first_to_last_brace_is_one_span(self):
        assert extract_json_object('{"a": 1} and {"b": 2}') is None

    @pytest.mark.parametrize("text", [None, "", "no json", "[1, 2]", "{not json}"])
    def test_unreadable(self, text):
        assert extract_json_object(text) is None


class TestClamp:
    def test_in_range_string(self):
        assert clamp("0.4", 0.0, 1.0, 0.5) == pytest.approx(0.4)

    def test_bounds(self):
        assert clamp(5, 0.0, 1.0, 0.5) == 1.0
        assert clamp(-3, 0.0, 1.0, 0.5) == 0.0

    def test_falsy_and_invalid_take_default(self):
        assert clamp(None, 0.0, 1.0, 0.5) == 0.5
        assert clamp(0, 0.5, 200.0, 8.0) == 8.0
        assert clamp("abc", 0.0, 1.0, 0.3) == 0.3
        assert clamp(float("nan"), 0.0, 1.0, 0.2) == 0.2

    def test_default_is_clamped_too(self):
        assert clamp(None, 0.5, 200.0, 0.0) == 0.5


def test_non_negative_int():
    assert non_negative_int("3.7") == 3
    assert non_negative_int(-2) == 0
    assert non_negative_int(None) == 0
    assert non_negative_int("soon") == 0
    assert non_negative_int(float("inf")) == 0
