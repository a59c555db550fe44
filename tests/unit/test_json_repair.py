"""Unit tests for lenient JSON parsing of model output."""

import json

import pytest

from browser_pilot.utils import parse_json_lenient, repair_json_string


class TestRepairJsonString:
    """Each common defect is repaired into parseable JSON."""

    @pytest.mark.parametrize("raw, expected", [
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ('Here is my answer: {"a": 1}', {"a": 1}),
        ('{"a": [1, 2,],}', {"a": [1, 2]}),
        ('{"done": True, "result": None}', {"done": True, "result": None}),
        ('{"text": "line one\nline two"}', {"text": "line one\nline two"}),
        ('{"a": {"b": "unterminated', {"a": {"b": "unterminated"}}),
        ('[{"go_back": {}}', [{"go_back": {}}]),
        ('{"a": 1} trailing words', {"a": 1}),
        ('{"a":', {"a": None}),
    ])
    def test_repairs(self, raw, expected):
        assert json.loads(repair_json_string(raw)) == expected

    def test_valid_json_unchanged(self):
        raw = '{"a": "b", "c": [1, 2, {"d": false}]}'
        assert json.loads(repair_json_string(raw)) == json.loads(raw)

    def test_escaped_quotes_kept(self):
        raw = '{"a": "say \\"hi\\""'
        assert json.loads(repair_json_string(raw)) == {"a": 'say "hi"'}


class TestParseJsonLenient:
    def test_direct_parse(self):
        assert parse_json_lenient('{"x": 1}') == {"x": 1}

    def test_repaired_parse(self):
        assert parse_json_lenient('{"x": 1,') == {"x": 1}

    def test_hopeless_input(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_lenient("no json here")
