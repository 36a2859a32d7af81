"""Tests for the JSON repair heuristics."""

import json

import pytest

from modflow.ai.json_repair import (
    balance_brackets,
    normalize_quotes,
    repair_json,
    slice_to_object,
    strip_code_fences,
)
from modflow.ai.plan_parser import parse_plan


class TestRepairJson:

    def test_valid_json_is_left_alone(self):
        outcome = repair_json('{"a": 1}')

        assert outcome.valid is True
        assert outcome.repaired is False
        assert outcome.text == '{"a": 1}'

    def test_code_fences_are_stripped(self):
        outcome = repair_json('```json\n{"a": 1}\n```')

        assert outcome.valid is True
        assert outcome.repaired is True
        assert json.loads(outcome.text) == {"a": 1}

    def test_surrounding_prose_is_dropped(self):
        outcome = repair_json('Here is the plan: {"a": 1} hope it helps')

        assert json.loads(outcome.text) == {"a": 1}

    def test_trailing_commas(self):
        outcome = repair_json('{"a": [1, 2,],}')

        assert outcome.valid is True
        assert json.loads(outcome.text) == {"a": [1, 2]}

    def test_single_quoted_strings(self):
        outcome = repair_json("{'action': 'message.create'}")

        assert json.loads(outcome.text) == {"action": "message.create"}

    def test_bare_keys(self):
        outcome = repair_json('{action: "message.create", count: 2}')

        assert json.loads(outcome.text) == {"action": "message.create", "count": 2}

    def test_missing_comma_between_objects(self):
        outcome = repair_json('{"steps": [{"id": "s1"} {"id": "s2"}]}')

        assert json.loads(outcome.text) == {"steps": [{"id": "s1"}, {"id": "s2"}]}

    def test_missing_comma_between_lines(self):
        outcome = repair_json('{\n  "a": 1\n  "b": 2\n}')

        assert json.loads(outcome.text) == {"a": 1, "b": 2}

    def test_unclosed_brackets_are_closed(self):
        outcome = repair_json('{"steps": [{"id": "s1"}')

        assert json.loads(outcome.text) == {"steps": [{"id": "s1"}]}

    def test_unclosed_plan_keeps_members_after_last_inner_object(self):
        text = (
            '{"steps": [{"id": "s1", "critical": true, '
            '"params": {"action": "member.ban", "userId": "123456789"}}], '
            '"meta": {"strategy": "sequential"}, "requiresApproval": true'
        )

        outcome = repair_json(text)

        assert outcome.valid is True
        assert json.loads(outcome.text)["requiresApproval"] is True
        plan = parse_plan(outcome.text)
        assert plan.requires_approval is True
        assert plan.steps[0].action == "member.ban"

    def test_unclosed_object_followed_by_prose_is_closed(self):
        outcome = repair_json('{"steps": [{"id": "s1"}]\nLet me know if this works')

        assert json.loads(outcome.text) == {"steps": [{"id": "s1"}]}

    def test_string_contents_survive_repair(self):
        outcome = repair_json('{"content": "use {braces}, and: colons", "x": 1,}')

        assert json.loads(outcome.text)["content"] == "use {braces}, and: colons"

    @pytest.mark.parametrize("text", ["", "not json at all"])
    def test_unrepairable_text_is_returned_unchanged(self, text):
        outcome = repair_json(text)

        assert outcome.valid is False
        assert outcome.repaired is False
        assert outcome.text == text


class TestHelpers:

    def test_strip_code_fences(self):
        assert strip_code_fences("```json\n{}\n```") == "\n{}\n"

    def test_normalize_quotes_keeps_apostrophes_in_double_quotes(self):
        assert normalize_quotes('{"text": "it\'s fine", \'k\': \'v\'}') == '{"text": "it\'s fine", "k": "v"}'

    def test_balance_drops_unmatched_closers(self):
        assert balance_brackets("{}]") == "{}"
        assert balance_brackets("{[") == "{[]}"

    def test_slice_stops_at_first_top_level_object(self):
        assert slice_to_object('plan: {"a": "}"} extra {"b": 2}') == '{"a": "}"}'

    def test_slice_keeps_trailing_members_of_unclosed_object(self):
        text = '{"meta": {"strategy": "parallel"}, "requiresApproval": true'

        assert slice_to_object(text) == text
