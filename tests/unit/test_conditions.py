"""Tests for conditional rule evaluation."""

from __future__ import annotations

import copy
import logging

import pytest

from flyouts.lib.conditions import OPERATORS, evaluate, evaluate_condition, is_empty, loose_equals
from flyouts.lib.fields import Condition, parse_rule


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, True),
        ("", True),
        ("0", True),
        ([], True),
        (False, True),
        ("no", False),
        (0, False),
        (["a"], False),
        (True, False),
        ("hello", False),
    ],
)
def test_is_empty(value, expected):
    assert is_empty(value) is expected


class TestLooseEquals:
    """Tests for the loose equality used by '=' and '=='."""

    def test_numeric_strings_equal_numbers(self):
        assert loose_equals("5", 5) is True
        assert loose_equals("5.0", 5) is True

    def test_booleans_against_flag_strings(self):
        assert loose_equals(True, "1") is True
        assert loose_equals(False, "0") is True
        assert loose_equals(True, "0") is False
        assert loose_equals(True, "yes") is False

    def test_none_equals_empty_string(self):
        assert loose_equals(None, "") is True
        assert loose_equals(None, "x") is False

    def test_list_expected_means_membership(self):
        assert loose_equals("fixed", ["fixed", "percentage"]) is True
        assert loose_equals("none", ["fixed", "percentage"]) is False

    def test_different_strings(self):
        assert loose_equals("fixed", "percentage") is False


class TestOperators:
    """Tests for each supported operator."""

    @pytest.mark.parametrize(
        "operator,actual,expected,result",
        [
            ("=", "a", "a", True),
            ("==", "3", 3, True),
            ("===", "3", 3, False),
            ("===", 3, 3, True),
            ("!=", "a", "b", True),
            ("!==", "3", 3, True),
            (">", "10", 9, True),
            (">", "abc", 9, False),
            (">=", 9, "9", True),
            ("<", 2.5, 3, True),
            ("<=", "4", 3, False),
            ("in", "b", ["a", "b"], True),
            ("in", "b", "a, b, c", True),
            ("in", ["x", "b"], ["a", "b"], True),
            ("not_in", "z", ["a", "b"], True),
            ("contains", ["red", "blue"], "red", True),
            ("contains", "summer sale", "sale", True),
            ("contains", None, "sale", False),
            ("contains", 123, "2", True),
            ("contains", 4.5, 5, True),
            ("contains", True, "1", True),
            ("not_contains", 123, "9", True),
            ("not_contains", ["red"], "blue", True),
            ("empty", "", None, True),
            ("empty", "x", None, False),
            ("not_empty", ["a"], None, True),
            ("not_empty", [], None, False),
        ],
    )
    def test_operator(self, operator, actual, expected, result):
        assert OPERATORS[operator](actual, expected) is result

    def test_missing_field_reads_as_none(self):
        condition = Condition("missing", "empty")

        assert evaluate_condition(condition, {}) is True

    def test_unknown_operator_falls_back_to_equality(self, caplog):
        """Unknown operators use loose equality and log a warning."""
        condition = Condition("status", "~=", "active")

        with caplog.at_level(logging.WARNING, logger="flyouts.lib.conditions"):
            assert evaluate_condition(condition, {"status": "active"}) is True

        assert "Unknown operator '~='" in caplog.text


    def test_contains_matches_numeric_field_by_string_form(self):
        rule = {"field": "n", "operator": "contains", "value": "2"}

        assert evaluate(rule, {"n": 123}) is True
        assert evaluate(rule, {"n": 789}) is False

class TestEvaluate:
    """Tests for whole-rule evaluation."""

    def test_all_conditions_must_hold(self):
        """Rules are an AND across their conditions."""
        rule = parse_rule({"discount_type": "percentage", "active": "1"})

        assert evaluate(rule, {"discount_type": "percentage", "active": "1"}) is True
        assert evaluate(rule, {"discount_type": "percentage", "active": "0"}) is False
        assert evaluate(rule, {"discount_type": "fixed", "active": "1"}) is False

    def test_shorthand_rules_are_parsed(self):
        assert evaluate("sku", {"sku": "MUG"}) is True
        assert evaluate("sku", {"sku": ""}) is False

    def test_evaluation_is_idempotent_and_pure(self):
        """Evaluating twice gives the same answer and leaves the state alone."""
        rule = parse_rule([{"field": "qty", "operator": ">", "value": 2}, {"field": "tags", "operator": "contains", "value": "sale"}])
        state = {"qty": "3", "tags": ["sale", "new"]}
        before = copy.deepcopy(state)

        first = evaluate(rule, state)
        second = evaluate(rule, state)

        assert first is second is True
        assert state == before

    def test_checkbox_group_against_membership(self):
        rule = parse_rule({"field": "channels", "operator": "in", "value": ["email", "sms"]})

        assert evaluate(rule, {"channels": ["push", "sms"]}) is True
        assert evaluate(rule, {"channels": []}) is False

    def test_single_checkbox_bool_against_flag(self):
        assert evaluate({"enabled": "1"}, {"enabled": True}) is True
        assert evaluate({"enabled": "1"}, {"enabled": False}) is False
