"""Conditional rule evaluation.

The same rules run on the server (to decide the initial state of
dependent fields) and in the panel model (on every change). Evaluation is
pure: it reads the form state and never modifies it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from flyouts.lib.fields import Condition, Rule, parse_rule

__all__ = [
    "FormState",
    "OPERATORS",
    "evaluate",
    "evaluate_condition",
    "is_empty",
    "loose_equals",
]

logger = logging.getLogger(__name__)

FormState = Mapping[str, Any]

_TRUE_STRINGS = frozenset({"1", "true"})
_FALSE_STRINGS = frozenset({"0", "false"})


def is_empty(value: Any) -> bool:
    """Empty means None, "", "0", an empty list, or False."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == "" or value == "0"
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _scalar_equals(actual: Any, expected: Any) -> bool:
    if actual is expected or actual == expected and type(actual) is type(expected):
        return True

    if actual is None or expected is None:
        other = expected if actual is None else actual
        return other is None or other == ""

    if isinstance(actual, bool) or isinstance(expected, bool):
        flag, other = (actual, expected) if isinstance(actual, bool) else (expected, actual)
        if isinstance(other, bool):
            return flag == other
        text = str(other).strip().lower()
        if text in _TRUE_STRINGS:
            return flag is True
        if text in _FALSE_STRINGS:
            return flag is False
        return False

    left, right = _to_float(actual), _to_float(expected)
    if left is not None and right is not None:
        return left == right

    return str(actual) == str(expected)


def loose_equals(actual: Any, expected: Any) -> bool:
    """Loose equality used by ``=``/``==``.

    A list ``expected`` means membership, which keeps legacy
    ``{"field": f, "value": [a, b]}`` rules working.
    """
    if isinstance(expected, (list, tuple)):
        return _contains_loosely(expected, actual)
    return _scalar_equals(actual, expected)


def _contains_loosely(haystack: Any, needle: Any) -> bool:
    return any(_scalar_equals(item, needle) for item in haystack)


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    if isinstance(value, str) and "," in value:
        return [part.strip() for part in value.split(",")]
    return [value]


def _op_in(actual: Any, expected: Any) -> bool:
    options = _as_list(expected)
    if isinstance(actual, (list, tuple)):
        return any(_contains_loosely(options, item) for item in actual)
    return _contains_loosely(options, actual)


def _string_form(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def _op_contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set)):
        return _contains_loosely(actual, expected)
    if actual is None or expected is None:
        return False
    return _string_form(expected) in _string_form(actual)


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def check(actual: Any, expected: Any) -> bool:
        left, right = _to_float(actual), _to_float(expected)
        if left is None or right is None:
            return False
        return compare(left, right)

    return check


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": loose_equals,
    "==": loose_equals,
    "===": lambda a, e: type(a) is type(e) and a == e,
    "!=": lambda a, e: not loose_equals(a, e),
    "!==": lambda a, e: not (type(a) is type(e) and a == e),
    ">": _numeric(lambda a, e: a > e),
    ">=": _numeric(lambda a, e: a >= e),
    "<": _numeric(lambda a, e: a < e),
    "<=": _numeric(lambda a, e: a <= e),
    "in": _op_in,
    "not_in": lambda a, e: not _op_in(a, e),
    "contains": _op_contains,
    "not_contains": lambda a, e: not _op_contains(a, e),
    "empty": lambda a, e: is_empty(a),
    "not_empty": lambda a, e: not is_empty(a),
}


def evaluate_condition(condition: Condition, form_state: FormState) -> bool:
    """Evaluate one triple against the current form state."""
    actual = form_state.get(condition.field)
    check = OPERATORS.get(condition.operator)
    if check is None:
        logger.warning(
            "Unknown operator '%s' on field '%s'; using loose equality",
            condition.operator,
            condition.field,
        )
        check = loose_equals
    return bool(check(actual, condition.value))


def evaluate(rule: Any, form_state: FormState) -> bool:
    """True iff every condition of the rule holds (AND)."""
    parsed: Rule = parse_rule(rule)
    return all(evaluate_condition(condition, form_state) for condition in parsed)
